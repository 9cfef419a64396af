"""Parameter substitution and merging for traits and resource types."""

import re
from typing import Any

from raml_codegen.errors import ParseError, UnresolvedReferenceError

_PARAM_RE = re.compile(r"<<\s*([\w-]+)\s*((?:\|\s*!\w+\s*)*)>>")
_TRANSFORMER_RE = re.compile(r"!(\w+)")
_WORD_RE = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])")

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
}
_IRREGULAR_SINGULARS = {v: k for k, v in _IRREGULAR_PLURALS.items()}


def pluralize(word: str) -> str:
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]
    if word.endswith("y") and word[-2:-1] not in ("a", "e", "i", "o", "u", ""):
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    if word in _IRREGULAR_SINGULARS:
        return _IRREGULAR_SINGULARS[word]
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith(("ses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def _words(value: str) -> list[str]:
    return [w.lower() for w in _WORD_RE.findall(value)]


def _lower_camel(value: str) -> str:
    words = _words(value)
    return words[0] + "".join(w.capitalize() for w in words[1:]) if words else ""


TRANSFORMERS = {
    "singularize": singularize,
    "pluralize": pluralize,
    "uppercase": str.upper,
    "lowercase": str.lower,
    "lowercamelcase": _lower_camel,
    "uppercamelcase": lambda v: "".join(w.capitalize() for w in _words(v)),
    "lowerunderscorecase": lambda v: "_".join(_words(v)),
    "upperunderscorecase": lambda v: "_".join(_words(v)).upper(),
    "lowerhyphencase": lambda v: "-".join(_words(v)),
    "upperhyphencase": lambda v: "-".join(_words(v)).upper(),
}


def _apply_transformers(value: str, transformers: str) -> str:
    for name in _TRANSFORMER_RE.findall(transformers):
        func = TRANSFORMERS.get(name.lower())
        if func is None:
            raise ParseError(f"unknown template transformer !{name}")
        value = func(value)
    return value


def _substitute_str(text: str, params: dict[str, Any], context: str) -> Any:
    match = _PARAM_RE.fullmatch(text.strip())
    if match and not match.group(2):
        # a lone placeholder keeps the parameter's own value (list, map, ...)
        name = match.group(1)
        if name not in params:
            raise UnresolvedReferenceError(name, context, f"template parameter <<{name}>> not provided")
        return params[name]

    def _replace(m: re.Match) -> str:
        name = m.group(1)
        if name not in params:
            raise UnresolvedReferenceError(name, context, f"template parameter <<{name}>> not provided")
        return _apply_transformers(str(params[name]), m.group(2))

    return _PARAM_RE.sub(_replace, text)


def substitute(node: Any, params: dict[str, Any], context: str = "") -> Any:
    """Return a copy of `node` with every <<param>> replaced, keys included."""
    if isinstance(node, dict):
        return {
            (str(_substitute_str(k, params, context)) if isinstance(k, str) else k): substitute(v, params, context)
            for k, v in node.items()
        }
    if isinstance(node, list):
        return [substitute(item, params, context) for item in node]
    if isinstance(node, str):
        return _substitute_str(node, params, context)
    return node


def merge(explicit: Any, inherited: Any) -> Any:
    """Merge `inherited` under `explicit`; explicit values always win.

    Maps merge key by key, lists concatenate (explicit first, duplicates
    dropped), an explicit None yields the inherited value.
    """
    if explicit is None:
        return inherited
    if isinstance(explicit, dict) and isinstance(inherited, dict):
        result = dict(inherited)
        for key, value in explicit.items():
            result[key] = merge(value, inherited[key]) if key in inherited else value
        return result
    if isinstance(explicit, list) and isinstance(inherited, list):
        return list(explicit) + [item for item in inherited if item not in explicit]
    return explicit
