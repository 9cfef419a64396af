"""Path and name helpers shared by resolution and code generation.

Examples:
  get_resource_params(/users -> /{userId} -> /address/{addressId})
      -> ['userId', 'addressId']
  paramize_uri('/users/{userId}/address/{addressId}')
      -> '"/users/"+userId+"/address/"+addressId'
  method_name(/users -> /{userId}, 'get') -> 'users_byUserId_get'
"""

import posixpath
import re
from typing import Callable

from raml_codegen.raml.base import Resource

_URI_PARAM_RE = re.compile(r"\{([\w\s-]+)\}")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")


def normalize_pkg_name(name: str) -> str:
    """Make a name usable as a package/module path ('-' -> '_').

    Not a bijection: a name that already contains '_' does not survive
    denormalize_pkg_name(normalize_pkg_name(name)).
    """
    return name.replace("-", "_")


def denormalize_pkg_name(name: str) -> str:
    """Inverse of normalize_pkg_name ('_' -> '-')."""
    return name.replace("_", "-")


def lib_rel_dir(filename: str) -> str:
    """Library file path without its extension: 'libs/common.raml' -> 'libs/common'."""
    return posixpath.splitext(filename.replace("\\", "/"))[0]


def replace_non_alphanumerics(s: str) -> str:
    """Replace runs of non alphanumerics with '_'."""
    return _NON_ALNUM_RE.sub("_", s).strip("_")


def uri_params(uri: str) -> list[str]:
    """Placeholder names of one URI, in order."""
    return [m.strip() for m in _URI_PARAM_RE.findall(uri)]


def get_resource_params(resource: Resource) -> list[str]:
    """All URI parameters from the root down to `resource`, outermost first."""
    params: list[str] = []
    for r in resource.lineage:
        params.extend(uri_params(r.uri))
    return params


def paramize_uri(uri: str, identifier: Callable[[str], str] | None = None) -> str:
    """Turn a template URI into a string concatenation expression.

    '/users/{userId}' -> '"/users/"+userId'. Empty literals at either end
    are dropped, so '{id}' gives 'id'. `identifier` maps a parameter name to
    the variable holding its value.
    """
    identifier = identifier or replace_non_alphanumerics
    parts = []
    pos = 0
    for m in _URI_PARAM_RE.finditer(uri):
        literal = uri[pos:m.start()]
        if literal:
            parts.append(f'"{literal}"')
        parts.append(identifier(m.group(1).strip()))
        pos = m.end()
    if uri[pos:] or not parts:
        parts.append(f'"{uri[pos:]}"')
    return "+".join(parts)


def _camel_join(words: list[str]) -> str:
    words = [w for w in words if w]
    if not words:
        return ""
    return words[0] + "".join(w[:1].upper() + w[1:] for w in words[1:])


def _resource_fragment(uri: str) -> str:
    words = []
    for segment in uri.split("/"):
        if not segment:
            continue
        if segment.startswith("{") and segment.endswith("}"):
            param = _camel_join(_NON_ALNUM_RE.split(segment[1:-1]))
            words.append("by" + param[:1].upper() + param[1:])
        else:
            words.append(_camel_join(_NON_ALNUM_RE.split(segment)))
    fragment = _camel_join(words)
    return fragment[:1].lower() + fragment[1:]


def method_name_fragments(resource: Resource, verb: str) -> list[str]:
    """One lower-camel fragment per resource from the root, then the verb."""
    fragments = [_resource_fragment(r.uri) for r in resource.lineage]
    return [f for f in fragments if f] + [verb.lower()]


def method_name(resource: Resource, verb: str, display_name: str = "") -> str:
    """Snake-joined method name, e.g. 'users_byUserId_get'.

    A display name wins and is used with its whitespace removed.
    """
    if display_name.strip():
        return "".join(display_name.split())
    return "_".join(method_name_fragments(resource, verb))


def upper_camel_method_name(resource: Resource, verb: str, display_name: str = "") -> str:
    """Upper-camel variant of method_name, e.g. 'UsersByUserIdGet'."""
    if display_name.strip():
        name = "".join(display_name.split())
        return name[:1].upper() + name[1:]
    return "".join(f[:1].upper() + f[1:] for f in method_name_fragments(resource, verb))
