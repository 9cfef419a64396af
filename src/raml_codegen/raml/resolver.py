"""Resolve a parsed RAML document into a self-contained API model.

Steps, in this order:
1. load every library named in `uses`, recursively;
2. name every declaration after its map key;
3. walk the resource tree pre-order: apply resource types and traits,
   fill in default security, link each child to its parent.

Any unresolvable reference aborts the whole resolution.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from raml_codegen.errors import LibraryCycleError, ParseError, UnresolvedReferenceError
from raml_codegen.raml.base import (
    ANONYMOUS,
    HTTP_METHODS,
    APIDefinition,
    DefinitionChoice,
    Document,
    Method,
    Resource,
    definition_choices,
    method_node,
)
from raml_codegen.raml.loader import parse_api_definition, parse_library
from raml_codegen.raml.namespace import resolve_qualified_name, split_qualified_name
from raml_codegen.raml.template import merge, substitute

log = logging.getLogger(__name__)


class ResolutionContext:
    """State of one resolution run, passed explicitly to every step."""

    def __init__(self, api_def: APIDefinition):
        self.api_def = api_def
        # files currently being loaded, outermost first
        self.import_stack: list[Path] = []


def load_api_definition(file_path: Path) -> APIDefinition:
    """Parse and resolve a root RAML file."""
    return resolve(parse_api_definition(file_path))


def resolve(api_def: APIDefinition) -> APIDefinition:
    """Resolve `api_def` in place and return it."""
    ctx = ResolutionContext(api_def)
    if api_def.source is not None:
        root_file = api_def.source.resolve()
        ctx.import_stack.append(root_file)
        base_dir = root_file.parent
    else:
        base_dir = Path(".").resolve()

    load_libraries(api_def, base_dir, ctx)
    name_declarations(api_def)
    for resource in api_def.resources.values():
        resolve_resource(resource, None, ctx)
    return api_def


def load_libraries(doc: Document, base_dir: Path, ctx: ResolutionContext) -> None:
    """Load the libraries of `doc`, then theirs.

    The same file reached through two different imports is parsed twice;
    a file importing one of its importers is a LibraryCycleError.
    """
    for alias, declared_path in doc.uses.items():
        lib_file = (base_dir / declared_path).resolve()
        if lib_file in ctx.import_stack:
            start = ctx.import_stack.index(lib_file)
            raise LibraryCycleError([str(p) for p in ctx.import_stack[start:]] + [str(lib_file)])
        if not lib_file.is_file():
            raise UnresolvedReferenceError(
                alias, doc.filename or "<root>", f"library file {declared_path!r} not found"
            )

        log.debug("loading library %s from %s", alias, lib_file)
        lib = parse_library(lib_file, declared_path)
        ctx.import_stack.append(lib_file)
        load_libraries(lib, lib_file.parent, ctx)
        ctx.import_stack.pop()
        doc.libraries[alias] = lib


def name_declarations(doc: Document) -> None:
    """Attach each declaration's map key as its name, libraries included."""
    for declarations in (doc.types, doc.traits, doc.resource_types, doc.security_schemes):
        for name, declaration in declarations.items():
            declaration.name = name
    for lib in doc.libraries.values():
        name_declarations(lib)


def _reserved_params(resource: Resource) -> dict[str, str]:
    path = resource.full_uri
    names = [s for s in path.split("/") if s and not (s.startswith("{") and s.endswith("}"))]
    return {"resourcePath": path, "resourcePathName": names[-1] if names else ""}


def _qualify(value: Any, alias: str, keep_null: bool = False) -> list[dict]:
    """Normalize choices and prefix unqualified names with `alias`."""
    result = []
    for choice in definition_choices(value, keep_null):
        if isinstance(choice, DefinitionChoice):
            choice = choice.model_dump()
        name = choice["name"]
        if alias and "." not in name and name != ANONYMOUS:
            name = f"{alias}.{name}"
        result.append({"name": name, "parameters": choice.get("parameters") or {}})
    return result


def _qualify_node(node: dict, alias: str) -> dict:
    # references made inside a library resolve against that library
    node = dict(node)
    for key in ("is", "securedBy"):
        if key in node:
            node[key] = _qualify(node[key], alias, keep_null=key == "securedBy")
    return node


def _build_method(verb: str, node: Any, context: str) -> Method:
    try:
        node = method_node(verb, node)
    except ValueError as e:
        raise ParseError(f"malformed method {verb} in {context}") from e
    try:
        return Method.model_validate({**node, "name": verb})
    except ValidationError as e:
        raise ParseError(f"malformed method {verb} in {context}: {e.errors()[0]['msg']}") from e


def merge_methods(explicit: Method, inherited: Method) -> Method:
    """Merge an inherited method under an explicit one; explicit values win."""
    merged = merge(explicit.model_dump(exclude_unset=True), inherited.model_dump(exclude_unset=True))
    return Method.model_validate(merged)


def instantiate_resource_type(
    resource: Resource,
    choice: DefinitionChoice,
    ctx: ResolutionContext,
    seen: list[str] | None = None,
) -> tuple[dict[str, tuple[dict, bool]], list[dict]]:
    """Expand a resource type for `resource`.

    Returns ({verb: (method node, optional)}, trait choices). Parent
    resource types are expanded depth-first; the child's values win.
    """
    seen = seen or []
    context = f"resource {resource.full_uri}"
    if choice.name in seen:
        raise UnresolvedReferenceError(
            choice.name, " -> ".join(seen + [choice.name]), "resource type inheritance cycle"
        )
    doc, bare = resolve_qualified_name(choice.name, ctx.api_def, context)
    rt = doc.resource_types.get(bare)
    if rt is None:
        raise UnresolvedReferenceError(choice.name, context, f"unknown resource type {choice.name!r}")

    log.debug("applying resource type %s to %s", choice.name, resource.full_uri)
    alias, _ = split_qualified_name(choice.name)
    params = {**choice.parameters, **_reserved_params(resource)}
    rt_context = f"resource type {choice.name} on {resource.full_uri}"

    template = dict(rt.template)
    parent_choice = template.pop("type", None)
    traits = _qualify(substitute(template.pop("is", None), params, rt_context), alias)

    methods: dict[str, tuple[dict, bool]] = {}
    for key, node in template.items():
        key = str(key)
        verb = key.rstrip("?").lower()
        if verb not in HTTP_METHODS:
            continue
        node = substitute(node or {}, {**params, "methodName": verb}, rt_context)
        if not isinstance(node, dict):
            raise ParseError(f"malformed method {key} in {rt_context}")
        methods[verb] = (_qualify_node(node, alias), key.endswith("?"))

    if parent_choice is not None:
        parents = _qualify(substitute(parent_choice, params, rt_context), alias)
        if parents:
            parent = DefinitionChoice.model_validate(parents[0])
            parent_methods, parent_traits = instantiate_resource_type(
                resource, parent, ctx, seen + [choice.name]
            )
            for verb, (parent_node, parent_optional) in parent_methods.items():
                if verb in methods:
                    node, optional = methods[verb]
                    methods[verb] = (merge(node, parent_node), optional and parent_optional)
                else:
                    methods[verb] = (parent_node, parent_optional)
            traits = traits + [t for t in parent_traits if t not in traits]

    return methods, traits


def apply_traits(
    resource: Resource,
    method: Method,
    inherited_traits: list[dict],
    ctx: ResolutionContext,
) -> Method:
    """Merge every applicable trait into `method`; earlier traits win."""
    context = f"{method.verb} {resource.full_uri}"
    choices = list(method.is_) + list(resource.is_)
    choices += [DefinitionChoice.model_validate(c) for c in inherited_traits]

    applied: list[str] = []
    for choice in choices:
        if choice.name in applied:
            continue
        doc, bare = resolve_qualified_name(choice.name, ctx.api_def, context)
        trait = doc.traits.get(bare)
        if trait is None:
            raise UnresolvedReferenceError(choice.name, context, f"unknown trait {choice.name!r}")

        log.debug("applying trait %s to %s", choice.name, context)
        alias, _ = split_qualified_name(choice.name)
        params = {**choice.parameters, **_reserved_params(resource), "methodName": method.name}
        node = substitute(trait.template, params, f"trait {choice.name} on {context}")
        trait_method = _build_method(method.name, _qualify_node(node, alias), f"trait {choice.name}")
        method = merge_methods(method, trait_method)
        applied.append(choice.name)

    method.traits = applied
    return method


def _apply_security(resource: Resource, method: Method, ctx: ResolutionContext) -> None:
    if not method.secured_by:
        method.secured_by = list(resource.secured_by or ctx.api_def.secured_by)
    context = f"{method.verb} {resource.full_uri}"
    for choice in method.secured_by:
        alias, _ = split_qualified_name(choice.name)
        if alias:
            # unknown aliases are fatal; unknown bare scheme names are left to the generator
            resolve_qualified_name(choice.name, ctx.api_def, context)


def resolve_resource(resource: Resource, parent: Resource | None, ctx: ResolutionContext) -> None:
    """Resolve one resource and, recursively, its children."""
    resource.set_parent(parent)

    inherited_traits: list[dict] = []
    if resource.resource_type is not None:
        rt_methods, inherited_traits = instantiate_resource_type(resource, resource.resource_type, ctx)
        for verb, (node, optional) in rt_methods.items():
            explicit = resource.methods.get(verb)
            if explicit is None and optional:
                continue
            inherited = _build_method(verb, node, f"resource type on {resource.full_uri}")
            resource.methods[verb] = inherited if explicit is None else merge_methods(explicit, inherited)

    for verb in list(resource.methods):
        method = apply_traits(resource, resource.methods[verb], inherited_traits, ctx)
        _apply_security(resource, method, ctx)
        resource.methods[verb] = method

    for child in resource.nested.values():
        resolve_resource(child, resource, ctx)
