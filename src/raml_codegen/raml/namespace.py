"""Qualified-name resolution across a document's imported libraries.

A qualified name looks like ``alias.Name``. The alias is searched in the
document's own ``uses`` first, then one level down in the ``uses`` of the
libraries that document already loaded. Deeper library-of-library aliases
are not searched.
"""

import posixpath

from raml_codegen.errors import UnresolvedReferenceError
from raml_codegen.naming import denormalize_pkg_name, lib_rel_dir, normalize_pkg_name
from raml_codegen.raml.base import Document, Library, SecurityScheme

SEPARATOR = "."

# Reserved alias of the generated support package (date/time types).
SUPPORT_ALIAS = "goraml"


def split_qualified_name(name: str) -> tuple[str, str]:
    """Split 'alias.Name' into ('alias', 'Name'); unqualified names give ('', name)."""
    name = name.strip()
    alias, sep, bare = name.partition(SEPARATOR)
    if not sep:
        return "", name
    return alias, bare


def find_library(alias: str, doc: Document) -> Library | None:
    """Find the library registered under `alias`, searching one level deep."""
    if alias in doc.libraries:
        return doc.libraries[alias]
    for lib in doc.libraries.values():
        if alias in lib.libraries:
            return lib.libraries[alias]
    return None


def find_lib_file(alias: str, doc: Document) -> str:
    """Find the declared file of library `alias`, searching one level deep."""
    if alias in doc.uses:
        return doc.uses[alias]
    for lib in doc.libraries.values():
        if alias in lib.uses:
            return lib.uses[alias]
    return ""


def resolve_qualified_name(name: str, doc: Document, context: str = "") -> tuple[Document, str]:
    """Return the document owning `name` and the name without its alias."""
    alias, bare = split_qualified_name(name)
    if not alias:
        return doc, bare
    lib = find_library(alias, doc)
    if lib is None:
        raise UnresolvedReferenceError(alias, context or name, f"unknown library alias {alias!r}")
    return lib, bare


def import_path_for(name: str, root_import_path: str, doc: Document) -> str:
    """Output module path of the library a qualified `name` refers to.

    Returns '' for unqualified names.
    """
    alias, _ = split_qualified_name(name)
    if not alias:
        return ""
    if alias == SUPPORT_ALIAS:
        return posixpath.join(root_import_path, SUPPORT_ALIAS)

    # generated code refers to libraries by their normalized alias
    lib_file = find_lib_file(alias, doc) or find_lib_file(denormalize_pkg_name(alias), doc)
    if not lib_file:
        raise UnresolvedReferenceError(alias, name, f"can't find library {alias!r}")
    return posixpath.join(root_import_path, normalize_pkg_name(lib_rel_dir(lib_file)))


def find_security_scheme(name: str, doc: Document) -> SecurityScheme | None:
    """Look up a security scheme by (possibly qualified) name; None if unknown."""
    alias, bare = split_qualified_name(name)
    owner: Document | None = doc if not alias else find_library(alias, doc)
    if owner is None:
        return None
    return owner.security_schemes.get(bare)
