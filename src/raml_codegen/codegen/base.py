"""Language-independent part of code generation.

A Backend walks a resolved APIDefinition and renders files for one target
language. Rendering returns {filename: content} dicts; writing goes
through Backend.write_files, which validates the batch and preserves
existing files unless overwrite is requested.
"""

import html
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel

from raml_codegen.config import ClientConfig, GenerationConfig, ServerConfig
from raml_codegen.codegen.validator import validate_files
from raml_codegen.errors import GenerationError, OutputError
from raml_codegen.naming import (
    get_resource_params,
    lib_rel_dir,
    normalize_pkg_name,
    replace_non_alphanumerics,
)
from raml_codegen.raml.base import ANONYMOUS, APIDefinition, Document, Library, Method, Resource, SecurityScheme
from raml_codegen.raml.namespace import find_security_scheme, split_qualified_name

log = logging.getLogger(__name__)

# verbs whose client methods take a request body
BODY_VERBS = ("PUT", "POST", "PATCH")

SCHEME_KINDS = {
    "OAuth 2.0": "oauth2",
    "OAuth 1.0": "oauth1",
    "Basic Authentication": "basic_auth",
    "Digest Authentication": "digest_auth",
    "Pass Through": "passthrough",
}

APIDOCS_DIR = "apidocs"


class Middleware(BaseModel):
    """Instructs a generated server to enforce one security scheme on a method."""

    scheme: str
    name: str
    import_path: str = ""
    args: str = ""


class ServerMethod(BaseModel):
    verb: str
    method_name: str
    params: list[str] = []
    route: str
    description: str = ""
    middlewares: list[Middleware] = []
    req_body: str = ""
    resource_uri: str = ""


class ClientMethod(BaseModel):
    """A generated client call; params start with the receiver."""

    verb: str
    method_name: str
    params: list[str] = []
    uri: str
    has_body: bool = False
    description: str = ""
    resource_uri: str = ""


def scheme_kind(scheme: SecurityScheme) -> str:
    """'OAuth 2.0' -> 'oauth2'; unknown and x-* types -> 'custom'."""
    return SCHEME_KINDS.get(scheme.type, "custom")


def scheme_scopes(params: dict) -> list[str]:
    scopes = params.get("scopes") or []
    if isinstance(scopes, str):
        scopes = [scopes]
    return [str(s) for s in scopes]


def check_create_dir(directory: Path) -> None:
    """Create `directory` and its parents; an existing directory is fine."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(str(directory), e) from e


def root_name(resource: Resource) -> str:
    """File-friendly name of a root resource: '/user-groups' -> 'user_groups'."""
    return replace_non_alphanumerics(resource.uri).lower() or "root"


def walk_methods(resource: Resource) -> list[tuple[Resource, Method]]:
    """(resource, method) pairs of a resource subtree, pre-order."""
    pairs = [(resource, method) for method in resource.methods.values()]
    for child in resource.nested.values():
        pairs.extend(walk_methods(child))
    return pairs


class Backend(ABC):
    """Code generator for one target language."""

    language = ""
    default_import_path = ""

    def __init__(self, api_def: APIDefinition, config: GenerationConfig):
        self.api_def = api_def
        self.config = config
        self.written: list[Path] = []
        self.skipped: list[Path] = []
        # off when generating clients
        self.with_security = True

    @property
    def import_path(self) -> str:
        return self.config.import_path or self.default_import_path

    # -- capability set -------------------------------------------------------

    @abstractmethod
    def emit_types(self, doc: Document, package: str) -> dict[str, str]:
        """Render one declaration file per type of `doc`."""

    @abstractmethod
    def emit_security_schemes(self, doc: Document, package: str) -> dict[str, str]:
        """Render one middleware file per security scheme of `doc`."""

    @abstractmethod
    def emit_server_method(self, resource: Resource, method: Method) -> ServerMethod:
        """Describe the server handler of one resource method."""

    @abstractmethod
    def emit_client_method(self, resource: Resource, method: Method) -> ClientMethod:
        """Describe the client call of one resource method."""

    @abstractmethod
    def middleware_for(self, scheme: SecurityScheme, qualified_name: str, params: dict) -> Middleware:
        """Describe the middleware enforcing `scheme`."""

    @abstractmethod
    def server_files(self, config: ServerConfig) -> dict[str, str]:
        """Render the root-level server files (entry point, routes, handlers)."""

    @abstractmethod
    def client_files(self, config: ClientConfig) -> dict[str, str]:
        """Render the root-level client files."""

    def library_package(self, lib: Library) -> str:
        """Package name of a library's generated code."""
        return normalize_pkg_name(lib_rel_dir(lib.filename)).rsplit("/", 1)[-1]

    def emit_library(self, lib: Library, root_dir: Path) -> None:
        """Write a library's types and security schemes, then its own libraries."""
        lib_dir = root_dir / normalize_pkg_name(lib_rel_dir(lib.filename))
        check_create_dir(lib_dir)
        package = self.library_package(lib)
        files = {}
        files.update(self.emit_types(lib, package))
        if self.with_security:
            files.update(self.emit_security_schemes(lib, package))
        self.write_files(files, lib_dir)
        for child in lib.libraries.values():
            self.emit_library(child, root_dir)

    # -- shared helpers -------------------------------------------------------

    def resource_params(self, resource: Resource) -> list[str]:
        return [replace_non_alphanumerics(p) for p in get_resource_params(resource)]

    def security_middlewares(self, resource: Resource, method: Method) -> list[Middleware]:
        """One middleware per resolvable security requirement of `method`.

        Anonymous access and requirements naming an undeclared scheme are skipped.
        """
        middlewares = []
        for choice in method.secured_by:
            if choice.name == ANONYMOUS:
                continue
            scheme = find_security_scheme(choice.name, self.api_def)
            if scheme is None:
                log.debug("%s %s: no security scheme %r, skipped", method.verb, resource.full_uri, choice.name)
                continue
            middlewares.append(self.middleware_for(scheme, choice.name, choice.parameters))
        return middlewares

    def scheme_alias(self, qualified_name: str) -> str:
        alias, _ = split_qualified_name(qualified_name)
        return normalize_pkg_name(alias)

    # -- writing --------------------------------------------------------------

    def write_file(self, path: Path, content: str) -> None:
        """Write one file unless it exists and overwrite is off."""
        if path.exists() and not self.config.overwrite:
            log.info("%s already exists, keeping it", path)
            self.skipped.append(path)
            return
        check_create_dir(path.parent)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise OutputError(str(path), e) from e
        log.info("generated %s", path)
        self.written.append(path)

    def write_files(self, files: dict[str, str], directory: Path) -> None:
        """Validate a batch of rendered files, then write it under `directory`."""
        errors = validate_files(files)
        if errors:
            filename, message = next(iter(errors.items()))
            raise GenerationError(f"invalid generated code: {message}", str(directory / filename))
        for filename, content in files.items():
            self.write_file(directory / filename, content)

    def emit_apidocs(self, directory: Path) -> None:
        """Write the API documentation page and copies of the RAML sources."""
        files = {"index.html": self._render_apidocs_index()}
        root_dir = self.api_def.source.parent if self.api_def.source else None
        for name, source in self._raml_sources(self.api_def, root_dir).items():
            try:
                files[name] = source.read_text(encoding="utf-8")
            except OSError as e:
                raise OutputError(str(source), e) from e
        self.write_files(files, directory)

    def _raml_sources(self, doc: Document, root_dir: Path | None) -> dict[str, Path]:
        sources = {}
        if doc.source is not None:
            name = doc.source.name
            if root_dir is not None and doc.source.resolve().is_relative_to(root_dir.resolve()):
                name = doc.source.resolve().relative_to(root_dir.resolve()).as_posix()
            sources[name] = doc.source
        for lib in doc.libraries.values():
            sources.update(self._raml_sources(lib, root_dir))
        return sources

    def _render_apidocs_index(self) -> str:
        title = html.escape(self.api_def.title)
        raml_file = self.api_def.source.name if self.api_def.source else ""
        lines = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '  <meta charset="utf-8">',
            f"  <title>{title} API documentation</title>",
            "</head>",
            "<body>",
            f"  <h1>{title}</h1>",
        ]
        if self.api_def.version:
            lines.append(f"  <p>Version {html.escape(self.api_def.version)}</p>")
        for doc in self.api_def.documentation:
            lines.append(f"  <h2>{html.escape(doc.title)}</h2>")
            lines.append(f"  <p>{html.escape(doc.content)}</p>")
        lines.append("  <ul>")
        for resource in self.api_def.all_resources():
            for verb in resource.methods:
                lines.append(f"    <li>{verb.upper()} {html.escape(resource.full_uri)}</li>")
        lines.append("  </ul>")
        if raml_file:
            link = html.escape(raml_file)
            lines.append(f'  <p><a href="{link}">{link}</a></p>')
        lines.extend(["</body>", "</html>"])
        return "\n".join(lines) + "\n"

    # -- orchestration --------------------------------------------------------

    def generate_server(self) -> list[Path]:
        """Generate server code under the configured output directory.

        Returns the paths written; preserved files are in self.skipped.
        """
        config = self.config
        out = config.output_dir
        check_create_dir(out)

        files = {}
        files.update(self.emit_types(self.api_def, config.package))
        files.update(self.emit_security_schemes(self.api_def, config.package))
        files.update(self.server_files(config))
        self.write_files(files, out)

        for lib in self.api_def.libraries.values():
            self.emit_library(lib, out)
        if not getattr(config, "no_apidocs", False):
            self.emit_apidocs(out / APIDOCS_DIR)
        return self.written

    def generate_client(self) -> list[Path]:
        """Generate client code under the configured output directory."""
        config = self.config
        out = config.output_dir
        check_create_dir(out)
        self.with_security = False

        files = {}
        files.update(self.emit_types(self.api_def, config.package))
        files.update(self.client_files(config))
        self.write_files(files, out)

        for lib in self.api_def.libraries.values():
            self.emit_library(lib, out)
        return self.written
