"""Entry points of code generation: resolve a RAML file, pick a backend, write files."""

import logging
from pathlib import Path

from raml_codegen.codegen.base import Backend
from raml_codegen.codegen.golang import GoBackend
from raml_codegen.codegen.python import PythonBackend
from raml_codegen.config import ClientConfig, GenerationConfig, ServerConfig
from raml_codegen.errors import GenerationError
from raml_codegen.raml.base import APIDefinition
from raml_codegen.raml.resolver import load_api_definition

log = logging.getLogger(__name__)

BACKENDS: dict[str, type[Backend]] = {
    "go": GoBackend,
    "python": PythonBackend,
}


def get_backend(api_def: APIDefinition, config: GenerationConfig) -> Backend:
    """Instantiate the backend of the configured language."""
    backend_cls = BACKENDS.get(config.language)
    if backend_cls is None:
        raise GenerationError(f"unsupported language {config.language!r}")
    return backend_cls(api_def, config)


def generate_server(config: ServerConfig) -> list[Path]:
    """Generate server code; returns the files written."""
    api_def = load_api_definition(config.ramlfile)
    backend = get_backend(api_def, config)
    log.debug("generating %s server for %s into %s", config.language, config.ramlfile, config.output_dir)
    return backend.generate_server()


def generate_client(config: ClientConfig) -> list[Path]:
    """Generate client code; returns the files written."""
    api_def = load_api_definition(config.ramlfile)
    backend = get_backend(api_def, config)
    log.debug("generating %s client for %s into %s", config.language, config.ramlfile, config.output_dir)
    return backend.generate_client()
