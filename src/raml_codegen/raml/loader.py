"""RAML document loader.

Reads RAML 1.0 files (API definitions and libraries) into the document
model. The RAML `!include` tag is supported; everything else is plain YAML.
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from raml_codegen.errors import ParseError
from raml_codegen.raml.base import APIDefinition, Library

log = logging.getLogger(__name__)

RAML_HEADER = "#%RAML"
_YAML_INCLUDE_SUFFIXES = (".raml", ".yaml", ".yml")


class RamlLoader(yaml.SafeLoader):
    """SafeLoader that understands `!include <path>`.

    Included RAML/YAML files are parsed; any other file is returned as text.
    Paths are relative to the including file.
    """


def _construct_include(loader: RamlLoader, node: yaml.Node) -> object:
    rel_path = loader.construct_scalar(node)
    base_dir = Path(loader.name).parent if loader.name and not loader.name.startswith("<") else Path(".")
    path = base_dir / rel_path
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"can't read included file {rel_path}: {e.strerror}", str(path)) from e
    if path.suffix in _YAML_INCLUDE_SUFFIXES:
        with open(path, encoding="utf-8") as f:
            return yaml.load(f, Loader=RamlLoader)
    return text


RamlLoader.add_constructor("!include", _construct_include)


def load_document(file_path: Path) -> dict:
    """Parse a RAML file into an untyped document tree."""
    try:
        with open(file_path, encoding="utf-8") as f:
            header = f.readline()
            f.seek(0)
            data = yaml.load(f, Loader=RamlLoader)
    except OSError as e:
        raise ParseError(f"can't read {file_path}: {e.strerror}", str(file_path)) from e
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML: {e}", str(file_path)) from e

    if not header.startswith(RAML_HEADER):
        log.debug("%s has no %s header", file_path, RAML_HEADER)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError("document root must be a mapping", str(file_path))
    return data


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def parse_api_definition(file_path: Path) -> APIDefinition:
    """Parse a root RAML file into an (unresolved) APIDefinition."""
    data = load_document(file_path)
    try:
        api_def = APIDefinition.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"malformed API definition: {_validation_message(e)}", str(file_path)) from e
    api_def.filename = file_path.name
    api_def.source = file_path
    return api_def


def parse_library(file_path: Path, declared_path: str) -> Library:
    """Parse a library file.

    `declared_path` is the path as written in the importing document's
    `uses` map; it identifies the library in generated output.
    """
    data = load_document(file_path)
    try:
        lib = Library.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"malformed library: {_validation_message(e)}", str(file_path)) from e
    lib.filename = declared_path
    lib.source = file_path
    return lib
