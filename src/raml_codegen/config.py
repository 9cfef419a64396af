"""Generation settings passed from the CLI to the code-emission engine."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

LANGUAGES = ("go", "python")


class GenerationConfig(BaseModel):
    """Settings shared by server and client generation.

    An empty import_path means the backend's own default.
    """

    language: Literal["go", "python"] = "go"
    output_dir: Path = Path(".")
    ramlfile: Path
    package: str = ""
    import_path: str = ""
    overwrite: bool = False


class ServerConfig(GenerationConfig):
    package: str = "main"
    no_main: bool = False
    no_apidocs: bool = False


class ClientConfig(GenerationConfig):
    package: str = "client"
