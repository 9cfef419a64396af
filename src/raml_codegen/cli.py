"""CLI entry point for raml-codegen."""

from pathlib import Path

import click

from raml_codegen.codegen.generate import generate_client, generate_server
from raml_codegen.config import LANGUAGES, ClientConfig, ServerConfig
from raml_codegen.errors import RamlError
from raml_codegen.logs import setup_logging


@click.group()
@click.version_option("0.1.0", prog_name="raml-codegen")
@click.option("-d", "--debug", is_flag=True, help="Enable debug logging.")
def main(debug: bool):
    """raml-codegen — generate server and client code from RAML specifications."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option("-l", "--language", default="go", type=click.Choice(LANGUAGES), help="Target language.")
@click.option("--dir", "output_dir", default=".", type=click.Path(file_okay=False, path_type=Path), help="Output directory.")
@click.option("--ramlfile", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Source RAML file.")
@click.option("--package", default="main", help="Package name of the generated code.")
@click.option("--import-path", default="", help="Import path of the generated code.")
@click.option("--no-main", is_flag=True, help="Don't generate the entry point file.")
@click.option("--no-apidocs", is_flag=True, help="Don't generate API documentation.")
@click.option("--overwrite", is_flag=True, help="Overwrite existing files.")
def server(language: str, output_dir: Path, ramlfile: Path, package: str, import_path: str,
           no_main: bool, no_apidocs: bool, overwrite: bool):
    """Generate server code from a RAML specification."""
    config = ServerConfig(
        language=language,
        output_dir=output_dir,
        ramlfile=ramlfile,
        package=package,
        import_path=import_path,
        no_main=no_main,
        no_apidocs=no_apidocs,
        overwrite=overwrite,
    )
    try:
        generate_server(config)
    except RamlError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@click.option("-l", "--language", default="go", type=click.Choice(LANGUAGES), help="Target language.")
@click.option("--dir", "output_dir", default=".", type=click.Path(file_okay=False, path_type=Path), help="Output directory.")
@click.option("--ramlfile", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Source RAML file.")
@click.option("--package", default="client", help="Package name of the generated code.")
@click.option("--import-path", default="", help="Import path of the generated code.")
@click.option("--overwrite", is_flag=True, help="Overwrite existing files.")
def client(language: str, output_dir: Path, ramlfile: Path, package: str, import_path: str, overwrite: bool):
    """Generate client code from a RAML specification."""
    config = ClientConfig(
        language=language,
        output_dir=output_dir,
        ramlfile=ramlfile,
        package=package,
        import_path=import_path,
        overwrite=overwrite,
    )
    try:
        generate_client(config)
    except RamlError as e:
        raise click.ClickException(str(e)) from e


@main.command()
def spec():
    """Generate a RAML specification from code (not implemented)."""
    raise click.ClickException("spec generation is not implemented")
