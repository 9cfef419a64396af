from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from raml_codegen.cli import main
from raml_codegen.config import ClientConfig, ServerConfig

FIXTURES = Path(__file__).parent / "fixtures"


class TestCliServer:
    def test_go_server(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "server",
            "--ramlfile", str(FIXTURES / "api.raml"),
            "--dir", str(tmp_path),
        ])

        assert result.exit_code == 0, result.output
        assert result.output == ""
        assert (tmp_path / "main.go").exists()
        assert (tmp_path / "widgets_if.go").exists()

    def test_python_server(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "server",
            "-l", "python",
            "--ramlfile", str(FIXTURES / "api.raml"),
            "--dir", str(tmp_path),
            "--no-main",
        ])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "widgets_api.py").exists()
        assert not (tmp_path / "app.py").exists()

    @patch("raml_codegen.cli.generate_server")
    def test_options_passed_through(self, mock_generate, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "server",
            "--ramlfile", str(FIXTURES / "api.raml"),
            "--dir", str(tmp_path),
            "--package", "api",
            "--import-path", "example.org/api",
            "--no-apidocs",
            "--overwrite",
        ])

        assert result.exit_code == 0, result.output
        config = mock_generate.call_args[0][0]
        assert isinstance(config, ServerConfig)
        assert config.package == "api"
        assert config.import_path == "example.org/api"
        assert config.no_apidocs is True
        assert config.overwrite is True
        assert config.no_main is False

    def test_malformed_ramlfile(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "server",
            "--ramlfile", str(FIXTURES / "malformed.raml"),
            "--dir", str(tmp_path),
        ])

        assert result.exit_code != 0
        assert "Error:" in result.output

    def test_library_cycle(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "server",
            "--ramlfile", str(FIXTURES / "cycle" / "api.raml"),
            "--dir", str(tmp_path),
        ])

        assert result.exit_code == 1
        assert "cycle" in result.output

    def test_missing_ramlfile(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["server", "--ramlfile", str(tmp_path / "nope.raml")])

        assert result.exit_code == 2

    def test_unknown_language(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "server", "-l", "cobol", "--ramlfile", str(FIXTURES / "api.raml"),
        ])

        assert result.exit_code == 2


class TestCliClient:
    def test_go_client(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "client",
            "--ramlfile", str(FIXTURES / "api.raml"),
            "--dir", str(tmp_path),
        ])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "client_client.go").exists()

    @patch("raml_codegen.cli.generate_client")
    def test_defaults(self, mock_generate):
        runner = CliRunner()
        result = runner.invoke(main, ["client", "--ramlfile", str(FIXTURES / "api.raml")])

        assert result.exit_code == 0, result.output
        config = mock_generate.call_args[0][0]
        assert isinstance(config, ClientConfig)
        assert config.language == "go"
        assert config.package == "client"
        assert config.output_dir == Path(".")


class TestCliMisc:
    def test_spec_not_implemented(self):
        runner = CliRunner()
        result = runner.invoke(main, ["spec"])

        assert result.exit_code != 0
        assert "not implemented" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    @patch("raml_codegen.cli.setup_logging")
    @patch("raml_codegen.cli.generate_server")
    def test_debug_flag(self, mock_generate, mock_logging):
        runner = CliRunner()
        result = runner.invoke(main, ["-d", "server", "--ramlfile", str(FIXTURES / "api.raml")])

        assert result.exit_code == 0, result.output
        mock_logging.assert_called_once_with("DEBUG")
