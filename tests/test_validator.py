from raml_codegen.codegen.validator import validate_files, validate_python


class TestValidatePython:
    def test_valid_code(self):
        errors = validate_python({"app.py": "import os\nx = 1\n"})
        assert errors == {}

    def test_syntax_error(self):
        errors = validate_python({"users_api.py": "def foo(\n"})
        assert "users_api.py" in errors
        assert "SyntaxError" in errors["users_api.py"]

    def test_skips_non_python(self):
        errors = validate_python({"main.go": "package main\nfunc (", "app.py": "x = 1"})
        assert errors == {}

    def test_skips_empty_init(self):
        errors = validate_python({"__init__.py": ""})
        assert errors == {}

    def test_nested_path(self):
        errors = validate_python({"libs/common/User.py": "class User(:\n"})
        assert list(errors) == ["libs/common/User.py"]


class TestValidateFiles:
    def test_all_valid(self):
        files = {"app.py": "x = 1\n", "requirements.txt": "Flask>=2.0\n", "index.html": "<html></html>"}
        assert validate_files(files) == {}

    def test_reports_python_errors(self):
        errors = validate_files({"app.py": "x = (\n", "main.go": "package main\n"})
        assert list(errors) == ["app.py"]
