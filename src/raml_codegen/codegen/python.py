"""Python backend — Flask server blueprints and a requests-based client."""

import json
import keyword
import re
from pathlib import Path

from raml_codegen.codegen.base import (
    BODY_VERBS,
    Backend,
    ClientMethod,
    Middleware,
    ServerMethod,
    check_create_dir,
    root_name,
    scheme_kind,
    scheme_scopes,
    walk_methods,
)
from raml_codegen.config import ClientConfig, ServerConfig
from raml_codegen.naming import (
    get_resource_params,
    lib_rel_dir,
    method_name,
    normalize_pkg_name,
    paramize_uri,
    replace_non_alphanumerics,
)
from raml_codegen.raml.base import Document, Library, Method, Resource, SecurityScheme, Type
from raml_codegen.raml.namespace import SUPPORT_ALIAS, import_path_for, split_qualified_name

PY_SCALARS = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "object": "dict",
    "array": "list",
    "any": "object",
    "file": "bytes",
    "date-only": "str",
    "time-only": "str",
    "datetime-only": "str",
    "datetime": "str",
    "date": "str",
    "nil": "None",
}

_URI_PARAM_RE = re.compile(r"\{([^}]+)\}")


def py_str(value: str) -> str:
    """Double-quoted Python string literal."""
    return json.dumps(value)


def py_identifier(name: str) -> str:
    ident = replace_non_alphanumerics(name) or "_"
    if ident[0].isdigit():
        ident = "_" + ident
    if keyword.iskeyword(ident):
        ident += "_"
    return ident


def docstring_lines(text: str, indent: str) -> list[str]:
    text = text.replace("\\", "\\\\").replace('"""', "'''")
    return [f"{indent}{line}".rstrip() for line in text.strip().splitlines()]


def module_docstring(text: str) -> str:
    """One-line docstring of a generated module."""
    text = " ".join(text.split()).replace("\\", "\\\\").replace('"', '\\"')
    return f'"""{text}"""'


def flask_route(uri: str) -> str:
    """'/users/{userId}' -> '/users/<userId>'."""
    return _URI_PARAM_RE.sub(lambda m: f"<{py_identifier(m.group(1))}>", uri)


def dotted(path: str) -> str:
    return ".".join(part for part in path.split("/") if part)


def is_object_type(t: Type, base: str | None) -> bool:
    """Whether `t` renders as a class (object or subtype of a declared type)."""
    if t.properties:
        return True
    if base is None:
        return t.items is None
    if base == "object":
        return True
    return base not in PY_SCALARS and not base.endswith("[]") and "|" not in base


class PythonBackend(Backend):
    language = "python"

    # -- modules --------------------------------------------------------------

    def module(self, name: str, doc: Document | None = None) -> str:
        """Dotted module path of generated module `name` living beside `doc`'s code."""
        parts = [dotted(self.import_path)]
        if isinstance(doc, Library):
            parts.append(dotted(normalize_pkg_name(lib_rel_dir(doc.filename))))
        parts.append(name)
        return ".".join(p for p in parts if p)

    def type_import(self, type_name: str, doc: Document) -> tuple[str, str]:
        """(import line, python name) of a type reference; no import for builtins."""
        type_name = type_name.strip()
        if type_name.endswith("[]") or "|" in type_name:
            return "", "list" if type_name.endswith("[]") else "object"
        if type_name in PY_SCALARS:
            return "", PY_SCALARS[type_name]
        alias, bare = split_qualified_name(type_name)
        if alias == SUPPORT_ALIAS:
            return "", "str"
        if alias:
            lib_module = dotted(import_path_for(type_name, self.import_path, doc))
            return f"from {lib_module}.{bare} import {bare}", bare
        return f"from {self.module(bare, doc)} import {bare}", bare

    # -- types ----------------------------------------------------------------

    def emit_types(self, doc: Document, package: str) -> dict[str, str]:
        return {f"{name}.py": self._render_type(t, doc) for name, t in doc.types.items()}

    def _render_type(self, t: Type, doc: Document) -> str:
        if t.enum:
            return self._render_enum(t)
        base = t.type if isinstance(t.type, str) else (t.type[0] if t.type else None)
        if is_object_type(t, base):
            return self._render_class(t, base, doc)
        return self._render_alias(t, base, doc)

    def _render_enum(self, t: Type) -> str:
        lines = [
            module_docstring(f"Auto-generated enum {t.name}"),
            "",
            "from enum import Enum",
            "",
            "",
            f"class {t.name}(Enum):",
        ]
        if t.description:
            lines.extend(['    """'] + docstring_lines(t.description, "    ") + ['    """', ""])
        for value in t.enum:
            lines.append(f"    {py_identifier(str(value))} = {py_str(str(value))}")
        return "\n".join(lines) + "\n"

    def _render_alias(self, t: Type, base: str | None, doc: Document) -> str:
        if t.items and base in (None, "array"):
            base = f"{t.items}[]"
        import_line, target = self.type_import(base or "string", doc)
        lines = [module_docstring(f"Auto-generated alias {t.name}"), ""]
        if import_line:
            lines.extend([import_line, ""])
        if t.description:
            lines.extend(f"# {line}" for line in t.description.strip().splitlines())
        lines.append(f"{t.name} = {target}")
        return "\n".join(lines) + "\n"

    def _render_class(self, t: Type, base: str | None, doc: Document) -> str:
        parent = ""
        imports = []
        if base and base not in PY_SCALARS:
            import_line, parent = self.type_import(base, doc)
            if import_line:
                imports.append(import_line)

        props = sorted(t.properties.values(), key=lambda p: not p.required)
        args = ["self"]
        args += [py_identifier(p.name) for p in props if p.required]
        args += [f"{py_identifier(p.name)}=None" for p in props if not p.required]
        if parent:
            args.append("**kwargs")

        lines = [module_docstring(f"Auto-generated class for {t.name}"), ""]
        if imports:
            lines.extend(imports + [""])
        lines.append("")
        lines.append(f"class {t.name}({parent or 'object'}):")
        lines.append('    """')
        lines.extend(docstring_lines(t.description or f"{t.name} data type", "    "))
        for p in t.properties.values():
            kind = p.type if p.type != "array" or not p.items else f"{p.items}[]"
            lines.append(f"    {p.name}: {kind}{'' if p.required else ' (optional)'}")
        lines.append('    """')
        lines.append("")
        lines.append(f"    def __init__({', '.join(args)}):")
        if parent:
            lines.append("        super().__init__(**kwargs)")
        for p in props:
            ident = py_identifier(p.name)
            lines.append(f"        self.{ident} = {ident}")
        if not props and not parent:
            lines.append("        pass")
        lines.append("")
        lines.append("    def as_dict(self):")
        lines.append("        data = super().as_dict()" if parent else "        data = {}")
        for p in props:
            ident = py_identifier(p.name)
            lines.append(f"        if self.{ident} is not None:")
            lines.append(f"            data[{py_str(p.name)}] = _as_value(self.{ident})")
        lines.append("        return data")
        lines.extend([
            "",
            "",
            "def _as_value(value):",
            "    if hasattr(value, \"as_dict\"):",
            "        return value.as_dict()",
            "    if isinstance(value, list):",
            "        return [_as_value(v) for v in value]",
            "    return value",
        ])
        return "\n".join(lines) + "\n"

    # -- security -------------------------------------------------------------

    def middleware_name(self, scheme: SecurityScheme) -> str:
        return f"{scheme_kind(scheme)}_{py_identifier(scheme.name)}"

    def emit_security_schemes(self, doc: Document, package: str) -> dict[str, str]:
        return {
            f"{self.middleware_name(s)}.py": self._render_security(s)
            for s in doc.security_schemes.values()
        }

    def _auth_header(self, scheme: SecurityScheme) -> str:
        headers = list(scheme.described_by.headers)
        return headers[0] if headers else "Authorization"

    def _render_security(self, scheme: SecurityScheme) -> str:
        name = self.middleware_name(scheme)
        kind = scheme_kind(scheme)
        header = py_str(self._auth_header(scheme))
        if kind == "oauth2":
            check = [
                f"            token = request.headers.get({header}, \"\")",
                "            if not token:",
                "                return jsonify(message=\"missing access token\"), 401",
                "            if token.startswith(\"Bearer \"):",
                "                token = token[len(\"Bearer \"):]",
                "            # check the token and its scopes here",
            ]
        elif kind in ("basic_auth", "digest_auth"):
            check = [
                "            if request.authorization is None:",
                "                return jsonify(message=\"authentication required\"), 401",
            ]
        else:
            check = [
                f"            if {header} not in request.headers:",
                "                return jsonify(message=\"unauthorized\"), 401",
            ]
        lines = [
            module_docstring(f"Auto-generated {scheme.type or 'custom'} middleware for security scheme {scheme.name}"),
            "",
            "from functools import wraps",
            "",
            "from flask import jsonify, request",
            "",
            "",
            f"def {name}(scopes=None):",
            '    """',
        ]
        lines.extend(docstring_lines(scheme.description or f"Enforce the {scheme.name} security scheme.", "    "))
        lines.extend([
            '    """',
            "    scopes = scopes or []",
            "",
            "    def decorator(f):",
            "        @wraps(f)",
            "        def decorated(*args, **kwargs):",
        ])
        lines.extend(check)
        lines.extend([
            "            return f(*args, **kwargs)",
            "        return decorated",
            "    return decorator",
        ])
        return "\n".join(lines) + "\n"

    def middleware_for(self, scheme: SecurityScheme, qualified_name: str, params: dict) -> Middleware:
        name = self.middleware_name(scheme)
        alias, _ = split_qualified_name(qualified_name)
        if alias:
            module = f"{dotted(import_path_for(qualified_name, self.import_path, self.api_def))}.{name}"
        else:
            module = self.module(name)
        return Middleware(scheme=qualified_name, name=name, import_path=module, args=repr(scheme_scopes(params)))

    # -- methods --------------------------------------------------------------

    def resource_params(self, resource: Resource) -> list[str]:
        return [py_identifier(p) for p in get_resource_params(resource)]

    def emit_server_method(self, resource: Resource, method: Method) -> ServerMethod:
        return ServerMethod(
            verb=method.verb,
            method_name=method_name(resource, method.name, method.display_name),
            params=self.resource_params(resource),
            route=flask_route(resource.full_uri),
            description=method.description,
            middlewares=self.security_middlewares(resource, method),
            req_body=method.request_body_type(),
            resource_uri=resource.full_uri,
        )

    def emit_client_method(self, resource: Resource, method: Method) -> ClientMethod:
        has_body = method.verb in BODY_VERBS
        params = ["self"] + (["data"] if has_body else []) + self.resource_params(resource)
        params += ["headers=None", "query_params=None"]
        return ClientMethod(
            verb=method.verb,
            method_name=method_name(resource, method.name, method.display_name),
            params=params,
            uri=paramize_uri(resource.full_uri, py_identifier),
            has_body=has_body,
            description=method.description,
            resource_uri=resource.full_uri,
        )

    # -- server ---------------------------------------------------------------

    def emit_library(self, lib: Library, root_dir: Path) -> None:
        rel_dir = normalize_pkg_name(lib_rel_dir(lib.filename))
        parts = [p for p in rel_dir.split("/") if p]
        for i in range(1, len(parts) + 1):
            package_dir = root_dir.joinpath(*parts[:i])
            check_create_dir(package_dir)
            self.write_file(package_dir / "__init__.py", "")
        super().emit_library(lib, root_dir)

    def server_files(self, config: ServerConfig) -> dict[str, str]:
        files = {}
        roots = list(self.api_def.resources.values())
        for resource in roots:
            files[f"{root_name(resource)}_api.py"] = self._render_blueprint(resource)
        if not config.no_main:
            files["app.py"] = self._render_app(roots, config)
        files["requirements.txt"] = "Flask>=2.0\n"
        return files

    def _render_blueprint(self, resource: Resource) -> str:
        blueprint = f"{root_name(resource)}_api"
        methods = [self.emit_server_method(r, m) for r, m in walk_methods(resource)]

        imports = []
        for sm in methods:
            for mw in sm.middlewares:
                line = f"from {mw.import_path} import {mw.name}"
                if line not in imports:
                    imports.append(line)

        lines = [
            module_docstring(f"Auto-generated routes for {resource.uri}"),
            "",
            "from flask import Blueprint, jsonify, request",
        ]
        if imports:
            lines.append("")
            lines.extend(sorted(imports))
        lines.extend(["", f"{blueprint} = Blueprint({py_str(blueprint)}, __name__)"])

        for sm in methods:
            lines.extend(["", ""])
            lines.append(f"@{blueprint}.route({py_str(sm.route)}, methods=[{py_str(sm.verb)}])")
            for mw in sm.middlewares:
                lines.append(f"@{mw.name}({mw.args})")
            lines.append(f"def {sm.method_name}({', '.join(sm.params)}):")
            lines.append('    """')
            if sm.description:
                lines.extend(docstring_lines(sm.description, "    "))
            lines.append(f"    It is handler for {sm.verb} {sm.resource_uri}")
            lines.append('    """')
            if sm.req_body:
                lines.append(f"    inputs = request.get_json()  # {sm.req_body}")
                lines.append("    return jsonify(inputs)")
            else:
                lines.append("    return jsonify()")
        return "\n".join(lines) + "\n"

    def _render_app(self, roots: list[Resource], config: ServerConfig) -> str:
        lines = [
            module_docstring(f"Auto-generated server for {self.api_def.title}"),
            "",
        ]
        if not config.no_apidocs:
            lines.extend(["import os", ""])
        lines.append("from flask import Flask" + (", send_from_directory" if not config.no_apidocs else ""))
        if roots:
            lines.append("")
        for resource in roots:
            blueprint = f"{root_name(resource)}_api"
            lines.append(f"from {self.module(blueprint)} import {blueprint}")
        lines.extend(["", "app = Flask(__name__)", ""])
        for resource in roots:
            lines.append(f"app.register_blueprint({root_name(resource)}_api)")
        if not config.no_apidocs:
            lines.extend([
                "",
                'apidocs_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "apidocs")',
                "",
                "",
                '@app.route("/apidocs/<path:path>")',
                "def apidocs(path):",
                "    return send_from_directory(apidocs_dir, path)",
                "",
                "",
                '@app.route("/")',
                "def home():",
                '    return send_from_directory(apidocs_dir, "index.html")',
            ])
        lines.extend([
            "",
            "",
            'if __name__ == "__main__":',
            "    app.run(debug=True, port=5000)",
        ])
        return "\n".join(lines) + "\n"

    # -- client ---------------------------------------------------------------

    def client_files(self, config: ClientConfig) -> dict[str, str]:
        return {
            "client.py": self._render_client(),
            "__init__.py": '"""Auto-generated client package."""\n\nfrom .client import Client\n\n__all__ = ["Client"]\n',
            "requirements.txt": "requests>=2.28\n",
        }

    def base_uri(self) -> str:
        return self.api_def.base_uri.replace("{version}", self.api_def.version)

    def _render_client(self) -> str:
        lines = [
            module_docstring(f"Auto-generated client for {self.api_def.title}"),
            "",
            "import requests",
            "",
            f"BASE_URI = {py_str(self.base_uri())}",
            "",
            "",
            "class Client:",
            "    def __init__(self, base_uri=BASE_URI):",
            "        self.base_url = base_uri",
            "        self.session = requests.Session()",
            '        self.session.headers.update({"Content-Type": "application/json"})',
            "",
            "    def set_auth_header(self, val):",
            '        """Set the Authorization header sent with every request."""',
            '        self.session.headers.update({"Authorization": val})',
        ]
        for resource in self.api_def.all_resources():
            for method in resource.methods.values():
                cm = self.emit_client_method(resource, method)
                lines.append("")
                lines.append(f"    def {cm.method_name}({', '.join(cm.params)}):")
                lines.append('        """')
                if cm.description:
                    lines.extend(docstring_lines(cm.description, "        "))
                lines.append(f"        It is method for {cm.verb} {cm.resource_uri}")
                lines.append('        """')
                lines.append(f"        uri = self.base_url + {cm.uri}")
                body = "json=data, " if cm.has_body else ""
                lines.append(
                    f"        return self.session.{cm.verb.lower()}(uri, {body}headers=headers, params=query_params)"
                )
        return "\n".join(lines) + "\n"
