"""Go backend — gorilla/mux server scaffolding and a net/http client."""

import json
import re

from raml_codegen.codegen.base import (
    BODY_VERBS,
    Backend,
    ClientMethod,
    Middleware,
    ServerMethod,
    root_name,
    scheme_kind,
    scheme_scopes,
    walk_methods,
)
from raml_codegen.config import ClientConfig, GenerationConfig, ServerConfig
from raml_codegen.naming import normalize_pkg_name, paramize_uri, upper_camel_method_name
from raml_codegen.raml.base import APIDefinition, Document, Method, NamedParameter, Resource, SecurityScheme, Type
from raml_codegen.raml.namespace import SUPPORT_ALIAS, import_path_for, split_qualified_name

GO_SCALARS = {
    "string": "string",
    "integer": "int",
    "number": "float64",
    "boolean": "bool",
    "file": "string",
    "object": "map[string]interface{}",
    "array": "[]interface{}",
    "any": "interface{}",
    "nil": "interface{}",
    "date-only": "goraml.Date",
    "time-only": "goraml.TimeOnly",
    "datetime-only": "goraml.DatetimeOnly",
    "datetime": "goraml.DateTime",
    "date": "goraml.Date",
}

_WORD_SPLIT_RE = re.compile(r"[^A-Za-z0-9]+")

SUPPORT_FILE = f"{SUPPORT_ALIAS}/datetime.go"


def go_name(name: str) -> str:
    """Exported Go identifier: 'user-id' -> 'UserId'."""
    ident = "".join(w[:1].upper() + w[1:] for w in _WORD_SPLIT_RE.split(name) if w)
    if not ident or ident[0].isdigit():
        ident = "X" + ident
    return ident


def go_str(value: str) -> str:
    return json.dumps(value)


def go_comment(text: str, indent: str = "") -> list[str]:
    return [f"{indent}// {line}".rstrip() for line in text.strip().splitlines()]


def render_imports(imports: list[str]) -> list[str]:
    """Standard library imports first, then the rest, in one import block."""
    std = sorted(i for i in set(imports) if "." not in i.split('"')[1].split("/")[0])
    other = sorted(i for i in set(imports) if i not in std)
    if not std and not other:
        return []
    lines = ["import ("]
    lines.extend(f"\t{i}" for i in std)
    if std and other:
        lines.append("")
    lines.extend(f"\t{i}" for i in other)
    lines.append(")")
    return lines


class GoBackend(Backend):
    language = "go"
    default_import_path = "examples.com/ramlcode"

    def __init__(self, api_def: APIDefinition, config: GenerationConfig):
        super().__init__(api_def, config)
        if isinstance(config, ClientConfig):
            self.default_import_path = "examples.com/client"

    # -- type references ------------------------------------------------------

    def go_type(self, type_name: str) -> str:
        """RAML type expression -> Go type expression."""
        t = type_name.strip()
        if "|" in t:
            return "interface{}"
        if t.endswith("[]"):
            return "[]" + self.go_type(t[:-2])
        if t in GO_SCALARS:
            return GO_SCALARS[t]
        alias, bare = split_qualified_name(t)
        if alias:
            return f"{normalize_pkg_name(alias)}.{bare}"
        return t

    def type_imports(self, type_names: list[str], doc: Document) -> list[str]:
        """Import specs needed by the Go renditions of `type_names`."""
        imports = []
        for name in type_names:
            name = name.strip()
            while name.endswith("[]"):
                name = name[:-2]
            if "|" in name:
                continue
            if GO_SCALARS.get(name, "").startswith(f"{SUPPORT_ALIAS}."):
                name = GO_SCALARS[name]
            alias, _ = split_qualified_name(name)
            if not alias:
                continue
            path = import_path_for(name, self.import_path, doc)
            if alias == SUPPORT_ALIAS:
                imports.append(go_str(path))
            else:
                imports.append(f"{normalize_pkg_name(alias)} {go_str(path)}")
        return imports

    def prop_type(self, p: NamedParameter) -> str:
        if p.type == "array" and p.items:
            return f"{p.items}[]"
        return p.type

    # -- types ----------------------------------------------------------------

    def emit_types(self, doc: Document, package: str) -> dict[str, str]:
        return {f"{name}_type.go": self._render_type(t, doc, package) for name, t in doc.types.items()}

    def _render_type(self, t: Type, doc: Document, package: str) -> str:
        bases = t.type if isinstance(t.type, list) else ([t.type] if t.type else [])
        if t.enum:
            body = self._render_enum(t, bases[0] if bases else "string")
            refs = bases[:1]
        elif t.properties or not bases or bases == ["object"] or self._all_declared(bases):
            if not t.properties and not bases and t.items:
                body = [f"type {t.name} []{self.go_type(t.items)}"]
                refs = [t.items]
            else:
                body = self._render_struct(t, [b for b in bases if b != "object"])
                refs = [b for b in bases if b != "object"] + [self.prop_type(p) for p in t.properties.values()]
        else:
            base = bases[0]
            if base == "array" and t.items:
                base = f"{t.items}[]"
            body = [f"type {t.name} {self.go_type(base)}"]
            refs = [base]

        lines = [f"package {package}", ""]
        imports = render_imports(self.type_imports(refs, doc))
        if imports:
            lines.extend(imports + [""])
        lines.extend(go_comment(t.description or f"{t.name} is a generated type"))
        lines.extend(body)
        return "\n".join(lines) + "\n"

    def _all_declared(self, bases: list[str]) -> bool:
        return all(b not in GO_SCALARS and not b.endswith("[]") and "|" not in b for b in bases)

    def _render_enum(self, t: Type, base: str) -> list[str]:
        lines = [f"type {t.name} {self.go_type(base)}", "", "const ("]
        for value in t.enum:
            literal = go_str(str(value)) if self.go_type(base) == "string" else str(value)
            lines.append(f"\t{t.name}{go_name(str(value))} {t.name} = {literal}")
        lines.append(")")
        return lines

    def _render_struct(self, t: Type, bases: list[str]) -> list[str]:
        lines = [f"type {t.name} struct {{"]
        for base in bases:
            lines.append(f"\t{self.go_type(base)}")
        for p in t.properties.values():
            tag = p.name if p.required else f"{p.name},omitempty"
            validate = ' validate:"nonzero"' if p.required else ""
            field_type = self.go_type(self.prop_type(p))
            lines.append(f"\t{go_name(p.name)} {field_type} `json:{go_str(tag)}{validate}`")
        lines.append("}")
        return lines

    # -- security -------------------------------------------------------------

    def middleware_type(self, scheme: SecurityScheme) -> str:
        return f"{go_name(scheme_kind(scheme))}{go_name(scheme.name)}Middleware"

    def emit_security_schemes(self, doc: Document, package: str) -> dict[str, str]:
        return {
            f"{scheme_kind(s)}_{normalize_pkg_name(s.name)}_middleware.go": self._render_security(s, package)
            for s in doc.security_schemes.values()
        }

    def _render_security(self, scheme: SecurityScheme, package: str) -> str:
        mw = self.middleware_type(scheme)
        headers = list(scheme.described_by.headers)
        header = go_str(headers[0] if headers else "Authorization")
        lines = [
            f"package {package}",
            "",
            'import "net/http"',
            "",
            f"// {mw} enforces the {scheme.name} security scheme",
        ]
        if scheme.description:
            lines.extend(go_comment(scheme.description))
        lines.extend([
            f"type {mw} struct {{",
            "\tscopes []string",
            "}",
            "",
            f"// New{mw} creates a new {mw}",
            f"func New{mw}(scopes []string) *{mw} {{",
            f"\treturn &{mw}{{scopes: scopes}}",
            "}",
            "",
            "// Handler returns the HTTP handler of the middleware",
            f"func (m *{mw}) Handler(next http.Handler) http.Handler {{",
            "\treturn http.HandlerFunc(func(w http.ResponseWriter, r *http.Request) {",
            f"\t\tif r.Header.Get({header}) == \"\" {{",
            "\t\t\tw.WriteHeader(http.StatusUnauthorized)",
            "\t\t\treturn",
            "\t\t}",
            "\t\tnext.ServeHTTP(w, r)",
            "\t})",
            "}",
        ])
        return "\n".join(lines) + "\n"

    def middleware_for(self, scheme: SecurityScheme, qualified_name: str, params: dict) -> Middleware:
        scopes = ", ".join(go_str(s) for s in scheme_scopes(params))
        name = f"New{self.middleware_type(scheme)}"
        alias = self.scheme_alias(qualified_name)
        import_path = ""
        if alias:
            name = f"{alias}.{name}"
            import_path = f"{alias} {go_str(import_path_for(qualified_name, self.import_path, self.api_def))}"
        return Middleware(scheme=qualified_name, name=name, import_path=import_path, args=f"[]string{{{scopes}}}")

    # -- methods --------------------------------------------------------------

    def emit_server_method(self, resource: Resource, method: Method) -> ServerMethod:
        return ServerMethod(
            verb=method.verb,
            method_name=upper_camel_method_name(resource, method.name, method.display_name),
            params=self.resource_params(resource),
            route=resource.full_uri,
            description=method.description,
            middlewares=self.security_middlewares(resource, method),
            req_body=method.request_body_type(),
            resource_uri=resource.full_uri,
        )

    def emit_client_method(self, resource: Resource, method: Method) -> ClientMethod:
        has_body = method.verb in BODY_VERBS
        params = ["c *Client"] + (["body interface{}"] if has_body else [])
        params += [f"{p} string" for p in self.resource_params(resource)]
        params.append("headers, queryParams map[string]interface{}")
        return ClientMethod(
            verb=method.verb,
            method_name=upper_camel_method_name(resource, method.name, method.display_name),
            params=params,
            uri=f"c.BaseURI+{paramize_uri(resource.full_uri)}",
            has_body=has_body,
            description=method.description,
            resource_uri=resource.full_uri,
        )

    # -- server ---------------------------------------------------------------

    def server_files(self, config: ServerConfig) -> dict[str, str]:
        files = {}
        roots = list(self.api_def.resources.values())
        for resource in roots:
            methods = [self.emit_server_method(r, m) for r, m in walk_methods(resource)]
            files[f"{root_name(resource)}_if.go"] = self._render_interface(resource, methods, config.package)
            files[f"{root_name(resource)}_api.go"] = self._render_api(resource, methods, config.package)
        if not config.no_main:
            files["main.go"] = self._render_main(roots, config)
        files[SUPPORT_FILE] = self._render_support()
        return files

    def _render_interface(self, resource: Resource, methods: list[ServerMethod], package: str) -> str:
        name = go_name(root_name(resource))
        imports = ['"net/http"', '"github.com/gorilla/mux"']
        imports += [mw.import_path for sm in methods for mw in sm.middlewares if mw.import_path]

        lines = [f"package {package}", ""] + render_imports(imports) + [""]
        lines.append(f"// {name}Interface is interface for {resource.uri} root endpoint")
        lines.append(f"type {name}Interface interface {{")
        for sm in methods:
            lines.append(f"\t// {sm.method_name} is the handler for {sm.verb} {sm.resource_uri}")
            lines.append(f"\t{sm.method_name}(http.ResponseWriter, *http.Request)")
        lines.extend(["}", ""])
        lines.append(f"// {name}InterfaceRoutes is routing for {resource.uri} root endpoint")
        lines.append(f"func {name}InterfaceRoutes(r *mux.Router, i {name}Interface) {{")
        for sm in methods:
            handler = f"http.HandlerFunc(i.{sm.method_name})"
            for mw in reversed(sm.middlewares):
                handler = f"{mw.name}({mw.args}).Handler({handler})"
            lines.append(f"\tr.Handle({go_str(sm.route)}, {handler}).Methods({go_str(sm.verb)})")
        lines.append("}")
        return "\n".join(lines) + "\n"

    def _render_api(self, resource: Resource, methods: list[ServerMethod], package: str) -> str:
        name = go_name(root_name(resource))
        imports = ['"net/http"']
        bodies = [sm.req_body for sm in methods if sm.req_body]
        if bodies:
            imports.append('"encoding/json"')
            imports += self.type_imports(bodies, self.api_def)

        lines = [f"package {package}", ""] + render_imports(imports) + [""]
        lines.append(f"// {name}API is API implementation of {resource.uri} root endpoint")
        lines.extend([f"type {name}API struct {{", "}"])
        for sm in methods:
            lines.append("")
            lines.append(f"// {sm.method_name} is the handler for {sm.verb} {sm.resource_uri}")
            if sm.description:
                lines.extend(go_comment(sm.description))
            lines.append(f"func (api {name}API) {sm.method_name}(w http.ResponseWriter, r *http.Request) {{")
            if sm.req_body:
                lines.extend([
                    f"\tvar reqBody {self.go_type(sm.req_body)}",
                    "",
                    "\t// decode request",
                    "\tif err := json.NewDecoder(r.Body).Decode(&reqBody); err != nil {",
                    "\t\tw.WriteHeader(http.StatusBadRequest)",
                    "\t\treturn",
                    "\t}",
                ])
            lines.append("\tw.WriteHeader(http.StatusNotImplemented)")
            lines.append("}")
        return "\n".join(lines) + "\n"

    def _render_main(self, roots: list[Resource], config: ServerConfig) -> str:
        imports = ['"log"', '"net/http"', '"github.com/gorilla/mux"']
        lines = [f"package {config.package}", ""] + render_imports(imports) + [""]
        lines.extend(["func main() {", "\tr := mux.NewRouter()", ""])
        for resource in roots:
            name = go_name(root_name(resource))
            lines.append(f"\t{name}InterfaceRoutes(r, {name}API{{}})")
        if not config.no_apidocs:
            lines.extend([
                "",
                "\t// API documentation",
                '\tr.PathPrefix("/apidocs/").Handler(http.StripPrefix("/apidocs/", '
                'http.FileServer(http.Dir("./apidocs/"))))',
            ])
        lines.extend([
            "",
            '\tlog.Println("starting server")',
            '\tlog.Fatal(http.ListenAndServe(":5000", r))',
            "}",
        ])
        return "\n".join(lines) + "\n"

    # -- client ---------------------------------------------------------------

    def base_uri(self) -> str:
        return self.api_def.base_uri.replace("{version}", self.api_def.version)

    def client_files(self, config: ClientConfig) -> dict[str, str]:
        return {
            f"client_{normalize_pkg_name(config.package)}.go": self._render_client(config.package),
            SUPPORT_FILE: self._render_support(),
        }

    def _render_client(self, package: str) -> str:
        imports = ['"bytes"', '"encoding/json"', '"fmt"', '"net/http"', '"net/url"']
        lines = [f"package {package}", ""] + render_imports(imports) + [""]
        lines.extend([
            "const (",
            f"\tdefaultBaseURI = {go_str(self.base_uri())}",
            ")",
            "",
            f"// Client is the API client of {self.api_def.title}",
            "type Client struct {",
            "\tclient     http.Client",
            "\tAuthHeader string // sent as Authorization header when not empty",
            "\tBaseURI    string",
            "}",
            "",
            "// NewClient creates a client using the default base URI",
            "func NewClient() *Client {",
            "\treturn &Client{",
            "\t\tclient:  http.Client{},",
            "\t\tBaseURI: defaultBaseURI,",
            "\t}",
            "}",
            "",
            "func (c *Client) doRequest(method, urlStr string, body interface{}, "
            "headers, queryParams map[string]interface{}) (*http.Response, error) {",
            "\tvar payload []byte",
            "\tif body != nil {",
            "\t\tb, err := json.Marshal(body)",
            "\t\tif err != nil {",
            "\t\t\treturn nil, err",
            "\t\t}",
            "\t\tpayload = b",
            "\t}",
            "\treq, err := http.NewRequest(method, urlStr, bytes.NewReader(payload))",
            "\tif err != nil {",
            "\t\treturn nil, err",
            "\t}",
            "\tif len(queryParams) > 0 {",
            "\t\tq := url.Values{}",
            "\t\tfor k, v := range queryParams {",
            "\t\t\tq.Set(k, fmt.Sprint(v))",
            "\t\t}",
            "\t\treq.URL.RawQuery = q.Encode()",
            "\t}",
            "\tfor k, v := range headers {",
            "\t\treq.Header.Set(k, fmt.Sprint(v))",
            "\t}",
            "\tif c.AuthHeader != \"\" {",
            "\t\treq.Header.Set(\"Authorization\", c.AuthHeader)",
            "\t}",
            "\treq.Header.Set(\"Content-Type\", \"application/json\")",
            "\treturn c.client.Do(req)",
            "}",
        ])
        for resource in self.api_def.all_resources():
            for method in resource.methods.values():
                cm = self.emit_client_method(resource, method)
                body = "body" if cm.has_body else "nil"
                lines.append("")
                lines.append(f"// {cm.method_name} is the handler for {cm.verb} {cm.resource_uri}")
                if cm.description:
                    lines.extend(go_comment(cm.description))
                lines.append(
                    f"func ({cm.params[0]}) {cm.method_name}({', '.join(cm.params[1:])}) (*http.Response, error) {{"
                )
                lines.append(f"\treturn c.doRequest({go_str(cm.verb)}, {cm.uri}, {body}, headers, queryParams)")
                lines.append("}")
        return "\n".join(lines) + "\n"

    # -- support package ------------------------------------------------------

    def _render_support(self) -> str:
        lines = [
            f"package {SUPPORT_ALIAS}",
            "",
            'import "time"',
            "",
        ]
        layouts = [
            ("Date", "2006-01-02", "date-only"),
            ("TimeOnly", "15:04:05", "time-only"),
            ("DatetimeOnly", "2006-01-02T15:04:05", "datetime-only"),
            ("DateTime", "2006-01-02T15:04:05Z07:00", "datetime"),
        ]
        for name, layout, raml_type in layouts:
            lines.extend([
                f"// {name} represents RAML {raml_type}",
                f"type {name} time.Time",
                "",
                "// MarshalJSON encodes the value in its RAML layout",
                f"func (t {name}) MarshalJSON() ([]byte, error) {{",
                f"\treturn []byte(`\"` + time.Time(t).Format({go_str(layout)}) + `\"`), nil",
                "}",
                "",
                "// UnmarshalJSON decodes the value from its RAML layout",
                f"func (t *{name}) UnmarshalJSON(b []byte) error {{",
                f"\tparsed, err := time.Parse(`\"` + {go_str(layout)} + `\"`, string(b))",
                "\tif err != nil {",
                "\t\treturn err",
                "\t}",
                f"\t*t = {name}(parsed)",
                "\treturn nil",
                "}",
                "",
            ])
        return "\n".join(lines)
