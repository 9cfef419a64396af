from pathlib import Path

import pytest

from raml_codegen.codegen.golang import GoBackend, go_name, render_imports
from raml_codegen.config import ClientConfig, ServerConfig
from raml_codegen.raml.resolver import load_api_definition

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def api():
    return load_api_definition(FIXTURES / "api.raml")


@pytest.fixture
def backend(api, tmp_path):
    return GoBackend(api, ServerConfig(output_dir=tmp_path, ramlfile=FIXTURES / "api.raml"))


class TestHelpers:
    def test_go_name(self):
        assert go_name("user-id") == "UserId"
        assert go_name("basic_auth") == "BasicAuth"
        assert go_name("2fa") == "X2fa"

    def test_render_imports(self):
        lines = render_imports(['"net/http"', '"github.com/gorilla/mux"', '"log"'])
        assert lines == ["import (", '\t"log"', '\t"net/http"', "", '\t"github.com/gorilla/mux"', ")"]

    def test_default_import_paths(self, api, tmp_path):
        server = GoBackend(api, ServerConfig(output_dir=tmp_path, ramlfile=FIXTURES / "api.raml"))
        client = GoBackend(api, ClientConfig(output_dir=tmp_path, ramlfile=FIXTURES / "api.raml"))
        custom = GoBackend(api, ServerConfig(output_dir=tmp_path, ramlfile=FIXTURES / "api.raml", import_path="x.io/y"))
        assert server.import_path == "examples.com/ramlcode"
        assert client.import_path == "examples.com/client"
        assert custom.import_path == "x.io/y"


class TestGoTypes:
    def test_type_expressions(self, backend):
        assert backend.go_type("string") == "string"
        assert backend.go_type("Widget[]") == "[]Widget"
        assert backend.go_type("common.User") == "common.User"
        assert backend.go_type("datetime") == "goraml.DateTime"
        assert backend.go_type("A | B") == "interface{}"

    def test_struct(self, api, backend):
        content = backend.emit_types(api, "main")["Widget_type.go"]
        assert content.startswith("package main\n")
        assert "type Widget struct {" in content
        assert '\tId int `json:"id" validate:"nonzero"`' in content
        assert '\tColor Color `json:"color,omitempty"`' in content

    def test_enum_and_array(self, api, backend):
        files = backend.emit_types(api, "main")
        assert "type Color string" in files["Color_type.go"]
        assert '\tColorRed Color = "red"' in files["Color_type.go"]
        assert "type Widgets []Widget" in files["Widgets_type.go"]

    def test_library_types(self, api, backend):
        files = backend.emit_types(api.libraries["common"], "common")
        user = files["User_type.go"]
        assert user.startswith("package common\n")
        assert '"examples.com/ramlcode/goraml"' in user
        assert 'extra "examples.com/ramlcode/extra_types"' in user
        assert "\tTags []extra.Tag" in user
        assert "\tUser\n" in files["Admin_type.go"]


class TestServerMethod:
    def test_names_and_route(self, api, backend):
        child = api.resources["/widgets"].nested["/{widgetId}"]
        sm = backend.emit_server_method(child, child.methods["get"])
        assert sm.method_name == "WidgetsByWidgetIdGet"
        assert sm.route == "/widgets/{widgetId}"
        assert sm.params == ["widgetId"]

    def test_middlewares(self, api, backend):
        widgets = api.resources["/widgets"]
        sm = backend.emit_server_method(widgets, widgets.methods["get"])
        assert [(mw.scheme, mw.name) for mw in sm.middlewares] == [("oauth2", "NewOauth2Oauth2Middleware")]

    def test_library_middleware(self, api, backend):
        users = api.resources["/users"]
        mw = backend.emit_server_method(users, users.methods["get"]).middlewares[0]
        assert mw.name == "common.NewBasicAuthBasicMiddleware"
        assert mw.import_path == 'common "examples.com/ramlcode/libs/common"'
        assert mw.args == "[]string{}"


class TestClientMethod:
    def test_params(self, api, backend):
        child = api.resources["/widgets"].nested["/{widgetId}"]
        cm = backend.emit_client_method(child, child.methods["put"])
        assert cm.method_name == "WidgetsByWidgetIdPut"
        assert cm.params == [
            "c *Client",
            "body interface{}",
            "widgetId string",
            "headers, queryParams map[string]interface{}",
        ]
        assert cm.uri == 'c.BaseURI+"/widgets/"+widgetId'

    def test_no_body_for_get(self, api, backend):
        widgets = api.resources["/widgets"]
        cm = backend.emit_client_method(widgets, widgets.methods["get"])
        assert cm.params == ["c *Client", "headers, queryParams map[string]interface{}"]
        assert cm.has_body is False


class TestServerFiles:
    def test_files(self, backend):
        files = backend.server_files(backend.config)
        assert set(files) == {
            "widgets_if.go",
            "widgets_api.go",
            "users_if.go",
            "users_api.go",
            "main.go",
            "goraml/datetime.go",
        }

    def test_routes(self, backend):
        content = backend.server_files(backend.config)["widgets_if.go"]
        assert "type WidgetsInterface interface {" in content
        assert (
            '\tr.Handle("/widgets", NewOauth2Oauth2Middleware([]string{}).Handler('
            'http.HandlerFunc(i.WidgetsGet))).Methods("GET")'
        ) in content
        assert 'r.Handle("/widgets/{widgetId}", http.HandlerFunc(i.WidgetsByWidgetIdPut)).Methods("PUT")' in content

    def test_library_middleware_import(self, backend):
        content = backend.server_files(backend.config)["users_if.go"]
        assert '\tcommon "examples.com/ramlcode/libs/common"' in content

    def test_api_stub(self, backend):
        content = backend.server_files(backend.config)["widgets_api.go"]
        assert "type WidgetsAPI struct {" in content
        assert "func (api WidgetsAPI) WidgetsByWidgetIdPut(w http.ResponseWriter, r *http.Request) {" in content
        assert "\tvar reqBody Widget" in content
        assert '"encoding/json"' in content

    def test_main(self, backend):
        content = backend.server_files(backend.config)["main.go"]
        assert "\tWidgetsInterfaceRoutes(r, WidgetsAPI{})" in content
        assert "apidocs" in content

    def test_no_main(self, api, tmp_path):
        config = ServerConfig(output_dir=tmp_path, ramlfile=FIXTURES / "api.raml", no_main=True)
        assert "main.go" not in GoBackend(api, config).server_files(config)

    def test_security_files(self, api, backend):
        files = backend.emit_security_schemes(api.libraries["common"], "common")
        assert list(files) == ["basic_auth_basic_middleware.go"]
        assert "func NewBasicAuthBasicMiddleware(scopes []string) *BasicAuthBasicMiddleware {" in files[
            "basic_auth_basic_middleware.go"
        ]


class TestClientFiles:
    def test_client(self, api, tmp_path):
        config = ClientConfig(output_dir=tmp_path, ramlfile=FIXTURES / "api.raml")
        files = GoBackend(api, config).client_files(config)
        assert set(files) == {"client_client.go", "goraml/datetime.go"}
        content = files["client_client.go"]
        assert content.startswith("package client\n")
        assert 'defaultBaseURI = "http://api.example.com/v1"' in content
        assert (
            "func (c *Client) WidgetsByWidgetIdPut(body interface{}, widgetId string, "
            "headers, queryParams map[string]interface{}) (*http.Response, error) {"
        ) in content
        assert '\treturn c.doRequest("GET", c.BaseURI+"/widgets", nil, headers, queryParams)' in content
