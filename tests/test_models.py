import pytest
from pydantic import ValidationError

from raml_codegen.raml.base import (
    ANONYMOUS,
    APIDefinition,
    Body,
    DefinitionChoice,
    Document,
    Method,
    NamedParameter,
    Resource,
    SecurityScheme,
    Trait,
    Type,
    as_mapping,
    definition_choices,
)


class TestNamedParameter:
    def test_defaults(self):
        p = NamedParameter(name="id")
        assert p.type == "string"
        assert p.required is True
        assert p.description == ""

    def test_display_name_alias(self):
        p = NamedParameter.model_validate({"name": "id", "displayName": "ID", "type": "integer"})
        assert p.display_name == "ID"
        assert p.type == "integer"

    def test_inline_type_declaration(self):
        p = NamedParameter.model_validate({"name": "address", "type": {"properties": {"city": "string"}}})
        assert p.type == "object"


class TestDefinitionChoices:
    def test_string(self):
        assert definition_choices("paged") == [{"name": "paged"}]

    def test_map_with_parameters(self):
        choices = definition_choices([{"searchable": {"field": "name"}}, "paged"])
        assert choices == [
            {"name": "searchable", "parameters": {"field": "name"}},
            {"name": "paged"},
        ]

    def test_none_entries_dropped(self):
        assert definition_choices([None, "oauth2"]) == [{"name": "oauth2"}]
        assert definition_choices([None, "oauth2"], keep_null=True) == [{"name": ANONYMOUS}, {"name": "oauth2"}]
        assert definition_choices(None) == []

    def test_already_normalized(self):
        choice = DefinitionChoice(name="paged")
        assert definition_choices([choice]) == [choice]

    def test_parameters_default_to_empty(self):
        assert DefinitionChoice.model_validate({"name": "x", "parameters": None}).parameters == {}


class TestAsMapping:
    def test_list_of_single_key_maps(self):
        assert as_mapping([{"a": 1}, {"b": 2}]) == {"a": 1, "b": 2}

    def test_rejects_scalars(self):
        with pytest.raises(ValueError):
            as_mapping("nope")


class TestMethod:
    def test_shorthand_forms(self):
        m = Method.model_validate({
            "name": "post",
            "queryParameters": {"page?": "integer", "q": None},
            "body": "User",
            "responses": {200: None},
            "is": "paged",
            "securedBy": [None, "oauth2"],
        })
        assert m.verb == "POST"
        assert m.query_parameters["page"].required is False
        assert m.query_parameters["page"].type == "integer"
        assert m.query_parameters["q"].type == "string"
        assert m.body["application/json"].type == "User"
        assert "200" in m.responses
        assert [c.name for c in m.is_] == ["paged"]
        assert [c.name for c in m.secured_by] == [ANONYMOUS, "oauth2"]

    def test_null_trait_entry_dropped(self):
        m = Method.model_validate({"name": "get", "is": [None, "paged"]})
        assert [c.name for c in m.is_] == ["paged"]

    def test_body_by_media_type(self):
        m = Method.model_validate({"name": "put", "body": {"application/xml": {"type": "Widget"}}})
        assert m.request_body_type() == "Widget"

    def test_body_without_media_type(self):
        m = Method.model_validate({"name": "put", "body": {"properties": {"name": "string"}}})
        body = m.body["application/json"]
        assert isinstance(body, Body)
        assert "name" in body.properties

    def test_no_body(self):
        assert Method(name="get").request_body_type() == ""


class TestResource:
    def test_collects_methods_and_children(self):
        r = Resource.model_validate({
            "uri": "/users",
            "get": None,
            "POST": {"description": "create"},
            "/{userId}": {"delete": None},
        })
        assert set(r.methods) == {"get", "post"}
        assert r.methods["post"].name == "post"
        assert r.nested["/{userId}"].uri == "/{userId}"
        assert "delete" in r.nested["/{userId}"].methods

    def test_parent_is_not_serialized(self):
        parent = Resource(uri="/users")
        child = Resource(uri="/{userId}")
        child.set_parent(parent)
        assert child.parent is parent
        assert child.full_uri == "/users/{userId}"
        assert [r.uri for r in child.lineage] == ["/users", "/{userId}"]
        assert "parent" not in child.model_dump()
        assert "_parent" not in child.model_dump()

    def test_resource_type_choice(self):
        r = Resource.model_validate({"uri": "/widgets", "type": {"collection": {"item": "Widget"}}})
        assert r.resource_type.name == "collection"
        assert r.resource_type.parameters == {"item": "Widget"}


class TestDeclarations:
    def test_type_shorthand(self):
        doc = Document.model_validate({"types": {"Widgets": "Widget[]"}})
        assert doc.types["Widgets"].type == "Widget[]"

    def test_declarations_as_list_of_maps(self):
        doc = Document.model_validate({"traits": [{"paged": {"queryParameters": {"page": "integer"}}}]})
        assert isinstance(doc.traits["paged"], Trait)
        assert "queryParameters" in doc.traits["paged"].template

    def test_template_keeps_raw_body(self):
        trait = Trait.model_validate({"usage": "paging", "headers": {"X-<<name>>": "string"}})
        assert trait.usage == "paging"
        assert trait.template == {"headers": {"X-<<name>>": "string"}}

    def test_schemas_alias_types(self):
        doc = Document.model_validate({"schemas": {"User": {"properties": {"name": "string"}}}})
        assert isinstance(doc.types["User"], Type)

    def test_security_scheme(self):
        s = SecurityScheme.model_validate({
            "type": "OAuth 2.0",
            "describedBy": {"headers": {"Authorization": "string"}},
            "settings": None,
        })
        assert "Authorization" in s.described_by.headers
        assert s.settings == {}


class TestAPIDefinition:
    def test_minimal(self):
        api = APIDefinition.model_validate({"title": "Pets", "/pets": {"get": None}})
        assert api.media_type == "application/json"
        assert list(api.resources) == ["/pets"]
        assert api.resources["/pets"].uri == "/pets"

    def test_title_required(self):
        with pytest.raises(ValidationError):
            APIDefinition.model_validate({"version": "v1"})

    def test_title_not_blank(self):
        with pytest.raises(ValidationError):
            APIDefinition.model_validate({"title": "  "})

    def test_all_resources_pre_order(self):
        api = APIDefinition.model_validate({
            "title": "Pets",
            "/pets": {"/{petId}": {"/toys": {}}},
            "/owners": {},
        })
        assert [r.uri for r in api.all_resources()] == ["/pets", "/{petId}", "/toys", "/owners"]

    def test_version_as_text(self):
        api = APIDefinition.model_validate({"title": "Pets", "version": 2, "mediaType": ["application/xml"]})
        assert api.version == "2"
        assert api.media_type == "application/xml"
