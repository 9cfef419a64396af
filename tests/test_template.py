import pytest

from raml_codegen.errors import ParseError, UnresolvedReferenceError
from raml_codegen.raml.template import merge, pluralize, singularize, substitute


class TestInflection:
    def test_pluralize(self):
        assert pluralize("user") == "users"
        assert pluralize("category") == "categories"
        assert pluralize("box") == "boxes"
        assert pluralize("person") == "people"

    def test_singularize(self):
        assert singularize("users") == "user"
        assert singularize("categories") == "category"
        assert singularize("boxes") == "box"
        assert singularize("people") == "person"
        assert singularize("address") == "address"


class TestSubstitute:
    def test_plain(self):
        assert substitute("list <<name>>", {"name": "users"}) == "list users"

    def test_nested_structures_and_keys(self):
        node = {"<<name>>Id": {"description": "id of <<name>>"}, "tags": ["<<name>>"]}
        assert substitute(node, {"name": "user"}) == {"userId": {"description": "id of user"}, "tags": ["user"]}

    def test_lone_placeholder_keeps_value(self):
        assert substitute("<<scopes>>", {"scopes": ["read", "write"]}) == ["read", "write"]

    def test_non_strings_untouched(self):
        assert substitute({"required": False, "max": 3}, {}) == {"required": False, "max": 3}

    @pytest.mark.parametrize("transformer, expected", [
        ("!singularize", "user"),
        ("!uppercase", "USERS"),
        ("!uppercamelcase", "Users"),
        ("!singularize | !uppercamelcase", "User"),
    ])
    def test_transformers(self, transformer, expected):
        assert substitute(f"<<name | {transformer}>>", {"name": "users"}) == expected

    def test_case_transformers(self):
        params = {"name": "userGroup"}
        assert substitute("<<name | !lowerunderscorecase>>", params) == "user_group"
        assert substitute("<<name | !upperhyphencase>>", params) == "USER-GROUP"
        assert substitute("<<name | !lowercamelcase>>", params) == "userGroup"

    def test_missing_parameter(self):
        with pytest.raises(UnresolvedReferenceError) as exc:
            substitute("type: <<item>>", {}, "resource type collection")
        assert exc.value.name == "item"
        assert exc.value.context == "resource type collection"

    def test_unknown_transformer(self):
        with pytest.raises(ParseError, match="!shout"):
            substitute("<<name | !shout>>", {"name": "x"})


class TestMerge:
    def test_explicit_wins(self):
        assert merge({"description": "mine"}, {"description": "theirs"}) == {"description": "mine"}

    def test_maps_merge_recursively(self):
        explicit = {"headers": {"X-A": {"type": "string"}}}
        inherited = {"headers": {"X-B": {"type": "integer"}}, "description": "d"}
        assert merge(explicit, inherited) == {
            "headers": {"X-B": {"type": "integer"}, "X-A": {"type": "string"}},
            "description": "d",
        }

    def test_lists_concatenate_explicit_first(self):
        assert merge(["a", "b"], ["b", "c"]) == ["a", "b", "c"]

    def test_none_yields_inherited(self):
        assert merge(None, {"a": 1}) == {"a": 1}
