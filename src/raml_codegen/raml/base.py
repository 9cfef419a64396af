"""Typed document model for parsed RAML documents.

The loader validates raw YAML mappings into these models. RAML shorthand
forms are normalized by the before-validators; names, parent links and
inherited methods are filled in later by the resolver.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator, model_validator

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")
DEFAULT_MEDIA_TYPE = "application/json"
# `securedBy: [null]` entry: the method may also be called anonymously
ANONYMOUS = "null"


def member_node(kind: str, key: str, node: Any) -> dict:
    """Mapping body of a resource or method entry; an empty entry is {}."""
    if node is None:
        return {}
    if not isinstance(node, dict):
        raise ValueError(f"{kind} {key} must be a mapping, got {node!r}")
    return dict(node)


def method_node(key: str, node: Any) -> dict:
    """Mapping body of a method; explicit nulls are dropped so inherited values apply."""
    return {k: v for k, v in member_node("method", key, node).items() if v is not None}


def as_mapping(value: Any) -> dict:
    """Accept a map or a list of single-key maps and return one map."""
    if value is None:
        return {}
    if isinstance(value, list):
        merged: dict = {}
        for item in value:
            if not isinstance(item, dict):
                raise ValueError(f"expected a mapping, got {item!r}")
            merged.update(item)
        return merged
    if not isinstance(value, dict):
        raise ValueError(f"expected a mapping, got {value!r}")
    return value


def named_declarations(value: Any) -> dict:
    """Normalize a declarations map; shorthand values become {"type": value}."""
    result = {}
    for name, node in as_mapping(value).items():
        name = str(name)
        if isinstance(node, BaseModel):
            result[name] = node
            continue
        if node is None:
            node = {}
        elif not isinstance(node, dict):
            node = {"type": node}
        result[name] = node
    return result


def named_parameters(value: Any) -> dict:
    """Normalize named parameters / properties, honouring the 'name?' form."""
    result = {}
    for key, node in as_mapping(value).items():
        key = str(key)
        if isinstance(node, BaseModel):
            result[key] = node
            continue
        if node is None:
            node = {}
        elif not isinstance(node, dict):
            node = {"type": node}
        node = dict(node)
        if key.endswith("?"):
            key = key[:-1]
            node.setdefault("required", False)
        if "type" not in node and "properties" in node:
            node["type"] = "object"
        node["name"] = key
        result[key] = node
    return result


def inline_type_name(value: Any) -> Any:
    """Reduce an inline type declaration to its type name."""
    if isinstance(value, dict):
        return value.get("type") or ("object" if "properties" in value else "string")
    if isinstance(value, list):
        return " | ".join(str(v) for v in value)
    return value


def definition_choices(value: Any, keep_null: bool = False) -> list:
    """Normalize 'is' / 'securedBy' values into definition choices.

    With keep_null, a null list entry becomes the ANONYMOUS choice.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    result: list = []
    for item in value:
        if item is None:
            if keep_null:
                result.append({"name": ANONYMOUS})
            continue
        if isinstance(item, DefinitionChoice):
            result.append(item)
        elif isinstance(item, str):
            result.append({"name": item.strip()})
        elif isinstance(item, dict):
            if isinstance(item.get("name"), str) and set(item) <= {"name", "parameters"}:
                result.append(item)
                continue
            for name, params in item.items():
                result.append({"name": str(name).strip(), "parameters": params or {}})
        else:
            raise ValueError(f"invalid definition choice {item!r}")
    return result


def media_type_bodies(value: Any) -> dict:
    """Normalize a body declaration into {media type: body}."""
    if value is None:
        return {}
    if isinstance(value, str):
        return {DEFAULT_MEDIA_TYPE: {"type": value}}
    if isinstance(value, dict) and all("/" in str(k) for k in value):
        result = {}
        for media_type, node in value.items():
            if node is None:
                node = {}
            elif isinstance(node, str):
                node = {"type": node}
            result[str(media_type)] = node
        return result
    return {DEFAULT_MEDIA_TYPE: value}


def status_responses(value: Any) -> dict:
    return {str(code): node or {} for code, node in as_mapping(value).items()}


class NamedParameter(BaseModel):
    """A URI/query parameter, header, or type property."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    display_name: str = Field("", alias="displayName")
    description: str = ""
    type: str = "string"
    required: bool = True
    default: Any = None
    enum: list | None = None
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    items: str | None = None

    @field_validator("description", "display_name", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("type", mode="before")
    @classmethod
    def inline_type(cls, value: Any) -> Any:
        return "string" if value is None else inline_type_name(value)

    @field_validator("items", mode="before")
    @classmethod
    def inline_items(cls, value: Any) -> Any:
        return None if value is None else inline_type_name(value)


class DefinitionChoice(BaseModel):
    """A reference to a trait, resource type or security scheme plus its parameters."""

    name: str
    parameters: dict[str, Any] = {}

    @field_validator("parameters", mode="before")
    @classmethod
    def no_parameters(cls, value: Any) -> Any:
        return value or {}


class Body(BaseModel):
    """A request or response payload for one media type."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = ""
    description: str = ""
    properties: dict[str, NamedParameter] = {}
    example: Any = None

    @field_validator("description", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("type", mode="before")
    @classmethod
    def inline_type(cls, value: Any) -> Any:
        return "" if value is None else inline_type_name(value)

    @field_validator("properties", mode="before")
    @classmethod
    def normalize_properties(cls, value: Any) -> Any:
        return named_parameters(value)


class Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str = ""
    headers: dict[str, NamedParameter] = {}
    body: dict[str, Body] = {}

    @field_validator("description", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("headers", mode="before")
    @classmethod
    def normalize_headers(cls, value: Any) -> Any:
        return named_parameters(value)

    @field_validator("body", mode="before")
    @classmethod
    def normalize_body(cls, value: Any) -> Any:
        return media_type_bodies(value)


class Method(BaseModel):
    """An HTTP method of a resource."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    display_name: str = Field("", alias="displayName")
    description: str = ""
    query_parameters: dict[str, NamedParameter] = Field(default_factory=dict, alias="queryParameters")
    headers: dict[str, NamedParameter] = {}
    body: dict[str, Body] = {}
    responses: dict[str, Response] = {}
    is_: list[DefinitionChoice] = Field(default_factory=list, alias="is")
    secured_by: list[DefinitionChoice] = Field(default_factory=list, alias="securedBy")
    traits: list[str] = []

    @field_validator("description", "display_name", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("query_parameters", "headers", mode="before")
    @classmethod
    def normalize_parameters(cls, value: Any) -> Any:
        return named_parameters(value)

    @field_validator("body", mode="before")
    @classmethod
    def normalize_body(cls, value: Any) -> Any:
        return media_type_bodies(value)

    @field_validator("responses", mode="before")
    @classmethod
    def normalize_responses(cls, value: Any) -> Any:
        return status_responses(value)

    @field_validator("is_", "secured_by", mode="before")
    @classmethod
    def normalize_choices(cls, value: Any, info: ValidationInfo) -> Any:
        return definition_choices(value, keep_null=info.field_name == "secured_by")

    @property
    def verb(self) -> str:
        return self.name.upper()

    def request_body_type(self) -> str:
        """Type name of the first request body, or ''."""
        for body in self.body.values():
            if body.type:
                return body.type
        return ""


class Resource(BaseModel):
    """A node of the URI tree.

    Children are owned through ``nested``; the parent link is a private,
    non-serialized back-reference used only for upward traversal.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uri: str
    display_name: str = Field("", alias="displayName")
    description: str = ""
    resource_type: DefinitionChoice | None = Field(None, alias="type")
    is_: list[DefinitionChoice] = Field(default_factory=list, alias="is")
    secured_by: list[DefinitionChoice] = Field(default_factory=list, alias="securedBy")
    uri_parameters: dict[str, NamedParameter] = Field(default_factory=dict, alias="uriParameters")
    methods: dict[str, Method] = {}
    nested: dict[str, "Resource"] = {}

    _parent: "Resource | None" = PrivateAttr(default=None)

    @field_validator("description", "display_name", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("uri_parameters", mode="before")
    @classmethod
    def normalize_parameters(cls, value: Any) -> Any:
        return named_parameters(value)

    @field_validator("is_", "secured_by", mode="before")
    @classmethod
    def normalize_choices(cls, value: Any, info: ValidationInfo) -> Any:
        return definition_choices(value, keep_null=info.field_name == "secured_by")

    @field_validator("resource_type", mode="before")
    @classmethod
    def single_choice(cls, value: Any) -> Any:
        choices = definition_choices(value)
        return choices[0] if choices else None

    @model_validator(mode="before")
    @classmethod
    def collect_members(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        methods = dict(data.get("methods") or {})
        nested = dict(data.get("nested") or {})
        for key in list(data):
            k = str(key)
            if k.startswith("/"):
                nested[k] = {**member_node("resource", k, data.pop(key)), "uri": k}
            elif k.lower() in HTTP_METHODS:
                methods[k.lower()] = {**method_node(k, data.pop(key)), "name": k.lower()}
        data["methods"] = methods
        data["nested"] = nested
        return data

    @property
    def parent(self) -> "Resource | None":
        return self._parent

    def set_parent(self, parent: "Resource | None") -> None:
        self._parent = parent

    @property
    def lineage(self) -> list["Resource"]:
        """Resources from the root-level ancestor down to this one."""
        chain = []
        node: Resource | None = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return list(reversed(chain))

    @property
    def full_uri(self) -> str:
        return "".join(r.uri for r in self.lineage)


class Type(BaseModel):
    """A data type declaration."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    type: str | list[str] | None = None
    description: str = ""
    properties: dict[str, NamedParameter] = {}
    items: str | None = None
    enum: list | None = None

    @field_validator("description", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("properties", mode="before")
    @classmethod
    def normalize_properties(cls, value: Any) -> Any:
        return named_parameters(value)

    @field_validator("items", mode="before")
    @classmethod
    def inline_items(cls, value: Any) -> Any:
        return None if value is None else inline_type_name(value)

    @field_validator("type", mode="before")
    @classmethod
    def inline_type(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return inline_type_name(value)
        return value


class TemplateFragment(BaseModel):
    """A parameterized fragment; the body stays raw until instantiated."""

    name: str = ""
    usage: str = ""
    template: dict[str, Any] = {}

    @model_validator(mode="before")
    @classmethod
    def split_template(cls, data: Any) -> Any:
        if isinstance(data, dict) and "template" not in data:
            data = dict(data)
            name = data.pop("name", "")
            usage = data.pop("usage", "") or ""
            return {"name": name, "usage": usage, "template": data}
        return data


class Trait(TemplateFragment):
    """A named fragment merged into methods."""


class ResourceType(TemplateFragment):
    """A named fragment (methods and traits) merged into resources."""


class SecuritySchemePart(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    headers: dict[str, NamedParameter] = {}
    query_parameters: dict[str, NamedParameter] = Field(default_factory=dict, alias="queryParameters")
    responses: dict[str, Response] = {}

    @field_validator("headers", "query_parameters", mode="before")
    @classmethod
    def normalize_parameters(cls, value: Any) -> Any:
        return named_parameters(value)

    @field_validator("responses", mode="before")
    @classmethod
    def normalize_responses(cls, value: Any) -> Any:
        return status_responses(value)


class SecurityScheme(BaseModel):
    """A named authentication mechanism."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    type: str = ""
    display_name: str = Field("", alias="displayName")
    description: str = ""
    described_by: SecuritySchemePart = Field(default_factory=SecuritySchemePart, alias="describedBy")
    settings: dict[str, Any] = {}

    @field_validator("description", "display_name", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("described_by", "settings", mode="before")
    @classmethod
    def empty_mapping(cls, value: Any) -> Any:
        return value or {}


class Documentation(BaseModel):
    title: str
    content: str = ""


class Document(BaseModel):
    """Declarations shared by API definitions and libraries."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    filename: str = ""
    usage: str = ""
    types: dict[str, Type] = {}
    traits: dict[str, Trait] = {}
    resource_types: dict[str, ResourceType] = Field(default_factory=dict, alias="resourceTypes")
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict, alias="securitySchemes")
    uses: dict[str, str] = {}
    libraries: dict[str, "Library"] = Field(default_factory=dict, exclude=True)
    source: Path | None = Field(None, exclude=True)

    @field_validator("types", "traits", "resource_types", "security_schemes", mode="before")
    @classmethod
    def normalize_declarations(cls, value: Any) -> Any:
        return named_declarations(value)

    @field_validator("uses", mode="before")
    @classmethod
    def normalize_uses(cls, value: Any) -> Any:
        return {str(k): str(v) for k, v in as_mapping(value).items()}

    @field_validator("usage", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="before")
    @classmethod
    def schemas_alias(cls, data: Any) -> Any:
        # RAML 0.8 "schemas" is an alias of "types"
        if isinstance(data, dict) and "schemas" in data and "types" not in data:
            data = dict(data)
            data["types"] = data.pop("schemas")
        return data


class Library(Document):
    """An importable document of reusable declarations."""


class APIDefinition(Document):
    """The root document of a RAML specification."""

    title: str
    version: str = ""
    base_uri: str = Field("", alias="baseUri")
    base_uri_parameters: dict[str, NamedParameter] = Field(default_factory=dict, alias="baseUriParameters")
    protocols: list[str] = []
    media_type: str = Field(DEFAULT_MEDIA_TYPE, alias="mediaType")
    documentation: list[Documentation] = []
    secured_by: list[DefinitionChoice] = Field(default_factory=list, alias="securedBy")
    resources: dict[str, Resource] = {}

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value

    @field_validator("version", "base_uri", mode="before")
    @classmethod
    def as_text(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("media_type", mode="before")
    @classmethod
    def first_media_type(cls, value: Any) -> Any:
        if isinstance(value, list):
            return value[0] if value else DEFAULT_MEDIA_TYPE
        return value or DEFAULT_MEDIA_TYPE

    @field_validator("base_uri_parameters", mode="before")
    @classmethod
    def normalize_parameters(cls, value: Any) -> Any:
        return named_parameters(value)

    @field_validator("secured_by", mode="before")
    @classmethod
    def normalize_choices(cls, value: Any) -> Any:
        return definition_choices(value, keep_null=True)

    @model_validator(mode="before")
    @classmethod
    def collect_resources(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        resources = dict(data.get("resources") or {})
        for key in list(data):
            if str(key).startswith("/"):
                resources[str(key)] = {**member_node("resource", str(key), data.pop(key)), "uri": str(key)}
        data["resources"] = resources
        return data

    def all_resources(self) -> list[Resource]:
        """Every resource of the tree, pre-order."""
        result: list[Resource] = []

        def _walk(resources: dict[str, Resource]) -> None:
            for resource in resources.values():
                result.append(resource)
                _walk(resource.nested)

        _walk(self.resources)
        return result


Resource.model_rebuild()
Document.model_rebuild()
Library.model_rebuild()
APIDefinition.model_rebuild()
