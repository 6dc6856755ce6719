"""Tests for the jsonschema engine adapter."""

import pytest
from jsonschema.exceptions import UnknownType
from referencing import Registry
from referencing.jsonschema import DRAFT7

from schema_gate.config import settings
from schema_gate.services.engine import build_format_checker, compile_schema, json_pointer

DRAFT_2020_12 = "https://json-schema.org/draft/2020-12/schema"


def test_compiled_validator_returns_none_when_valid():
    run = compile_schema({"type": "integer"})
    assert run(5) is None


def test_type_error_record():
    run = compile_schema({"type": "object", "properties": {"foo": {"type": "integer"}}})
    [error] = run({"foo": "abc"})
    assert error.keyword == "type"
    assert error.instance_path == "/foo"
    assert error.schema_path == "#/properties/foo/type"
    assert error.params == {"type": "integer"}
    assert error.message


def test_multiple_types_joined():
    [error] = compile_schema({"type": ["integer", "null"]})("x")
    assert error.params == {"type": "integer,null"}


def test_each_missing_property_reported():
    run = compile_schema({"required": ["a", "b", "c"]}, {"allErrors": True})
    errors = run({"b": 1})
    assert [e.params["missingProperty"] for e in errors] == ["a", "c"]


def test_nested_instance_path():
    schema = {
        "properties": {
            "items": {"type": "array", "items": {"type": "integer"}},
        }
    }
    [error] = compile_schema(schema)({"items": [1, "x"]})
    assert error.instance_path == "/items/1"
    assert error.schema_path == "#/properties/items/items/type"


def test_pointer_escaping():
    assert json_pointer([]) == ""
    assert json_pointer(["a/b", "m~n", 0]) == "/a~1b/m~0n/0"


def test_additional_properties_params():
    schema = {"properties": {"a": {}}, "additionalProperties": False}
    [error] = compile_schema(schema)({"a": 1, "x": 2})
    assert error.keyword == "additionalProperties"
    assert error.params == {"additionalProperties": ["x"], "additionalProperty": "x"}


def test_additional_properties_respects_pattern_properties():
    schema = {
        "properties": {"a": {}},
        "patternProperties": {"^x_": {}},
        "additionalProperties": False,
    }
    [error] = compile_schema(schema)({"a": 1, "x_ok": 2, "y": 3, "z": 4})
    assert error.params == {"additionalProperties": ["y", "z"]}


@pytest.mark.parametrize(
    "schema, data, params",
    [
        ({"enum": ["a", "b"]}, "c", {"allowedValues": ["a", "b"]}),
        ({"const": 3}, 4, {"allowedValue": 3}),
        ({"pattern": "^a"}, "b", {"pattern": "^a"}),
        ({"minLength": 3}, "ab", {"limit": 3}),
        ({"maxItems": 1}, [1, 2], {"limit": 1}),
        ({"minimum": 10}, 5, {"comparison": ">=", "limit": 10}),
        ({"exclusiveMaximum": 10}, 10, {"comparison": "<", "limit": 10}),
        ({"multipleOf": 3}, 4, {"multipleOf": 3}),
        ({"not": {}}, 1, {}),
    ],
)
def test_keyword_params(schema, data, params):
    [error] = compile_schema(schema)(data)
    assert error.params == params


def test_property_names_sets_property_name():
    schema = {"propertyNames": {"pattern": "^[a-z]+$"}}
    [error] = compile_schema(schema)({"Bad": 1})
    assert error.keyword == "pattern"
    assert error.property_name == "Bad"
    assert error.schema_path == "#/propertyNames/pattern"


def test_property_literally_named_property_names():
    schema = {"properties": {"propertyNames": {"type": "string"}}}
    [error] = compile_schema(schema)({"propertyNames": 1})
    assert error.property_name is None


def test_verbose_includes_schema_and_data():
    schema = {"properties": {"foo": {"type": "integer"}}}
    [error] = compile_schema(schema, {"verbose": True})({"foo": "abc"})
    assert error.schema_ == "integer"
    assert error.parent_schema == {"type": "integer"}
    assert error.data == "abc"


def test_not_verbose_by_default():
    [error] = compile_schema({"type": "integer"})("abc")
    assert error.schema_ is None
    assert error.parent_schema is None
    assert error.data is None


def test_false_schema():
    [error] = compile_schema(False)(1)
    assert error.keyword == "false schema"
    assert error.instance_path == ""
    assert error.schema_path == "#"


def test_true_schema():
    assert compile_schema(True)({"any": "thing"}) is None


def test_uuid_checked_under_draft_07():
    """Formats are registered regardless of which draft defines them."""
    run = compile_schema({"type": "string", "format": "uuid"})
    assert run("123e4567-e89b-12d3-a456-426614174000") is None
    assert run("not-a-uuid") is not None


@pytest.mark.parametrize(
    "fmt, good, bad",
    [
        ("ipv4", "192.168.0.1", "999.1.1.1"),
        ("regex", "^a+$", "["),
    ],
)
def test_builtin_formats(fmt, good, bad):
    run = compile_schema({"format": fmt})
    assert run(good) is None
    assert run(bad)[0].params == {"format": fmt}


def test_validate_formats_disabled():
    run = compile_schema({"format": "email"}, {"validateFormats": False})
    assert run("2962") is None


def test_custom_regex_format():
    run = compile_schema({"format": "even-digits"}, {"formats": {"even-digits": "^(\\d\\d)+$"}})
    assert run("12") is None
    assert run("123") is not None
    assert run(123) is None


def test_custom_callable_format():
    run = compile_schema({"format": "upper"}, {"formats": {"upper": str.isupper}})
    assert run("ABC") is None
    assert run("abc") is not None


def test_custom_format_does_not_leak_between_calls():
    compile_schema({}, {"formats": {"upper": str.isupper}})
    assert "upper" not in build_format_checker().checkers
    assert compile_schema({"format": "upper"})("abc") is None


def test_invalid_format_rule():
    with pytest.raises(TypeError, match="regex string or callable"):
        build_format_checker({"bad": 42})


def test_dialect_from_schema():
    schema = {"$schema": DRAFT_2020_12, "prefixItems": [{"type": "integer"}]}
    [error] = compile_schema(schema)(["x"])
    assert error.instance_path == "/0"
    assert error.schema_path == "#/prefixItems/0/type"


def test_default_dialect_is_draft_07():
    # prefixItems is not a draft-07 keyword
    assert compile_schema({"prefixItems": [{"type": "integer"}]})(["x"]) is None


def test_default_dialect_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "DEFAULT_SCHEMA_DIALECT", DRAFT_2020_12)
    assert compile_schema({"prefixItems": [{"type": "integer"}]})(["x"]) is not None


def test_skip_schema_check_surfaces_engine_error():
    run = compile_schema({"type": "nonsense"}, {"validateSchema": False})
    with pytest.raises(UnknownType):
        run(1)


def test_unknown_option_surfaces_engine_error():
    with pytest.raises(TypeError):
        compile_schema({"type": "integer"}, {"strict": True})


def test_schema_path_follows_ref():
    schema = {
        "definitions": {"x": {"type": "integer"}},
        "properties": {"a": {"$ref": "#/definitions/x"}},
    }
    [error] = compile_schema(schema)({"a": "s"})
    assert error.instance_path == "/a"
    assert error.schema_path == "#/definitions/x/type"


def test_schema_path_follows_chained_refs():
    schema = {
        "definitions": {
            "x": {"$ref": "#/definitions/y"},
            "y": {"properties": {"n": {"minimum": 1}}},
        },
        "properties": {"a": {"$ref": "#/definitions/x"}},
    }
    [error] = compile_schema(schema)({"a": {"n": 0}})
    assert error.schema_path == "#/definitions/y/properties/n/minimum"


def test_schema_path_for_recursive_ref():
    schema = {"type": "object", "properties": {"child": {"$ref": "#"}}}
    [error] = compile_schema(schema)({"child": 1})
    assert error.instance_path == "/child"
    assert error.schema_path == "#/type"


def test_schema_path_with_escaped_ref():
    schema = {
        "definitions": {"a/b": {"type": "string"}},
        "properties": {"p": {"$ref": "#/definitions/a~1b"}},
    }
    [error] = compile_schema(schema)({"p": 1})
    assert error.schema_path == "#/definitions/a~1b/type"


def test_schema_path_through_registry_resource():
    registry = Registry().with_resource(
        uri="urn:item", resource=DRAFT7.create_resource({"type": "integer"})
    )
    schema = {"items": {"$ref": "urn:item"}}
    [error] = compile_schema(schema, {"registry": registry})(["x"])
    assert error.instance_path == "/0"
    assert error.schema_path == "urn:item#/type"


def test_dependencies_params():
    schema = {"dependencies": {"card": ["billing", "address"]}}
    errors = compile_schema(schema, {"allErrors": True})({"card": 1})
    assert [e.params for e in errors] == [
        {"property": "card", "missingProperty": "billing", "depsCount": 2, "deps": "billing, address"},
        {"property": "card", "missingProperty": "address", "depsCount": 2, "deps": "billing, address"},
    ]
    assert errors[0].schema_path == "#/dependencies"


def test_dependent_required_params():
    schema = {"$schema": DRAFT_2020_12, "dependentRequired": {"card": ["billing"]}}
    [error] = compile_schema(schema)({"card": 1, "name": "x"})
    assert error.keyword == "dependentRequired"
    assert error.params == {
        "property": "card",
        "missingProperty": "billing",
        "depsCount": 1,
        "deps": "billing",
    }
