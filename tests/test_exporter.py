"""Tests for the finite interchange JSON Schema."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

import pytest
from pydantic import BaseModel, Field

from action_chain import ActionsExecutor, ChainShapeError, ConfigurationError, create_action, identity
from action_chain.exporter import JSON_SCHEMA_DIALECT, to_json, type_json_schema

from conftest import Contact


class Size(Enum):
    SMALL = "s"
    LARGE = "l"


class Tree(BaseModel):
    label: str
    children: list["Tree"] = []


def test_top_level_document_shape(executor) -> None:
    document = executor.json_schema

    assert document["$schema"] == JSON_SCHEMA_DIALECT
    assert document["type"] == "object"
    assert document["properties"] == {"execution": {"$ref": "#/definitions/ActionUnion"}}
    assert document["required"] == ["execution"]
    assert document["additionalProperties"] is False


def test_definition_keys(executor) -> None:
    definitions = executor.json_schema["definitions"]

    expected_unions = {f"ActionUnionThatOutputs_{identity(tp)}" for tp in (str, float, Contact)}
    assert set(definitions) == {
        "stringToNumber",
        "numberToString",
        "createContact",
        "contactToString",
        "ActionUnion",
        *expected_unions,
    }
    assert definitions["ActionUnion"] == {
        "anyOf": [
            {"$ref": "#/definitions/contactToString"},
            {"$ref": "#/definitions/createContact"},
            {"$ref": "#/definitions/numberToString"},
            {"$ref": "#/definitions/stringToNumber"},
        ]
    }
    assert definitions[f"ActionUnionThatOutputs_{identity(str)}"] == {
        "anyOf": [{"$ref": "#/definitions/contactToString"}, {"$ref": "#/definitions/numberToString"}]
    }


def test_action_definition_with_primitive_param(executor) -> None:
    definition = executor.json_schema["definitions"]["numberToString"]

    assert definition == {
        "type": "object",
        "properties": {
            "action": {"type": "string", "const": "numberToString"},
            "params": {
                "type": "object",
                "properties": {
                    "num": {
                        "anyOf": [
                            {"type": "number"},
                            {"$ref": f"#/definitions/ActionUnionThatOutputs_{identity(float)}"},
                        ]
                    }
                },
                "required": ["num"],
                "additionalProperties": False,
            },
        },
        "required": ["action", "params"],
        "additionalProperties": False,
    }


def test_model_param_is_inlined_with_union_reference(executor) -> None:
    params = executor.json_schema["definitions"]["contactToString"]["properties"]["params"]

    assert params["properties"]["contact"] == {
        "anyOf": [
            {
                "type": "object",
                "properties": {
                    "email": {"type": "string"},
                    "guy": {"type": "boolean"},
                    "name": {"type": "string"},
                },
                "required": ["email", "guy", "name"],
                "additionalProperties": False,
            },
            {"$ref": f"#/definitions/ActionUnionThatOutputs_{identity(Contact)}"},
        ]
    }


def test_param_without_producers_has_no_reference(executor) -> None:
    params = executor.json_schema["definitions"]["createContact"]["properties"]["params"]

    assert params["properties"]["guy"] == {"type": "boolean"}
    assert params["required"] == ["email", "guy", "name"]


def test_export_is_byte_stable_across_declaration_order(actions) -> None:
    class ContactCopy(BaseModel):
        guy: bool
        name: str
        email: str

    class ContactCopyInput(BaseModel):
        contact: ContactCopy

    redeclared = dict(actions)
    redeclared["contactToString"] = create_action(
        "contactToString", input_model=ContactCopyInput, output_type=str, execute=lambda args: ""
    )

    forward = ActionsExecutor(actions).to_json()
    backward = ActionsExecutor(list(reversed(list(redeclared.values())))).to_json()

    assert forward == backward
    assert json.loads(forward) == ActionsExecutor(actions).export_schema()


def test_to_json_formats() -> None:
    document = {"b": 1, "a": [1, 2]}

    assert to_json(document) == '{"a":[1,2],"b":1}'
    assert to_json(document, indent=2) == '{\n  "a": [\n    1,\n    2\n  ],\n  "b": 1\n}'


def test_unrepresentable_param_fails_at_construction() -> None:
    class Loose(BaseModel):
        payload: Any

    with pytest.raises(ConfigurationError, match="'loose', parameter 'payload'"):
        ActionsExecutor(
            [create_action("loose", input_model=Loose, output_type=str, execute=lambda args: str(args.payload))]
        )


def test_field_constraints_are_exported_and_enforced() -> None:
    class Bounded(BaseModel):
        n: float = Field(gt=0)
        code: str = Field(min_length=2, max_length=4, pattern="^[A-Z]+$")

    executor = ActionsExecutor(
        [
            create_action("bounded", input_model=Bounded, output_type=float, execute=lambda args: args.n),
        ]
    )
    params = executor.json_schema["definitions"]["bounded"]["properties"]["params"]["properties"]

    assert params["n"] == {
        "anyOf": [
            {"type": "number", "exclusiveMinimum": 0},
            {"$ref": f"#/definitions/ActionUnionThatOutputs_{identity(float)}"},
        ]
    }
    assert params["code"] == {"type": "string", "minLength": 2, "maxLength": 4, "pattern": "^[A-Z]+$"}
    with pytest.raises(ChainShapeError):
        executor.prepare({"action": "bounded", "params": {"n": -1, "code": "AB"}})
    with pytest.raises(ChainShapeError):
        executor.prepare({"action": "bounded", "params": {"n": 1, "code": "abc"}})


def test_json_schema_hands_out_copies(executor) -> None:
    exported = executor.json_schema
    before = executor.to_json()

    exported["definitions"].clear()
    exported["required"].append("tampered")

    assert executor.to_json() == before
    assert executor.json_schema["definitions"]
    assert executor.export_schema() is not executor.export_schema()


def test_type_json_schema_cases() -> None:
    assert type_json_schema(Optional[int]) == {"anyOf": [{"type": "integer"}, {"type": "null"}]}
    assert type_json_schema(list[str]) == {"type": "array", "items": {"type": "string"}}
    assert type_json_schema(tuple[int, ...]) == {"type": "array", "items": {"type": "integer"}}
    assert type_json_schema(dict[str, bool]) == {"type": "object", "additionalProperties": {"type": "boolean"}}
    assert type_json_schema(Literal["x"]) == {"type": "string", "const": "x"}
    assert type_json_schema(Literal["b", "a"]) == {
        "anyOf": [{"type": "string", "const": "a"}, {"type": "string", "const": "b"}]
    }
    assert type_json_schema(Size) == {"type": "string", "enum": ["l", "s"]}
    assert type_json_schema(datetime) == {"type": "string", "format": "date-time"}


def test_type_json_schema_rejects_recursive_and_unknown_types() -> None:
    with pytest.raises(ConfigurationError, match="Recursive model Tree"):
        type_json_schema(Tree)
    with pytest.raises(ConfigurationError, match="no interchange schema"):
        type_json_schema(tuple[int, str])


def test_response_format_wraps_schema(executor) -> None:
    response_format = executor.response_format

    assert response_format["type"] == "json_schema"
    assert response_format["json_schema"]["name"] == "execution"
    assert response_format["json_schema"]["strict"] is True
    assert response_format["json_schema"]["schema"] == executor.json_schema
