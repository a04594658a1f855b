"""
Interchange schema export.

The assembled validators form an unbounded recursive type graph. Structured
generation backends want a finite JSON Schema instead, so the exporter emits
one definition per action, one ``ActionUnionThatOutputs_<identity>`` union per
produced output identity and an ``ActionUnion`` over every action, wired
together with ``$ref``. An identity seen only on parameters has no producer
to list, so it gets no union and those parameters export their bare inline
schema. Every list is sorted by a stable key and ``to_json`` sorts object
keys, so re-exporting a structurally unchanged action set is byte-identical.
"""

from __future__ import annotations

import enum
import json
from datetime import date, datetime
from typing import Annotated, Any, Literal, get_args, get_origin

from loguru import logger
from pydantic import BaseModel, TypeAdapter

from action_chain.errors import ConfigurationError
from action_chain.identity import (
    ARRAY_ORIGINS,
    MAP_ORIGINS,
    describe_type,
    identity,
    is_union,
    literal_token,
    signature,
    unwrap_annotated,
)
from action_chain.logging_utils import log_event
from action_chain.registry import ALL_ACTIONS_UNION, OUTPUT_UNION_PREFIX, ActionRegistry

JSON_SCHEMA_DIALECT = "http://json-schema.org/draft-07/schema#"

_PRIMITIVE_SCHEMAS: dict[type, dict[str, Any]] = {
    str: {"type": "string"},
    float: {"type": "number"},
    int: {"type": "integer"},
    bool: {"type": "boolean"},
    type(None): {"type": "null"},
    datetime: {"type": "string", "format": "date-time"},
    date: {"type": "string", "format": "date"},
}

# Field constraints carried onto inline param schemas.
_CONSTRAINT_KEYWORDS = frozenset(
    {
        "minimum",
        "maximum",
        "exclusiveMinimum",
        "exclusiveMaximum",
        "multipleOf",
        "minLength",
        "maxLength",
        "pattern",
        "minItems",
        "maxItems",
        "minProperties",
        "maxProperties",
    }
)


def definition_ref(key: str) -> dict[str, str]:
    return {"$ref": f"#/definitions/{key}"}


def output_union_key(output_identity: str) -> str:
    return f"{OUTPUT_UNION_PREFIX}{output_identity}"


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if value is None:
        return "null"
    return "string"


def _const_schema(value: Any) -> dict[str, Any]:
    if isinstance(value, enum.Enum):
        value = value.value
    return {"type": _json_type(value), "const": value}


def type_json_schema(tp: Any, _stack: tuple[type, ...] = ()) -> dict[str, Any]:
    """Fully inlined JSON Schema for a type annotation (no ``$ref``)."""
    tp = unwrap_annotated(tp)
    if tp is None:
        return dict(_PRIMITIVE_SCHEMAS[type(None)])

    origin = get_origin(tp)
    if origin is Literal:
        values = sorted(set(get_args(tp)), key=literal_token)
        if len(values) == 1:
            return _const_schema(values[0])
        return {"anyOf": [_const_schema(value) for value in values]}

    if is_union(tp):
        members = sorted(set(get_args(tp)), key=signature)
        return {"anyOf": [type_json_schema(member, _stack) for member in members]}

    if origin is tuple:
        args = get_args(tp)
        if len(args) == 2 and args[1] is Ellipsis:
            return {"type": "array", "items": type_json_schema(args[0], _stack)}
    elif origin in ARRAY_ORIGINS and get_args(tp):
        return {"type": "array", "items": type_json_schema(get_args(tp)[0], _stack)}
    elif origin in MAP_ORIGINS and len(get_args(tp)) == 2 and unwrap_annotated(get_args(tp)[0]) is str:
        return {"type": "object", "additionalProperties": type_json_schema(get_args(tp)[1], _stack)}
    elif isinstance(tp, type) and origin is None:
        if tp in _PRIMITIVE_SCHEMAS:
            return dict(_PRIMITIVE_SCHEMAS[tp])
        if issubclass(tp, enum.Enum):
            values = sorted((member.value for member in tp), key=literal_token)
            return {"type": _json_type(values[0]) if values else "string", "enum": values}
        if issubclass(tp, BaseModel):
            if tp in _stack:
                raise ConfigurationError(f"Recursive model {tp.__name__} cannot be inlined in the interchange schema.")
            fields = sorted(tp.model_fields.items())
            return {
                "type": "object",
                "properties": {name: type_json_schema(field.annotation, _stack + (tp,)) for name, field in fields},
                "required": [name for name, _ in fields],
                "additionalProperties": False,
            }

    raise ConfigurationError(f"Type {describe_type(tp)} has no interchange schema representation.")


class InterchangeExporter:
    def __init__(self, registry: ActionRegistry) -> None:
        self._registry = registry

    def build(self) -> dict[str, Any]:
        definitions: dict[str, Any] = {}
        names = sorted(self._registry.names)

        for name in names:
            definitions[name] = self._action_definition(name)

        for output_identity in sorted(self._registry.output_groups):
            members = sorted(self._registry.actions_for_identity(output_identity))
            definitions[output_union_key(output_identity)] = {"anyOf": [definition_ref(n) for n in members]}

        definitions[ALL_ACTIONS_UNION] = {"anyOf": [definition_ref(name) for name in names]}

        logger.debug(log_event("export.built", definitions=len(definitions)))
        return {
            "$schema": JSON_SCHEMA_DIALECT,
            "type": "object",
            "properties": {"execution": definition_ref(ALL_ACTIONS_UNION)},
            "required": ["execution"],
            "additionalProperties": False,
            "definitions": definitions,
        }

    def _action_definition(self, name: str) -> dict[str, Any]:
        definition = self._registry.get(name)
        params = sorted(definition.input_model.model_fields.items())
        properties = {}
        for param, field in params:
            try:
                properties[param] = self._param_schema(field.annotation, field.metadata)
            except ConfigurationError as exc:
                raise ConfigurationError(f"Action {name!r}, parameter {param!r}: {exc}") from exc

        return {
            "type": "object",
            "properties": {
                "action": {"type": "string", "const": name},
                "params": {
                    "type": "object",
                    "properties": properties,
                    "required": [param for param, _ in params],
                    "additionalProperties": False,
                },
            },
            "required": ["action", "params"],
            "additionalProperties": False,
        }

    def _param_schema(self, param_type: Any, metadata: list[Any]) -> dict[str, Any]:
        inline = type_json_schema(param_type)
        if metadata:
            inline.update(constraint_keywords(param_type, metadata))
        param_identity = identity(param_type)
        if not self._registry.actions_for_identity(param_identity):
            return inline
        return {"anyOf": [inline, definition_ref(output_union_key(param_identity))]}


def constraint_keywords(param_type: Any, metadata: list[Any]) -> dict[str, Any]:
    """JSON Schema validation keywords pydantic derives from a field's constraints (``gt``, ``max_length``...)."""
    generated = TypeAdapter(Annotated[(param_type, *metadata)]).json_schema()
    return {key: generated[key] for key in sorted(_CONSTRAINT_KEYWORDS) if key in generated}


def to_json(document: dict[str, Any], *, indent: int | None = None) -> str:
    """Canonical serialisation: sorted keys, so equal documents are equal bytes."""
    separators = (",", ":") if indent is None else (",", ": ")
    return json.dumps(document, sort_keys=True, indent=indent, separators=separators, ensure_ascii=False)
