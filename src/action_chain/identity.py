"""
Structural type identity.

Two type annotations are considered the same "output type" when their
canonical signatures match. The signature is built purely from shape:
object fields are sorted by name, union members are sorted, primitives map
to fixed tokens. The identity is a short SHA-1 prefix of that signature, so
it is reproducible across runs and independent of where (or how often) a
model class was declared.

Signature grammar:

    string | number | integer | boolean | null | datetime | date
    literal_<json>
    enum_<json>_<json>...            (values sorted)
    array_<sig>
    map_<sig>
    object_<field>-<sig>_<field>-<sig>...   (entries sorted)
    union_<sig>_or_<sig>...          (members sorted, de-duplicated)
    recursive                        (re-entry into a model being signed)
    unknown
"""

from __future__ import annotations

import enum
import hashlib
import json
import types
from collections.abc import Mapping, Sequence
from collections.abc import Set as AbstractSet
from datetime import date, datetime
from functools import lru_cache
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel

UNKNOWN = "unknown"
RECURSIVE = "recursive"
IDENTITY_LENGTH = 8

_PRIMITIVES: dict[type, str] = {
    str: "string",
    float: "number",
    int: "integer",
    bool: "boolean",
    type(None): "null",
    datetime: "datetime",
    date: "date",
}

ARRAY_ORIGINS = (list, set, frozenset, Sequence, AbstractSet)
MAP_ORIGINS = (dict, Mapping)


def unwrap_annotated(tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return tp


def is_union(tp: Any) -> bool:
    return get_origin(tp) in (Union, types.UnionType)


def literal_token(value: Any) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    return json.dumps(value, sort_keys=True)


def signature(tp: Any) -> str:
    """Canonical, order-independent structural signature of ``tp``."""
    return _signature(tp, ())


def _signature(tp: Any, stack: tuple[type, ...]) -> str:
    tp = unwrap_annotated(tp)
    if tp is None:
        return _PRIMITIVES[type(None)]

    origin = get_origin(tp)
    if origin is Literal:
        tokens = sorted({f"literal_{literal_token(value)}" for value in get_args(tp)})
        return tokens[0] if len(tokens) == 1 else "union_" + "_or_".join(tokens)

    if is_union(tp):
        members = sorted({_signature(member, stack) for member in get_args(tp)})
        return members[0] if len(members) == 1 else "union_" + "_or_".join(members)

    if origin is tuple:
        args = get_args(tp)
        if len(args) == 2 and args[1] is Ellipsis:
            return f"array_{_signature(args[0], stack)}"
        return UNKNOWN

    if origin in ARRAY_ORIGINS:
        args = get_args(tp)
        return f"array_{_signature(args[0], stack)}" if args else UNKNOWN

    if origin in MAP_ORIGINS:
        args = get_args(tp)
        if len(args) == 2 and unwrap_annotated(args[0]) is str:
            return f"map_{_signature(args[1], stack)}"
        return UNKNOWN

    if not isinstance(tp, type) or origin is not None:
        return UNKNOWN

    if tp in _PRIMITIVES:
        return _PRIMITIVES[tp]

    if issubclass(tp, enum.Enum):
        values = sorted(literal_token(member.value) for member in tp)
        return "enum_" + "_".join(values)

    if issubclass(tp, BaseModel):
        if tp in stack:
            return RECURSIVE
        inner = stack + (tp,)
        entries = sorted(
            f"{name}-{_signature(field.annotation, inner)}" for name, field in tp.model_fields.items()
        )
        return "object_" + "_".join(entries)

    return UNKNOWN


@lru_cache(maxsize=1024)
def digest(signature_text: str) -> str:
    return hashlib.sha1(signature_text.encode("utf-8")).hexdigest()[:IDENTITY_LENGTH]


def identity(tp: Any) -> str:
    """Short stable token for the structural shape of ``tp``."""
    return digest(signature(tp))


def output_identity(tp: Any) -> str | None:
    """Identity used for output grouping; ``None`` for the unknown bucket."""
    sig = signature(tp)
    if sig == UNKNOWN:
        return None
    return digest(sig)


def describe_type(tp: Any) -> str:
    tp = unwrap_annotated(tp)
    if isinstance(tp, type) and get_origin(tp) is None:
        return tp.__name__
    return repr(tp).replace("typing.", "")
