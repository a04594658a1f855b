"""
Action registry and output grouping index.

The registry is built once from the caller's action set and never mutated.
Construction validates every definition (fail fast) and derives, for each
action, the structural identity of its output type; actions sharing an
identity form an output group, kept in first-registration order.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from loguru import logger
from pydantic import BaseModel, PydanticUserError, TypeAdapter

from action_chain.errors import ConfigurationError, UnknownActionError
from action_chain.identity import describe_type, output_identity
from action_chain.logging_utils import log_event
from action_chain.schema.action import ActionDefinition

ALL_ACTIONS_UNION = "ActionUnion"
OUTPUT_UNION_PREFIX = "ActionUnionThatOutputs_"

ActionSet = Mapping[str, ActionDefinition] | Iterable[ActionDefinition]


def _collect(actions: ActionSet) -> dict[str, ActionDefinition]:
    collected: dict[str, ActionDefinition] = {}
    if isinstance(actions, Mapping):
        for key, definition in actions.items():
            if isinstance(definition, ActionDefinition) and key != definition.name:
                raise ConfigurationError(
                    f"Action registered under {key!r} is named {definition.name!r}; keys must match names."
                )
            collected[key] = definition
        return collected

    for definition in actions:
        name = getattr(definition, "name", None)
        if name in collected:
            raise ConfigurationError(f"Duplicate action name: {name!r}")
        collected[name] = definition
    return collected


def _check_definition(key: str, definition: Any) -> None:
    if not isinstance(definition, ActionDefinition):
        raise ConfigurationError(f"{key!r} is not an ActionDefinition (got {type(definition).__name__}).")
    if not isinstance(key, str) or not key:
        raise ConfigurationError(f"Action names must be non-empty strings, got {key!r}.")
    if key == ALL_ACTIONS_UNION or key.startswith(OUTPUT_UNION_PREFIX):
        raise ConfigurationError(f"Action name {key!r} is reserved for interchange schema definitions.")
    if not (inspect.isclass(definition.input_model) and issubclass(definition.input_model, BaseModel)):
        raise ConfigurationError(f"Action {key!r}: input_model must be a pydantic model class.")
    if not callable(definition.execute):
        raise ConfigurationError(f"Action {key!r}: execute must be callable.")


def _output_adapter(key: str, definition: ActionDefinition) -> TypeAdapter:
    try:
        return TypeAdapter(definition.output_type)
    except (PydanticUserError, TypeError) as exc:
        raise ConfigurationError(
            f"Action {key!r}: cannot build a validator for output type {describe_type(definition.output_type)}: {exc}"
        ) from exc


class ActionRegistry:
    def __init__(self, actions: ActionSet) -> None:
        collected = _collect(actions)
        if not collected:
            raise ConfigurationError("At least one action is required.")

        groups: dict[str, list[str]] = {}
        identities: dict[str, str | None] = {}
        adapters: dict[str, TypeAdapter] = {}
        for key, definition in collected.items():
            _check_definition(key, definition)
            adapters[key] = _output_adapter(key, definition)

            identity = output_identity(definition.output_type)
            identities[key] = identity
            if identity is None:
                logger.warning(
                    log_event(
                        "registry.output.unknown",
                        action=key,
                        output=describe_type(definition.output_type),
                    )
                )
                continue
            groups.setdefault(identity, []).append(key)

        self._actions = MappingProxyType(collected)
        self._identities = MappingProxyType(identities)
        self._output_adapters = MappingProxyType(adapters)
        self._groups = MappingProxyType({identity: tuple(names) for identity, names in groups.items()})

        logger.debug(log_event("registry.built", actions=len(self._actions), groups=len(self._groups)))

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __iter__(self) -> Iterator[str]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def names(self) -> tuple[str, ...]:
        """Action names in registration order."""
        return tuple(self._actions)

    @property
    def output_groups(self) -> Mapping[str, tuple[str, ...]]:
        """Output identity -> names of the actions producing it."""
        return self._groups

    def get(self, name: str) -> ActionDefinition:
        try:
            return self._actions[name]
        except (KeyError, TypeError):
            raise UnknownActionError(name) from None

    def output_identity(self, name: str) -> str | None:
        self.get(name)
        return self._identities[name]

    def output_adapter(self, name: str) -> TypeAdapter:
        self.get(name)
        return self._output_adapters[name]

    def actions_for_identity(self, identity: str | None) -> tuple[str, ...]:
        if identity is None:
            return ()
        return self._groups.get(identity, ())
