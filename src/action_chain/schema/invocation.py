"""Invocation trees: a call to an action whose params are literals or nested calls."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActionInvocation(BaseModel):
    """
    One node of a chain.

    A parameter value is a nested call if and only if it is an
    ActionInvocation instance; every other value (dicts included) is a
    literal. Wire dictionaries become invocation trees through the
    executor's chain-shape parse, never by looking for an "action" key.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    action: str = Field(..., description="Name of the registered action to call.")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Parameter name -> literal value or nested ActionInvocation.",
    )

    @classmethod
    def of(cls, action: str, /, **params: Any) -> ActionInvocation:
        return cls(action=action, params=params)

    def walk(self) -> Iterator[ActionInvocation]:
        """Yield this node and every nested invocation, pre-order."""
        yield self
        for value in self.params.values():
            if isinstance(value, ActionInvocation):
                yield from value.walk()

    def ordered_params(self, declared: tuple[str, ...]) -> list[tuple[str, Any]]:
        """Params in declared order, followed by any undeclared keys as given."""
        ordered = [(key, self.params[key]) for key in declared if key in self.params]
        ordered.extend((key, value) for key, value in self.params.items() if key not in declared)
        return ordered

    def to_wire(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "params": {
                key: value.to_wire() if isinstance(value, ActionInvocation) else value
                for key, value in self.params.items()
            },
        }
