"""Reporter Protocol: interface for observing chain execution step by step."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from action_chain.schema.invocation import ActionInvocation


@runtime_checkable
class Reporter(Protocol):
    """
    Standard interface for execution reporting.
    Implementations can be a console logger, a trace collector or a UI feed.
    """

    def emit(self, invocation: ActionInvocation, output: Any) -> None:
        """Called by the executor after each node of the tree has executed."""
        ...
