# src/action_chain/reporters/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from action_chain.schema.invocation import ActionInvocation


class BaseReporter(ABC):
    """
    Base class for execution reporters.
    All reporters (console, trace collectors, etc.) should inherit from it.
    """

    @abstractmethod
    def emit(self, invocation: ActionInvocation, output: Any) -> None:
        """Report one executed node of the chain."""

    def report_failure(self, invocation: ActionInvocation, error: BaseException) -> None:
        """Report the node at which the chain was aborted."""
