from typing import Any

from loguru import logger

from action_chain.reporters.base import BaseReporter
from action_chain.schema.invocation import ActionInvocation

_PREVIEW_LIMIT = 100


def _preview(value: Any) -> str:
    text = repr(value)
    return text[:_PREVIEW_LIMIT] + "..." if len(text) > _PREVIEW_LIMIT else text


class ConsoleReporter(BaseReporter):
    """Writes every executed step of a chain to the log."""

    def emit(self, invocation: ActionInvocation, output: Any) -> None:
        nested = sorted(key for key, value in invocation.params.items() if isinstance(value, ActionInvocation))
        logger.info("--- [Chain Step] ---")
        logger.info("Action: {}", invocation.action)
        if nested:
            logger.info("Resolved from nested calls: {}", ", ".join(nested))
        logger.info("Output: {}", _preview(output))

    def report_failure(self, invocation: ActionInvocation, error: BaseException) -> None:
        logger.error("Chain aborted at {}: {}: {}", invocation.action, type(error).__name__, error)
