"""Error taxonomy shared by the registry, the executor and the exporter."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError


class ActionChainError(Exception):
    """Base class for every error raised by action-chain."""


class ConfigurationError(ActionChainError):
    """The action set cannot be turned into a registry (or exported)."""


class UnknownActionError(ActionChainError, LookupError):
    def __init__(self, action: Any) -> None:
        self.action = action
        super().__init__(f"Unknown action: {action!r}")


class _ValidationFailure(ActionChainError):
    def __init__(self, message: str, validation_error: ValidationError | None = None) -> None:
        self.validation_error = validation_error
        super().__init__(message)

    @property
    def errors(self) -> list[dict[str, Any]]:
        if self.validation_error is None:
            return []
        return self.validation_error.errors()


class InputValidationError(_ValidationFailure):
    """Resolved parameters do not satisfy the action's own input model."""

    def __init__(self, action: str, validation_error: ValidationError) -> None:
        self.action = action
        count = validation_error.error_count()
        super().__init__(
            f"Input for action {action!r} failed validation ({count} error{'s' if count != 1 else ''}):\n"
            f"{validation_error}",
            validation_error,
        )


class ChainShapeError(_ValidationFailure):
    """The invocation tree does not match the assembled chain schema."""


class ExecutionError(ActionChainError):
    """Raised by action executors when they fail on valid input.

    The executor never wraps or retries it; it reaches the caller of
    ``execute`` unchanged.
    """


class ResponseParseError(ActionChainError):
    """Model output text could not be decoded into a chain document."""
