"""Handler protocol: the callable that does an action's actual work."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ActionHandler(Protocol):
    """
    Validated input model in, output value out.

    May be a plain function or a coroutine function; the executor awaits
    awaitable results. Failures should raise ``ExecutionError`` (or any
    domain exception), which the executor propagates unchanged.
    """

    def __call__(self, params: Any) -> Any:
        ...
