"""Action definitions: a named input model, an output type and an executor."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, get_type_hints

from pydantic import BaseModel

from action_chain.errors import ConfigurationError
from action_chain.protocols.handler import ActionHandler


@dataclass(frozen=True)
class ActionDefinition:
    """
    Standard contract for a chainable action.

    ``input_model`` fields are the action's parameters, in declaration order.
    ``output_type`` is any type annotation pydantic can validate; actions whose
    outputs share a structural shape can feed the same parameters.
    ``execute`` receives the validated ``input_model`` instance and may be a
    coroutine function.
    """

    name: str
    input_model: type[BaseModel]
    output_type: Any
    execute: ActionHandler
    description: str = ""

    @property
    def parameters(self) -> tuple[str, ...]:
        return tuple(self.input_model.model_fields)


def create_action(
    name: str,
    *,
    input_model: type[BaseModel],
    output_type: Any,
    execute: Callable[[Any], Any],
    description: str = "",
) -> ActionDefinition:
    return ActionDefinition(
        name=name,
        input_model=input_model,
        output_type=output_type,
        execute=execute,
        description=description,
    )


def action(
    name: str | None = None, *, description: str | None = None
) -> Callable[[Callable[[Any], Any]], ActionDefinition]:
    """
    Decorator turning ``def fn(args: InputModel) -> Output`` into an ActionDefinition.

    The input model comes from the first parameter's annotation and the
    output type from the return annotation. The docstring becomes the
    description unless one is given.
    """

    def decorator(func: Callable[[Any], Any]) -> ActionDefinition:
        action_name = name or func.__name__
        parameters = list(inspect.signature(func).parameters)
        if len(parameters) != 1:
            raise ConfigurationError(
                f"Action {action_name!r} must take exactly one parameter (the input model), "
                f"got {len(parameters)}."
            )

        hints = get_type_hints(func, include_extras=True)
        input_model = hints.get(parameters[0])
        if not (inspect.isclass(input_model) and issubclass(input_model, BaseModel)):
            raise ConfigurationError(
                f"Action {action_name!r}: parameter {parameters[0]!r} must be annotated with a pydantic model."
            )
        if "return" not in hints:
            raise ConfigurationError(f"Action {action_name!r} needs a return annotation for its output type.")

        return ActionDefinition(
            name=action_name,
            input_model=input_model,
            output_type=hints["return"],
            execute=func,
            description=description if description is not None else (inspect.getdoc(func) or ""),
        )

    return decorator
