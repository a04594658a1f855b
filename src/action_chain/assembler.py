"""
Chain schema assembly.

Every action gets a pydantic model for its invocation shape:

    {"action": Literal[name], "params": {<param>: Union[T, <invocation of a compatible action>...]}}

A parameter accepts its own literal type first and otherwise an invocation of
any action whose output identity equals the parameter's identity. Because
action A's params may reference action B's invocation model and vice versa,
the build is two-phase: first one handle per output group is allocated over a
shared arena, then every model body is created. Param fields only hold
handles; a handle looks its models up in the arena at validation time, by
which point the arena is fully populated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, PlainValidator, ValidationError, create_model

from action_chain.errors import ChainShapeError
from action_chain.identity import identity
from action_chain.logging_utils import log_event
from action_chain.registry import ActionRegistry
from action_chain.schema.invocation import ActionInvocation

_STRICT = ConfigDict(extra="forbid")


class InvocationHandle:
    """Deferred reference to the invocation models of one output group."""

    def __init__(self, arena: Mapping[str, type[BaseModel]], names: tuple[str, ...]) -> None:
        self._arena = arena
        self._names = names

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def validate(self, value: Any) -> BaseModel:
        if not isinstance(value, Mapping):
            raise ValueError(f"expected an invocation of one of {list(self._names)}")
        action_name = value.get("action")
        if action_name not in self._names:
            raise ValueError(
                f"action {action_name!r} does not produce this parameter's type; "
                f"compatible actions: {list(self._names)}"
            )
        return self._arena[action_name].model_validate(value)


@dataclass(frozen=True)
class AssembledSchemas:
    invocation_models: Mapping[str, type[BaseModel]]
    chain_model: type[BaseModel]

    def is_invocation(self, value: Any) -> bool:
        action_name = getattr(value, "action", None)
        if not isinstance(action_name, str):
            return False
        model = self.invocation_models.get(action_name)
        return model is not None and type(value) is model

    def to_invocation(self, parsed: BaseModel) -> ActionInvocation:
        """Convert a parsed invocation model into a tagged ActionInvocation tree."""
        params_model = parsed.params
        params: dict[str, Any] = {}
        for key in type(params_model).model_fields:
            if key not in params_model.model_fields_set:
                continue
            value = getattr(params_model, key)
            params[key] = self.to_invocation(value) if self.is_invocation(value) else value
        return ActionInvocation(action=parsed.action, params=params)

    def parse_document(self, document: Any) -> ActionInvocation:
        try:
            parsed = self.chain_model.model_validate(document)
        except ValidationError as exc:
            logger.info(log_event("chain.shape.rejected", errors=exc.error_count()))
            raise ChainShapeError(f"Invocation does not match the chain schema:\n{exc}", exc) from exc
        return self.to_invocation(parsed.execution)

    def parse(self, invocation: Any) -> ActionInvocation:
        return self.parse_document({"execution": invocation})


class ChainSchemaAssembler:
    def __init__(self, registry: ActionRegistry) -> None:
        self._registry = registry

    def build(self) -> AssembledSchemas:
        arena: dict[str, type[BaseModel]] = {}

        # Phase 1: one handle per output group, nothing built yet.
        handles = {
            group_identity: InvocationHandle(arena, names)
            for group_identity, names in self._registry.output_groups.items()
        }

        # Phase 2: bodies. Cross-references go through handles only.
        for name in self._registry.names:
            arena[name] = self._invocation_model(name, handles)

        models = tuple(arena[name] for name in self._registry.names)
        if len(models) == 1:
            execution: Any = models[0]
        else:
            execution = Annotated[Union[models], Field(discriminator="action")]
        chain_model = create_model("ChainDocument", __config__=_STRICT, execution=(execution, ...))

        logger.debug(log_event("assembler.built", models=len(arena), handles=len(handles)))
        return AssembledSchemas(invocation_models=dict(arena), chain_model=chain_model)

    def _invocation_model(self, name: str, handles: Mapping[str, InvocationHandle]) -> type[BaseModel]:
        definition = self._registry.get(name)
        stem = "".join(ch if ch.isalnum() else "_" for ch in name)

        fields: dict[str, Any] = {}
        for param, field in definition.input_model.model_fields.items():
            annotation = self._param_annotation(field.annotation, field.metadata, handles)
            fields[param] = (annotation, ...) if field.is_required() else (annotation, None)

        params_model = create_model(f"{stem}Params", __config__=_STRICT, **fields)
        return create_model(
            f"{stem}Invocation",
            __config__=_STRICT,
            action=(Literal[name], ...),
            params=(params_model, ...),
        )

    @staticmethod
    def _param_annotation(param_type: Any, metadata: list[Any], handles: Mapping[str, InvocationHandle]) -> Any:
        # Field constraints bind the literal alternative only.
        literal = Annotated[(param_type, *metadata)] if metadata else param_type
        handle = handles.get(identity(param_type))
        if handle is None:
            return literal
        nested = Annotated[Any, PlainValidator(handle.validate)]
        return Annotated[Union[literal, nested], Field(union_mode="left_to_right")]
