"""
Chain executor.

Resolves an invocation tree depth-first, pre-order, one parameter at a time
in declared order, then validates the resolved input against the target
action's own input model and runs it. Any failure aborts the whole call.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import re
from collections.abc import Mapping, Sequence
from typing import Any

import json_repair
from loguru import logger
from pydantic import BaseModel, ValidationError
from pydantic_core import InitErrorDetails, PydanticCustomError

from action_chain.assembler import AssembledSchemas, ChainSchemaAssembler
from action_chain.config import settings
from action_chain.errors import ChainShapeError, InputValidationError, ResponseParseError
from action_chain.exporter import InterchangeExporter, to_json
from action_chain.identity import describe_type, identity
from action_chain.logging_utils import log_event
from action_chain.protocols.reporter import Reporter
from action_chain.registry import ActionRegistry, ActionSet
from action_chain.schema.action import ActionDefinition
from action_chain.schema.invocation import ActionInvocation

_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


class ActionsExecutor:
    """
    Runs invocation trees over a fixed action set.

    The registry, the chain schema and the interchange document are all built
    here, so a set that cannot be exported fails at construction.
    ``validate_chain`` (default ``ACTION_CHAIN_VALIDATE_CHAIN``) only affects
    prebuilt ActionInvocation trees; wire mappings always go through the
    chain-shape parse.
    """

    def __init__(
        self,
        actions: ActionSet,
        *,
        validate_chain: bool | None = None,
        reporters: Sequence[Reporter] = (),
    ) -> None:
        self._registry = ActionRegistry(actions)
        self._schemas: AssembledSchemas = ChainSchemaAssembler(self._registry).build()
        self._json_schema = InterchangeExporter(self._registry).build()
        self._validate_chain = settings.VALIDATE_CHAIN if validate_chain is None else validate_chain
        self._reporters = list(reporters)

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    @property
    def chain_schema(self) -> type[BaseModel]:
        """Pydantic model of the top-level ``{"execution": <invocation>}`` document."""
        return self._schemas.chain_model

    def get_action_names(self) -> list[str]:
        return list(self._registry.names)

    def get_action_schema(self, name: str) -> type[BaseModel]:
        return self._registry.get(name).input_model

    # --- Interchange schema ---

    @property
    def json_schema(self) -> dict[str, Any]:
        """A fresh copy of the interchange document; mutating it has no effect here."""
        return copy.deepcopy(self._json_schema)

    def export_schema(self) -> dict[str, Any]:
        return self.json_schema

    def to_json(self, *, indent: int | None = None) -> str:
        return to_json(self._json_schema, indent=indent)

    @property
    def response_format(self) -> dict[str, Any]:
        """OpenAI-style structured output wrapper around the interchange schema."""
        return {
            "type": "json_schema",
            "json_schema": {
                "name": settings.RESPONSE_FORMAT_NAME,
                "strict": settings.STRICT_RESPONSE_FORMAT,
                "schema": self.json_schema,
            },
        }

    def parse_response(self, content: str) -> ActionInvocation:
        """
        Decode a model's structured-output text into an invocation tree.

        Markdown fences are stripped and minor JSON damage is repaired before
        the document is checked against the chain schema.
        """
        clean_text = _CODE_FENCE.sub("", content or "").strip()
        data = json_repair.loads(clean_text) if clean_text else None
        if not isinstance(data, dict):
            raise ResponseParseError(f"Expected a JSON object with an 'execution' key, got: {clean_text[:80]!r}")
        return self._schemas.parse_document(data)

    # --- Execution ---

    def prepare(self, invocation: Any, *, validate_chain: bool | None = None) -> ActionInvocation:
        """
        Turn a caller's invocation into a checked ActionInvocation tree.

        Wire mappings always go through the chain-shape parse, which is what
        tags nested calls, so ``validate_chain`` does not apply to them and an
        unknown nested action inside one is a ChainShapeError. Prebuilt trees
        are checked only when the chain-shape pre-check is enabled.
        """
        check = self._validate_chain if validate_chain is None else validate_chain

        if isinstance(invocation, ActionInvocation):
            for node in invocation.walk():
                self._registry.get(node.action)
            if check:
                self._schemas.parse(invocation.to_wire())
            return invocation

        if not isinstance(invocation, Mapping):
            raise ChainShapeError(
                f"An invocation must be a mapping or ActionInvocation, got {type(invocation).__name__}."
            )
        if "action" in invocation:
            self._registry.get(invocation["action"])
        return self._schemas.parse(invocation)

    async def execute(self, invocation: Any, *, validate_chain: bool | None = None) -> Any:
        tree = self.prepare(invocation, validate_chain=validate_chain)
        logger.debug(log_event("chain.execute.begin", action=tree.action))
        return await self._execute_node(tree)

    def execute_sync(self, invocation: Any, *, validate_chain: bool | None = None) -> Any:
        return asyncio.run(self.execute(invocation, validate_chain=validate_chain))

    async def _execute_node(self, node: ActionInvocation) -> Any:
        definition = self._registry.get(node.action)
        params = node.ordered_params(definition.parameters)

        try:
            self._check_nested_outputs(node, definition, params)
        except InputValidationError as exc:
            self._report_failure(node, exc)
            raise

        # Nested nodes report their own failures.
        resolved: dict[str, Any] = {}
        for key, value in params:
            if isinstance(value, ActionInvocation):
                output = await self._execute_node(value)
                resolved[key] = self._registry.output_adapter(value.action).dump_python(output, warnings=False)
            else:
                resolved[key] = value

        try:
            try:
                validated = definition.input_model.model_validate(resolved)
            except ValidationError as exc:
                logger.warning(log_event("chain.node.failed", action=node.action, errors=exc.error_count()))
                raise InputValidationError(node.action, exc) from exc

            result = definition.execute(validated)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._report_failure(node, exc)
            raise

        logger.debug(log_event("chain.node.executed", action=node.action))
        for reporter in self._reporters:
            reporter.emit(node, result)
        return result

    def _check_nested_outputs(
        self, node: ActionInvocation, definition: ActionDefinition, params: list[tuple[str, Any]]
    ) -> None:
        """Reject nested calls whose output identity differs from their parameter's, before running them."""
        fields = definition.input_model.model_fields
        line_errors: list[InitErrorDetails] = []
        for key, value in params:
            if not isinstance(value, ActionInvocation) or key not in fields:
                continue
            expected = fields[key].annotation
            produced = self._registry.output_identity(value.action)
            if produced is not None and produced == identity(expected):
                continue
            line_errors.append(
                {
                    "type": PydanticCustomError(
                        "nested_output_mismatch",
                        "action {producer} outputs {produced}, parameter expects {expected}",
                        {
                            "producer": value.action,
                            "produced": describe_type(self._registry.get(value.action).output_type),
                            "expected": describe_type(expected),
                        },
                    ),
                    "loc": (key,),
                    "input": value.to_wire(),
                }
            )

        if line_errors:
            error = ValidationError.from_exception_data(definition.input_model.__name__, line_errors)
            logger.warning(log_event("chain.node.failed", action=node.action, errors=len(line_errors)))
            raise InputValidationError(node.action, error)

    def _report_failure(self, node: ActionInvocation, error: BaseException) -> None:
        for reporter in self._reporters:
            if hasattr(reporter, "report_failure"):
                reporter.report_failure(node, error)


def create_actions_executor(
    actions: ActionSet,
    *,
    validate_chain: bool | None = None,
    reporters: Sequence[Reporter] = (),
) -> ActionsExecutor:
    return ActionsExecutor(actions, validate_chain=validate_chain, reporters=reporters)
