"""
action-chain: typed, composable actions.

Declare actions with a pydantic input model and an output type, then run
call trees where any action's output feeds any parameter of the same
structural type. The same action set exports a finite JSON Schema for
structured-output LLM backends.
"""

from action_chain.errors import (
    ActionChainError,
    ChainShapeError,
    ConfigurationError,
    ExecutionError,
    InputValidationError,
    ResponseParseError,
    UnknownActionError,
)
from action_chain.executor import ActionsExecutor, create_actions_executor
from action_chain.identity import identity, output_identity, signature
from action_chain.registry import ActionRegistry
from action_chain.schema import ActionDefinition, ActionInvocation, action, create_action

__version__ = "0.1.0"
__all__ = [
    "ActionChainError",
    "ActionDefinition",
    "ActionInvocation",
    "ActionRegistry",
    "ActionsExecutor",
    "ChainShapeError",
    "ConfigurationError",
    "ExecutionError",
    "InputValidationError",
    "ResponseParseError",
    "UnknownActionError",
    "action",
    "create_action",
    "create_actions_executor",
    "identity",
    "output_identity",
    "signature",
]
