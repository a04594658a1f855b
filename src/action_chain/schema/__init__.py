"""Data model: action definitions and invocation trees."""

from action_chain.schema.action import ActionDefinition, action, create_action
from action_chain.schema.invocation import ActionInvocation

__all__ = ["ActionDefinition", "ActionInvocation", "action", "create_action"]
