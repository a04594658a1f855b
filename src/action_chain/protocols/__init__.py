"""Protocols for the pluggable parts: action handlers and execution reporters."""

from action_chain.protocols.handler import ActionHandler
from action_chain.protocols.reporter import Reporter

__all__ = ["ActionHandler", "Reporter"]
