from action_chain.reporters.base import BaseReporter
from action_chain.reporters.console import ConsoleReporter

__all__ = ["BaseReporter", "ConsoleReporter"]
