from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

from loguru import logger

from action_chain.config import settings

_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
# Loguru-only levels have no stdlib twin.
_STDLIB_ALIASES = {"TRACE": "DEBUG", "SUCCESS": "INFO"}
_SOURCE_WIDTH = 38
_FUNC_MAX_LEN = 30

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[src]: <" + str(_SOURCE_WIDTH) + "}</cyan> | "
    "<level>{message}</level>"
)


def _normalize_level(value: str | None, fallback: str = "INFO") -> str:
    candidate = (value or "").strip().upper()
    return candidate if candidate in _LEVELS else fallback


def _compact_source(module_name: Any, function_name: Any, line: Any) -> str:
    module = str(module_name or "-").rsplit(".", 1)[-1] or "-"
    function = str(function_name or "-")
    if len(function) > _FUNC_MAX_LEN:
        function = function[: _FUNC_MAX_LEN - 3] + "..."
    return f"{module}.{function}:{line}"


def _patch_record(record: dict[str, Any]) -> None:
    # Records forwarded from stdlib carry their own call site in extra.
    extra = record["extra"]
    extra["src"] = _compact_source(
        extra.get("py_name") or record.get("name"),
        extra.get("py_func") or record.get("function"),
        extra.get("py_line") or record.get("line"),
    )


class InterceptHandler(logging.Handler):
    """Route stdlib logging records into Loguru with original call-site metadata."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(py_name=record.name, py_func=record.funcName, py_line=record.lineno).opt(
            exception=record.exc_info
        ).log(level, record.getMessage())


def setup_logging(level: str | None = None, *, sink: TextIO = sys.stderr, colorize: bool = True) -> str:
    """
    Configure Loguru plus stdlib logging for applications embedding action-chain.

    The library itself never installs sinks; call this once at startup.
    ``level`` overrides ACTION_CHAIN_LOG_LEVEL and unrecognised names fall
    back to INFO. Returns the level that was applied.
    """
    level_name = _normalize_level(level or settings.LOG_LEVEL)

    logger.remove()
    logger.configure(patcher=_patch_record)
    logger.add(sink, level=level_name, colorize=colorize, backtrace=False, diagnose=False, format=_FORMAT)

    root_logger = logging.getLogger()
    root_logger.handlers = [InterceptHandler()]
    root_logger.setLevel(_STDLIB_ALIASES.get(level_name, level_name))
    return level_name


def _serialize_field(value: Any) -> str:
    if isinstance(value, str):
        compact = value.replace("\n", "\\n")
        if (not compact) or any(ch in compact for ch in (" ", "|", "'")):
            escaped = compact.replace("'", "\\'")
            return f"'{escaped}'"
        return compact
    if value is None:
        return "None"
    return str(value)


def log_event(event: str, **fields: Any) -> str:
    """Build a consistent `evt=... | key=value` log message."""
    parts = [f"evt={event}"]
    for key, value in fields.items():
        parts.append(f"{key}={_serialize_field(value)}")
    return " | ".join(parts)
