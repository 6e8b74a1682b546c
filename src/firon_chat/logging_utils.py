"""Logging setup: structlog JSON (or plain text) on stdlib handlers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import structlog

APP_LOGGER_PREFIX = "firon_chat"
QUIET_LIBRARIES = ("httpx", "httpcore", "asyncio")
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def app_only_filter(record: logging.LogRecord) -> bool:
    """Keep console output limited to this application's loggers."""
    return record.name.startswith(APP_LOGGER_PREFIX)


def _timestamper() -> structlog.processors.TimeStamper:
    return structlog.processors.TimeStamper(fmt="iso", utc=True)


def build_formatter(structured: bool) -> logging.Formatter:
    """JSON lines via structlog, or a plain text formatter."""
    if not structured:
        return logging.Formatter(PLAIN_FORMAT)
    # Records from logging.getLogger() carry their fields as ``extra``.
    stdlib_chain = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        _timestamper(),
    ]
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(ensure_ascii=False, separators=(",", ":")),
        foreign_pre_chain=stdlib_chain,
    )


def _route_structlog_through_stdlib() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _timestamper(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _file_handler(raw_path: str, level: int, formatter: logging.Formatter) -> logging.Handler:
    path = Path(raw_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    if os.name == "posix":
        try:
            path.chmod(0o600)
        except OSError:
            logging.getLogger(__name__).warning("Could not restrict permissions on %s", path)
    return handler


def configure_logging(logging_config: dict[str, Any]) -> None:
    """Install handlers on the root logger from the ``[logging]`` config section."""
    level = logging.getLevelName(str(logging_config.get("level", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    structured = bool(logging_config.get("structured", True))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if structured:
        _route_structlog_through_stdlib()
    formatter = build_formatter(structured)

    # The TUI owns the terminal; only warnings and up reach stderr.
    console = logging.StreamHandler()
    console.setLevel(max(level, logging.WARNING))
    console.setFormatter(formatter)
    console.addFilter(app_only_filter)
    root.addHandler(console)

    if logging_config.get("log_to_file", False):
        log_file = str(logging_config.get("log_file_path") or "~/.local/state/firon-chat/app.log")
        root.addHandler(_file_handler(log_file, level, formatter))

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
