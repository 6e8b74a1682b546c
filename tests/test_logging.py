"""Tests for structured logging behavior."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import tempfile
import unittest

import structlog

from firon_chat.logging_utils import build_formatter, configure_logging


def _record(name: str, msg: str = "ok") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class FormatterTests(unittest.TestCase):
    """Validate structured JSON output."""

    def test_structured_formatter_includes_extra_fields(self) -> None:
        formatter = build_formatter(structured=True)
        record = _record("firon_chat.controller", "controller.submit")
        record.mode = "chat"
        record.message_id = 12

        data = json.loads(formatter.format(record))

        self.assertEqual(data["event"], "controller.submit")
        self.assertEqual(data["mode"], "chat")
        self.assertEqual(data["message_id"], 12)
        self.assertEqual(data["level"], "info")
        self.assertEqual(data["logger"], "firon_chat.controller")

    def test_plain_formatter_when_not_structured(self) -> None:
        formatter = build_formatter(structured=False)
        self.assertNotIsInstance(formatter, structlog.stdlib.ProcessorFormatter)
        self.assertIn("plain text", formatter.format(_record("firon_chat.x", "plain text")))


class ConfigureLoggingTests(unittest.TestCase):
    """Validate configure_logging() handler setup behavior."""

    def setUp(self) -> None:
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers:
            if handler not in self._original_handlers:
                handler.close()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)

    def _stream_handlers(self) -> list[logging.Handler]:
        return [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]

    def test_configure_logging_sets_root_level(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_stderr_handler_is_warning_or_above(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        handlers = self._stream_handlers()
        self.assertEqual(len(handlers), 1)
        self.assertEqual(handlers[0].level, logging.WARNING)

    def test_structured_uses_processor_formatter(self) -> None:
        configure_logging({"level": "INFO", "structured": True, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertTrue(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_noisy_loggers_set_to_warning(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        for name in ("httpx", "httpcore", "asyncio"):
            self.assertEqual(logging.getLogger(name).level, logging.WARNING)

    def test_file_handler_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "nested" / "app.log"
            configure_logging(
                {
                    "level": "DEBUG",
                    "structured": False,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )
            file_handlers = [
                h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)
            ]
            self.assertEqual(len(file_handlers), 1)
            self.assertTrue(log_path.exists())
            for handler in file_handlers:
                handler.close()

    def test_stderr_handler_filters_to_app_loggers(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        handler = self._stream_handlers()[0]
        self.assertTrue(handler.filter(_record("firon_chat.app")))
        self.assertFalse(handler.filter(_record("httpx")))


if __name__ == "__main__":
    unittest.main()
