import logging
import logging.handlers
import shutil
import unittest
import uuid
from pathlib import Path
from unittest.mock import patch

from rich.logging import RichHandler

from lichessbot.config import LoggingConfig
from lichessbot.logs import configure_logging


class ConfigureLoggingTests(unittest.TestCase):
    def _configure(self, config: LoggingConfig) -> list[logging.Handler]:
        with patch("logging.basicConfig") as basic_config:
            configure_logging(config)
        handlers = basic_config.call_args.kwargs["handlers"]
        for handler in handlers:
            self.addCleanup(handler.close)
        return handlers

    def test_console_only(self) -> None:
        handlers = self._configure(LoggingConfig(level="WARNING", file=None))

        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], RichHandler)
        self.assertEqual(handlers[0].level, logging.WARNING)

    def test_rotating_file_gets_everything(self) -> None:
        log_dir = Path(f".test_logs_{uuid.uuid4().hex}")
        self.addCleanup(lambda: shutil.rmtree(log_dir, ignore_errors=True))

        handlers = self._configure(LoggingConfig(level="INFO", file=str(log_dir / "bot.log")))

        self.assertTrue(log_dir.is_dir())
        file_handler = handlers[1]
        self.assertIsInstance(file_handler, logging.handlers.RotatingFileHandler)
        self.assertEqual(file_handler.level, logging.DEBUG)
        self.assertEqual(handlers[0].level, logging.INFO)
