"""
Logging setup: Rich console output plus an optional rotating log file.

Every module logs through logging.getLogger(__name__); this is the only place
handlers are installed.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from rich.logging import RichHandler

from lichessbot.config import LoggingConfig

_FILE_FORMAT = "%(asctime)s  %(levelname)-8s  %(threadName)s  %(name)s  %(message)s"


def configure_logging(config: LoggingConfig) -> None:
    console_handler = RichHandler(rich_tracebacks=True, show_path=False)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setLevel(config.level_number)
    handlers: list[logging.Handler] = [console_handler]

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    # requests / urllib3 log every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
