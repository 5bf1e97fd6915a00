"""Logging setup shared by every module."""

from __future__ import annotations

import logging
import logging.handlers
import sys
from typing import Any

from assetpatcher.config import env

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "assetpatcher.log"


class CustomLogger(logging.Logger):
    """Logger with a shortcut for logging an error together with its traceback."""

    def error_trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log an error with the active exception's stack trace."""
        kwargs.setdefault("exc_info", True)
        kwargs.setdefault("stacklevel", 2)
        self.error(msg, *args, **kwargs)


logging.setLoggerClass(CustomLogger)


def setup_logger(name: str, level: str | None = None) -> CustomLogger:
    """Return a configured logger for ``name``.

    Handlers are attached once per logger; repeated calls return the same
    instance. A rotating file handler is added when ENABLE_LOGGING is set.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger  # type: ignore[return-value]

    logger.setLevel(getattr(logging, (level or env.LOG_LEVEL).upper(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if env.ENABLE_LOGGING:
        try:
            env.LOG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                env.LOG_DIR / LOG_FILE_NAME,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"File logging disabled, cannot write to {env.LOG_DIR}: {e}")

    return logger  # type: ignore[return-value]
