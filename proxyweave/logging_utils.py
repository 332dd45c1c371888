"""Loggers with a print-style and a format-style entry point."""

from __future__ import annotations

import logging
from typing import Any, Optional

_DEFAULT_LOGGER = "proxyweave"


class StdLogger:
    """Writes messages through the standard logging module at INFO level."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(_DEFAULT_LOGGER)

    def log(self, *args: Any) -> None:
        """Log the arguments joined by single spaces."""
        self._logger.info(" ".join(str(arg) for arg in args), stacklevel=2)

    def logf(self, fmt: str, *args: Any) -> None:
        """Log a %-style format string with its arguments."""
        message = fmt % args if args else fmt
        self._logger.info(message, stacklevel=2)


class NopLogger:
    """A logger that discards every message, counting how many it dropped."""

    def __init__(self) -> None:
        self.discarded = 0

    def log(self, *args: Any) -> None:
        """Discard the message."""
        self.discarded += 1

    def logf(self, fmt: str, *args: Any) -> None:
        """Discard the formatted message."""
        self.discarded += 1