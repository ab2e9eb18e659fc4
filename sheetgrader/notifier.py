"""
User-facing notifications emitted by the processor and exports.

The pipeline only talks to the Notifier protocol; the CLI and tests decide
how messages are shown.
"""

import logging
from typing import Protocol

logger = logging.getLogger("sheetgrader")


class Notifier(Protocol):
    def info(self, title: str, description: str = "") -> None:
        ...

    def success(self, title: str, description: str = "") -> None:
        ...

    def warning(self, title: str, description: str = "") -> None:
        ...

    def error(self, title: str, description: str = "") -> None:
        ...


class LoggingNotifier:
    """Forwards notifications to the sheetgrader logger."""

    def info(self, title: str, description: str = "") -> None:
        logger.info("%s %s", title, description)

    def success(self, title: str, description: str = "") -> None:
        logger.info("%s %s", title, description)

    def warning(self, title: str, description: str = "") -> None:
        logger.warning("%s %s", title, description)

    def error(self, title: str, description: str = "") -> None:
        logger.error("%s %s", title, description)
