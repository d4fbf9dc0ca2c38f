"""
Logging setup

Module loggers use plain ``logging`` with one handler on the root logger.
Audit events reach the same handler already rendered as JSON by structlog
(see ``src.app.utils.audit``).
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Idempotent across repeated app creation (tests build several apps)
    for handler in root.handlers:
        if getattr(handler, "_account_service", False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._account_service = True
    root.addHandler(handler)
