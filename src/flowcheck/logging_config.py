"""Singleton logging configuration.

setup_logging() configures the root logger once per process. Every
module logs through ``logging.getLogger(__name__)`` with
``event=<name> key=value`` messages so records stay grep-friendly.

Idempotent (guarded by a module-level flag).
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "httpx",
    "aiosqlite",
    "sqlalchemy.engine",
    "mcp.server.lowlevel.server",
    "uvicorn.access",
)

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger and quiet noisy dependencies.

    Second call is a no-op, so entry points can call it freely.
    """
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
