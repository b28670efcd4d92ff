"""Logging setup shared by the server and the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Pass to uvicorn.run(log_config=UVICORN_LOG_CONFIG) so uvicorn does not install
# its own StreamHandler and every record flows through the RichHandler below.
UVICORN_LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {},
    "handlers": {},
    "loggers": {
        "uvicorn": {"propagate": True, "level": "INFO"},
        "uvicorn.access": {"propagate": False, "level": "WARNING"},
        "uvicorn.error": {"propagate": True, "level": "INFO"},
    },
}

_QUIET_LOGGERS: tuple[tuple[str, int], ...] = (
    ("google", logging.WARNING),
    ("google.auth", logging.WARNING),
    ("urllib3", logging.WARNING),
    ("uvicorn", logging.INFO),
    ("uvicorn.access", logging.WARNING),
    ("uvicorn.error", logging.INFO),
)


def setup_logging(level: int | str = logging.INFO) -> None:
    """Set up logging with a Rich handler on stderr."""
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    rich_handler = RichHandler(
        console=Console(stderr=True),
        log_time_format="[%X]",
        show_path=False,
        markup=False,
    )
    rich_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.addHandler(rich_handler)

    for name, lvl in _QUIET_LOGGERS:
        lg = logging.getLogger(name)
        for h in lg.handlers[:]:
            lg.removeHandler(h)
        lg.setLevel(lvl)
        lg.propagate = True
