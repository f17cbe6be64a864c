"""
Logging setup for the TODO API.

``setup_logging`` attaches a console handler (and, if ``LOG_FILE`` is
set, a file handler) to the root logger.  Application records are
prefixed with time, level and logger name.  Records of the access
logger are already JSON documents and are written as they are, one per
line.  uvicorn is started without a logging config of its own, so its
records end up in the same handlers.

Calling ``setup_logging`` again once handlers exist does nothing.
"""

import logging
from pathlib import Path
from typing import Optional

ACCESS_LOGGER = "todo_api.access"


class _Formatter(logging.Formatter):
    """Prefix application records; pass access records through."""

    def format(self, record: logging.LogRecord) -> str:
        if record.name == ACCESS_LOGGER:
            return record.getMessage()
        return super().format(record)


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level : str
        Level name such as ``"DEBUG"`` or ``"info"``.  Unknown names fall
        back to ``INFO``.
    logfile : Optional[str]
        Also append records to this file, creating its directory.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = _Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = [logging.StreamHandler()]
    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
