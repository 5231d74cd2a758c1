"""
Logging configuration for the catalog API.

``setup_logging`` attaches the service's own handlers to the root
logger: ``catalog.console`` always, ``catalog.file`` when a log file is
configured.  Handlers are recognised by name, so calling it again (every
``create_app`` does) only updates the level; handlers that other tools
install on the root logger are left alone.  Modules log through
``logging.getLogger(__name__)`` and never configure handlers themselves.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_HANDLER = "catalog.console"
FILE_HANDLER = "catalog.file"


def _installed(root: logging.Logger, name: str) -> bool:
    return any(handler.get_name() == name for handler in root.handlers)


def _attach(root: logging.Logger, handler: logging.Handler, name: str) -> None:
    handler.set_name(name)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger for the service.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``).  Case insensitive;
        unknown names fall back to ``INFO``.
    logfile : Optional[str]
        File to mirror records into, resolved against the working
        directory.  Only the first configured file is attached.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not _installed(root, CONSOLE_HANDLER):
        _attach(root, logging.StreamHandler(), CONSOLE_HANDLER)
    if logfile and not _installed(root, FILE_HANDLER):
        _attach(root, logging.FileHandler(Path(logfile).resolve(), encoding="utf-8"), FILE_HANDLER)
