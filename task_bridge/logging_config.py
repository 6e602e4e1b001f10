"""Logging setup for the task-bridge client.

The client (``task-bridge send``, ``task-bridge install-hooks``) runs headless
from the agent's hooks, so it logs to {data_dir}/logs/{process}.log, rotated at
midnight, and writes to stderr only when asked (``--verbose``).

Library modules just do ``logger = get_logger(__name__)``; a host embedding
the bridge keeps its own logging setup and receives those records.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler

from .config import data_dir

LOG_FORMAT = "[%(asctime)s] [{process}] [%(levelname)s] %(name)s: %(message)s"
BACKUP_DAYS = 14


def _file_handler(process_name: str) -> logging.Handler:
    log_dir = data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        log_dir / f"{process_name}.log",
        when="midnight",
        backupCount=BACKUP_DAYS,
        encoding="utf-8",
        delay=True,
    )
    handler.suffix = "%Y-%m-%d"  # client.log.2026-10-18
    handler.setFormatter(logging.Formatter(LOG_FORMAT.format(process=process_name), datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_process_logging(process_name: str, level: int = logging.INFO, console: bool = False) -> logging.Logger:
    """Route the root logger to the process log file (and stderr if ``console``).

    Replaces any handlers already on the root logger. config.init() must have
    been called.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(_file_handler(process_name))

    if console:
        stderr = logging.StreamHandler(sys.stderr)
        stderr.setFormatter(logging.Formatter(LOG_FORMAT.format(process=process_name), datefmt="%H:%M:%S"))
        root.addHandler(stderr)

    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger; call at module level as ``get_logger(__name__)``."""
    return logging.getLogger(name)
