import logging
import sys
from pathlib import Path

from .config import LogConfig

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(message)s"


def _attach(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def setup_logging(config: LogConfig) -> None:
    """
    Configure the root logger for the server or client process.

    Args:
        config: LogConfig object containing settings.

    Note:
        Handlers installed by an earlier call are closed and removed, so
        repeated calls (tests, reconfiguration) never duplicate output or
        leak open log files.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _attach(root, logging.FileHandler(log_path, mode="a", encoding="utf-8"), level)

    if config.console:
        _attach(root, logging.StreamHandler(sys.stderr), level)
