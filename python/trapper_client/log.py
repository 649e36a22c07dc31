from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .errors import ConfigError

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def parse_level(name: str) -> int:
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        raise ConfigError(f"Unknown log level: {name!r}") from None


def setup_logging(level: str = "info", logfile: str | Path | None = None, console: Console | None = None) -> logging.Logger:
    """Attach handlers to the package logger and return it.

    Only the entry point calls this; library modules just log through
    ``logging.getLogger(__name__)``.
    """
    lvl = parse_level(level)
    handlers: list[logging.Handler] = [RichHandler(console=console or Console(stderr=True), show_path=False)]
    if logfile:
        path = Path(logfile)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(path)
        except OSError as e:
            raise ConfigError(f"Cannot open log file {path}: {e}") from e
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(fh)

    logger = logging.getLogger("trapper_client")
    logger.setLevel(lvl)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    for h in handlers:
        logger.addHandler(h)
    logger.propagate = False
    return logger
