import logging
from typing import Optional, Set

import rich.console
from rich.logging import RichHandler

_debug: bool = False
_created_logger_names: Set[str] = set()


def _default_level() -> int:
    return logging.DEBUG if _debug else logging.WARNING


def get_logger(name: str, override_level: Optional[int] = None) -> logging.Logger:
    """
    Return a logger whose level follows the global debug switch unless `override_level` is given.
    """
    logger = logging.getLogger(name)

    if override_level is not None:
        logger.setLevel(override_level)
    else:
        _created_logger_names.add(name)
        logger.setLevel(_default_level())
    return logger


def set_debug(debug: bool) -> None:
    global _debug
    _debug = debug
    for name in _created_logger_names:
        logging.getLogger(name).setLevel(_default_level())


def configure_logging(console: rich.console.Console) -> None:
    """
    Route all log records through a rich handler printing to `console`.
    """
    logging.basicConfig(
        format="%(name)s: %(message)s",
        handlers=[RichHandler(show_time=False, console=console, markup=True)],
        force=True,
    )
