"""Process-wide log callable shared by every dbfstream module.

``set_global_log`` decides where informational messages go (nowhere, stderr, or
the log file of a conversion run) and ``get_global_log`` hands out a callable
``log(message, level=logging.INFO)`` bound to that decision. Decoding code only
ever calls the callable, so the same stream can run silently inside an
application or chattily from the command line.
"""
from __future__ import annotations

import io
import logging
import sys
from collections.abc import Callable

LOGGER_NAME = "dbfstream"

# verbosity -> lowest level that reaches the handler; None means logging is off
VERBOSE_LEVELS = {
    0: None,
    1: None,
    2: logging.INFO,
    3: logging.DEBUG,
}
FORMATS = {
    "cli": "%(levelname)s: %(message)s",
    "api": "%(name)s %(levelname)s: %(message)s",
}

_GLOBAL_LOG: Callable | None = None


def _silent(message: str, *args, **kwargs) -> None:
    return None


def set_global_log(
    mode: str,
    verbose: int = 1,
    logfile_buffer: io.TextIOBase | None = None,
    logger_name: str = LOGGER_NAME,
) -> None:
    """Configure the global log callable.

    Parameters
    ----------
    mode : str
        ``"cli"`` or ``"api"``. Only changes the message format.
    verbose : int
        0 and 1 keep logging off. 2 logs INFO and above to stderr. 3 logs everything,
        DEBUG included, to ``logfile_buffer`` (stderr if it is None).
    logfile_buffer : file-like, optional
        Text stream receiving the messages when ``verbose`` is 3.
    logger_name : str
        Name of the ``logging`` logger that gets the handler.
    """
    global _GLOBAL_LOG
    if mode not in FORMATS:
        raise ValueError(f"Invalid mode: {mode}.")
    if verbose not in VERBOSE_LEVELS:
        raise ValueError(f"Invalid verbosity: {verbose}.")

    logger = logging.getLogger(logger_name)
    # a previous run may have left a handler on a now closed log file
    for h in list(logger.handlers):
        logger.removeHandler(h)

    level = VERBOSE_LEVELS[verbose]
    if level is None:
        _GLOBAL_LOG = _silent
        return

    target = logfile_buffer if (verbose == 3 and logfile_buffer is not None) else sys.stderr
    handler = logging.StreamHandler(target)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FORMATS[mode]))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    def log(message: str, level: int = logging.INFO, **kwargs) -> None:
        logger.log(level, message, **kwargs)

    _GLOBAL_LOG = log


def get_global_log() -> Callable:
    """Return the configured log callable. Library use without configuration stays silent."""
    if _GLOBAL_LOG is None:
        set_global_log("api")
    return _GLOBAL_LOG
