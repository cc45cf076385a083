"""Process-wide warn callable.

Recoverable oddities in a table (unknown file type, record length that does not
add up, a file skipped during a batch conversion) are reported through
``get_global_warn()(message)``. Where they end up depends on how the process was
configured: as ``DBFWarning`` instances for library users, as ``WARNING:`` lines on
stderr for the command line, or in the conversion log file.
"""
from __future__ import annotations

import io
import sys
import warnings
from collections.abc import Callable

_GLOBAL_WARN: Callable | None = None


class DBFWarning(UserWarning):
    """Category of every warning raised in API mode."""


def _to_stderr(message: str, **kwargs) -> None:
    sys.stderr.write(f"WARNING: {message}\n")
    sys.stderr.flush()


def _to_warnings(message: str, *, category: type[Warning] = DBFWarning, stacklevel: int = 2) -> None:
    warnings.warn(message, category=category, stacklevel=stacklevel + 1)


def _discard(message: str, **kwargs) -> None:
    return None


_MODE_WARN = {"cli": _to_stderr, "api": _to_warnings}


def set_global_warn(mode: str, verbose: int = 1, logfile_buffer: io.TextIOBase | None = None) -> None:
    """Select the warn callable for ``mode`` (``"cli"`` or ``"api"``) and ``verbose`` (0-3).

    ``verbose=3`` sends warnings to ``logfile_buffer`` instead, which is then required.
    """
    global _GLOBAL_WARN
    if mode not in _MODE_WARN:
        raise ValueError(f"Invalid mode: {mode}.")

    match verbose:
        case 0:
            _GLOBAL_WARN = _discard
        case 1 | 2:
            _GLOBAL_WARN = _MODE_WARN[mode]
        case 3:
            if logfile_buffer is None:
                raise ValueError("verbose=3 requires a logfile_buffer.")

            def warn(message: str, **kwargs) -> None:
                logfile_buffer.write(f"WARNING: {message}\n")

            _GLOBAL_WARN = warn
        case _:
            raise ValueError(f"Invalid verbosity: {verbose}.")


def get_global_warn() -> Callable:
    if _GLOBAL_WARN is None:
        set_global_warn("api")
    return _GLOBAL_WARN
