"""Byte sources feeding a DBFStream.

A source owns a byte buffer and two notifications: *readable* (more bytes may be
available) and *end* (no more bytes will ever arrive). The stream pulls from it
with ``try_read``, which returns exactly the number of bytes asked for or nothing,
and never blocks.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from .formats import DEFAULT_CHUNK_NBYTES
from .logginghandler import get_global_log


class ByteSource:
    """Buffered, pausable byte source. Subclasses call ``_push`` and ``_finish``."""

    total_nbytes: int | None = None  # known up front only for sources like local files

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._paused = False
        self._ended = False
        self._end_notified = False
        self._released = False
        self._on_readable: Callable[[], None] | None = None
        self._on_end: Callable[[], None] | None = None

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def released(self) -> bool:
        return self._released

    @property
    def nbytes_buffered(self) -> int:
        return len(self._buffer)

    def subscribe(self, on_readable: Callable[[], None], on_end: Callable[[], None]) -> None:
        if self._on_readable is not None:
            raise RuntimeError("This source already feeds a stream.")
        self._on_readable = on_readable
        self._on_end = on_end

    def try_read(self, nbytes: int) -> bytes | None:
        """Consume and return exactly ``nbytes`` bytes, or return None and consume nothing."""
        if nbytes < 0:
            raise ValueError(f"Cannot read a negative number of bytes ({nbytes}).")
        if len(self._buffer) < nbytes:
            return None
        data = bytes(self._buffer[:nbytes])
        del self._buffer[:nbytes]
        return data

    def pause(self) -> None:
        self._paused = True

    def release(self) -> None:
        """Drop buffered bytes for good. Bytes pushed afterwards are discarded."""
        self._released = True
        self._paused = True
        self._buffer.clear()

    def resume(self) -> None:
        if self._released:
            return
        self._paused = False
        if self._buffer or self._ended:
            self._notify_readable()

    def _push(self, data: bytes) -> None:
        if self._ended:
            raise ValueError("Cannot add bytes to a source that has already ended.")
        if not data or self._released:
            return
        self._buffer += data
        self._notify_readable()

    def _finish(self) -> None:
        if self._ended:
            return
        self._ended = True
        if self._on_end is not None and not self._end_notified:
            self._end_notified = True
            self._on_end()

    def _notify_readable(self) -> None:
        if not self._paused and self._on_readable is not None:
            self._on_readable()


class FeedSource(ByteSource):
    """Incremental feed of unknown total length. Bytes arrive through ``feed``."""

    def feed(self, data: bytes) -> None:
        self._push(bytes(data))

    def end(self) -> None:
        self._finish()


class FileSource(ByteSource):
    """Local file read lazily, one chunk per ``pump`` call.

    The file size is taken when the source is created, so the stream can check it
    against the sizes declared in the header.
    """

    def __init__(self, path: Path | str, chunk_nbytes: int = DEFAULT_CHUNK_NBYTES) -> None:
        super().__init__()
        if chunk_nbytes <= 0:
            raise ValueError("chunk_nbytes must be a positive integer.")
        self.path = Path(path)
        self.total_nbytes = self.path.stat().st_size
        self.chunk_nbytes = chunk_nbytes
        self._input_buff = open(self.path, "rb")

    def pump(self) -> int:
        """Read the next chunk from disk and notify. Returns the number of bytes read.

        Nothing is read while the source is paused or after it has ended.
        """
        if self._paused or self._ended:
            return 0
        chunk = self._input_buff.read(self.chunk_nbytes)
        if not chunk:
            log = get_global_log()
            log(f"Reached end of file {self.path.name} ({self.total_nbytes} bytes).")
            self.close()
            self._finish()
            return 0
        log = get_global_log()
        log(f"Read {len(chunk)} bytes from {self.path.name}.", level=logging.DEBUG)
        self._push(chunk)
        return len(chunk)

    def release(self) -> None:
        super().release()
        self.close()

    def close(self) -> None:
        if not self._input_buff.closed:
            self._input_buff.close()

    def __enter__(self) -> FileSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
