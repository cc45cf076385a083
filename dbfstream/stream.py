"""Incremental DBF decoding driven by byte source notifications and sink demand.

``DBFStream`` re-enters its state machine every time the source says more bytes
may be available and every time the sink side calls ``resume``. Each entry
decodes as many structural units (header, field table, records) as the buffered
bytes allow, then returns. Nothing blocks: when bytes are missing the stream
waits for the next notification, and when the sink refuses a record the stream
pauses the source until it is resumed.
"""
from __future__ import annotations

import codecs
import logging
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
from typing import Protocol

from .decode import decode_record
from .exceptions import (
    CorruptedFileError,
    DBFError,
    EmptyFileError,
    InternalInconsistencyError,
    NoFieldsError,
    ShortReadError,
    SizeMismatchError,
)
from .formats import (
    DEFAULT_ENCODING,
    DEFAULT_HIGH_WATER_MARK,
    HEADER_NBYTES,
    MAX_SHORT_READS,
    TERMINAL_PHASES,
    Header,
    ParsePhase,
    Record,
)
from .headers import decode_field_descriptors, decode_header, format_header_summary, validate_fields
from .ingest import ByteSource
from .logginghandler import get_global_log
from .warninghandler import get_global_warn

EVENTS = ("header", "error", "end")


class Sink(Protocol):
    def push(self, record: Record) -> bool:
        """Accept a record. Return False when no more records are wanted for now."""
        ...


class RecordQueue:
    """Default sink: a FIFO that asks the stream to stop once ``high_water_mark`` records are waiting."""

    def __init__(self, high_water_mark: int = DEFAULT_HIGH_WATER_MARK) -> None:
        if high_water_mark <= 0:
            raise ValueError("high_water_mark must be a positive integer.")
        self.high_water_mark = high_water_mark
        self._records: deque[Record] = deque()

    def push(self, record: Record) -> bool:
        self._records.append(record)
        return len(self._records) < self.high_water_mark

    def popleft(self) -> Record:
        return self._records.popleft()

    def drain(self) -> Iterator[Record]:
        while self._records:
            yield self._records.popleft()

    def __len__(self) -> int:
        return len(self._records)


@dataclass
class ParserState:
    """Everything one decoding session mutates."""
    phase: ParsePhase = ParsePhase.AWAITING_HEADER
    short_reads: int = 0  # shared by the header and field table steps, never reset
    in_flight: bool = False
    next_record: int = 1
    header: Header | None = None
    error: DBFError | None = None

    @property
    def finished(self) -> bool:
        return self.phase in TERMINAL_PHASES


class DBFStream:
    """Decode a DBF byte source into records pushed to a sink.

    Parameters
    ----------
    source : ByteSource
        Where the bytes come from. When ``source.total_nbytes`` is known, the header
        sizes are checked against it.
    sink : Sink, optional
        Receives each record through ``push``. Defaults to a ``RecordQueue``.
    encoding : str, optional
        Codec used for field names and field values. Default is utf-8.

    Notifications registered with ``on``:

    - ``header``: fired once with the ``Header`` (fields attached), before any record.
    - ``error``: fired at most once with the ``DBFError`` that stopped decoding.
    - ``end``: fired exactly once, after the last record or after ``error``.
    """

    def __init__(self, source: ByteSource, sink: Sink | None = None, encoding: str = DEFAULT_ENCODING) -> None:
        codecs.lookup(encoding)  # fail early on an unknown codec
        self.source = source
        self.sink = sink if sink is not None else RecordQueue()
        self.encoding = encoding
        self.state = ParserState()
        self._listeners: dict[str, list[Callable]] = {event: [] for event in EVENTS}
        self._started = False

    @property
    def header(self) -> Header | None:
        return self.state.header

    @property
    def phase(self) -> ParsePhase:
        return self.state.phase

    @property
    def finished(self) -> bool:
        return self.state.finished

    @property
    def records_emitted(self) -> int:
        return self.state.next_record - 1

    def on(self, event: str, callback: Callable) -> DBFStream:
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}'. Valid events are {', '.join(EVENTS)}.")
        self._listeners[event].append(callback)
        return self

    def start(self) -> DBFStream:
        """Subscribe to the source. Bytes already buffered in it are decoded right away."""
        if self._started:
            raise RuntimeError("Stream already started.")
        self._started = True
        self.source.subscribe(self._drive, self._drive)
        if self.source.nbytes_buffered or self.source.ended:
            self._drive()
        return self

    def resume(self) -> None:
        """Tell the stream that the sink wants records again."""
        if self.state.phase is not ParsePhase.BLOCKED:
            return
        self.state.phase = ParsePhase.AWAITING_RECORDS
        # the source notifies us again if it is holding bytes or has ended
        self.source.resume()

    def _drive(self) -> None:
        state = self.state
        if state.finished:
            return
        if state.in_flight:
            log = get_global_log()
            log("Decode already in progress, ignoring re-entrant notification.", level=logging.DEBUG)
            return

        state.in_flight = True
        try:
            while self._step():
                pass
        except ShortReadError as err:
            self._retry_or_escalate(err)
        except DBFError as err:
            self._fail(err)
        finally:
            state.in_flight = False

    def _step(self) -> bool:
        """Advance the state machine by one unit. Returns True when it may advance again."""
        state = self.state
        match state.phase:
            case ParsePhase.AWAITING_HEADER:
                header = decode_header(self._read_unit(HEADER_NBYTES, "header"))
                self._check_header(header)
                state.header = header
                state.phase = ParsePhase.AWAITING_FIELDS
                return True

            case ParsePhase.AWAITING_FIELDS:
                fields_nbytes = max(state.header.header_nbytes - HEADER_NBYTES, 0)
                fields = decode_field_descriptors(self._read_unit(fields_nbytes, "field table"), self.encoding)
                if not fields:
                    raise NoFieldsError(f"Header declares {state.header.header_nbytes} bytes but no field descriptor was found.")
                state.header = replace(state.header, fields=tuple(fields))
                validate_fields(state.header)
                log = get_global_log()
                log(f"Decoded header: {format_header_summary(state.header)}")
                state.phase = ParsePhase.AWAITING_RECORDS
                self._emit("header", state.header)
                return True

            case ParsePhase.AWAITING_RECORDS:
                data = self.source.try_read(state.header.record_nbytes)
                if data is None:
                    # records may straddle chunks: only the end of input finishes the stream
                    if self.source.ended:
                        self._finish()
                    return False
                record = decode_record(data, state.header.fields, self.encoding, state.next_record)
                state.next_record += 1
                if not self.sink.push(record):
                    state.phase = ParsePhase.BLOCKED
                    self.source.pause()
                    return False
                return True

            case ParsePhase.BLOCKED | ParsePhase.DONE | ParsePhase.FAILED:
                return False

            case _:
                raise InternalInconsistencyError(f"Unknown parser phase {state.phase!r}.")

    def _read_unit(self, nbytes: int, what: str) -> bytes:
        data = self.source.try_read(nbytes)
        if data is None:
            raise ShortReadError(f"The {what} needs {nbytes} bytes, only {self.source.nbytes_buffered} available.")
        return data

    def _check_header(self, header: Header) -> None:
        if not header.nrecords or not header.record_nbytes:
            raise EmptyFileError(f"Empty DBF file: {header.nrecords} records of {header.record_nbytes} bytes.")
        total = self.source.total_nbytes
        if total is not None and total != header.expected_file_nbytes:
            raise SizeMismatchError(
                f"Invalid DBF file: header declares {header.expected_file_nbytes} bytes "
                f"({header.header_nbytes} + {header.nrecords} x {header.record_nbytes}) but the input is {total} bytes."
            )

    def _retry_or_escalate(self, err: ShortReadError) -> None:
        state = self.state
        state.short_reads += 1
        if self.source.ended:
            self._fail(CorruptedFileError(f"Corrupted or not a DBF file: input ended early. {err.message}"))
        elif state.short_reads >= MAX_SHORT_READS:
            self._fail(CorruptedFileError(f"Corrupted or not a DBF file: {state.short_reads} consecutive short reads. {err.message}"))
        else:
            log = get_global_log()
            log(f"Short read {state.short_reads}/{MAX_SHORT_READS}: {err.message}", level=logging.DEBUG)

    def _finish(self) -> None:
        state = self.state
        if state.finished:
            return
        state.phase = ParsePhase.DONE

        log = get_global_log()
        if self.source.nbytes_buffered:
            log(f"Ignoring {self.source.nbytes_buffered} trailing bytes shorter than a record.")
        self.source.release()
        if self.records_emitted != state.header.nrecords:
            warn = get_global_warn()
            warn(f"Header declares {state.header.nrecords} records but {self.records_emitted} were decoded.")
        log(f"Finished decoding {self.records_emitted} records.")
        self._emit("end")

    def _fail(self, err: DBFError) -> None:
        state = self.state
        if state.finished:
            return
        state.phase = ParsePhase.FAILED
        state.error = err
        self.source.release()

        log = get_global_log()
        log(f"Decoding stopped after {self.records_emitted} records ({err.kind.name}): {err.message}", level=logging.WARNING)
        self._emit("error", err)
        self._emit("end")

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)
