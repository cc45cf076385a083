"""Code for decoding the DBF table header and its field descriptor array."""

import datetime

import numpy as np

from .decode import FIELD_DTYPE, HEADER_DTYPE
from .exceptions import ShortReadError
from .formats import (
    DEFAULT_ENCODING,
    FIELD_NBYTES,
    FILE_TYPES,
    HEADER_NBYTES,
    UNKNOWN_FILE_TYPE,
    YEAR_OFFSET,
    FieldDescriptor,
    Header,
)
from .logginghandler import get_global_log
from .warninghandler import get_global_warn


def parse_date(year: int, month: int, day: int) -> datetime.date | None:
    """Turn the three date bytes of the header into a date, or None if they do not form one."""
    try:
        return datetime.date(YEAR_OFFSET + year, month, day)
    except ValueError:
        log = get_global_log()
        log(f"Header date bytes {year}/{month}/{day} do not form a calendar date.")
        return None


def decode_header(buffer: bytes) -> Header:
    """Decode the fixed 32 byte table header. The field list is attached later by the caller.

    Only a short buffer is an error; implausible content is returned as-is so that the
    caller can decide what to do with it.
    """
    if len(buffer) < HEADER_NBYTES:
        raise ShortReadError(f"Header needs {HEADER_NBYTES} bytes, only {len(buffer)} available.")

    raw = np.frombuffer(buffer, dtype=HEADER_DTYPE, count=1)[0]
    file_type_code = int(raw['file_type'])

    return Header(
        file_type=FILE_TYPES.get(file_type_code, UNKNOWN_FILE_TYPE),
        file_type_code=file_type_code,
        date_updated=parse_date(int(raw['year']), int(raw['month']), int(raw['day'])),
        nrecords=int(raw['nrecords']),
        header_nbytes=int(raw['header_nbytes']),
        record_nbytes=int(raw['record_nbytes']),
    )


def decode_field_descriptors(block: bytes, encoding: str = DEFAULT_ENCODING) -> list[FieldDescriptor]:
    """Decode the field descriptor array that follows the header.

    The block is read as consecutive 32 byte entries. A trailing remainder shorter than
    one entry (normally the 0x0D terminator) is dropped. An empty list is returned when
    no complete entry exists.
    """
    nentries = len(block) // FIELD_NBYTES
    if nentries == 0:
        return []

    entries = np.frombuffer(block, dtype=FIELD_DTYPE, count=nentries)
    return [
        FieldDescriptor(
            name=bytes(entry['name']).rstrip(b"\x00").decode(encoding, errors="replace"),
            type=bytes([int(entry['type'])]).decode("ascii", errors="replace"),
            displacement=int(entry['displacement']),
            nbytes=int(entry['nbytes']),
            decimal_places=int(entry['decimal_places']),
            flag=int(entry['flag']),
        )
        for entry in entries
    ]


def validate_fields(header: Header) -> bool:
    """Warn about headers whose field lengths do not add up to the record length.

    Decoding still goes ahead: fields are sliced by their declared lengths regardless.
    """
    warn = get_global_warn()
    valid = True
    if header.file_type == UNKNOWN_FILE_TYPE:
        warn(f"Unknown DBF format code 0x{header.file_type_code:02X}. Decoding will continue.")
    if header.fields_nbytes != header.record_nbytes:
        warn(
            f"Field lengths add up to {header.fields_nbytes} bytes (delete marker included) "
            f"but records are {header.record_nbytes} bytes long. Some field values may be truncated or misaligned."
        )
        valid = False
    names = header.names
    if len(set(names)) != len(names):
        warn("Duplicate field names found in header. Later fields will overwrite earlier ones in decoded records.")
        valid = False
    return valid


def format_header_summary(header: Header) -> str:
    """Format a header as a single line for logs."""
    date = header.date_updated.isoformat() if header.date_updated is not None else "?"
    fields = ",".join(f"{f.name}:{f.type}{f.nbytes}" + (f".{f.decimal_places}" if f.decimal_places else "") for f in header.fields)
    return (
        f"{header.file_type} (0x{header.file_type_code:02X}), updated {date}, "
        f"{header.nrecords} records of {header.record_nbytes} bytes, "
        f"header {header.header_nbytes} bytes, fields [{fields}]"
    )
