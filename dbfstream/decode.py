import re
from typing import Sequence

import numpy as np

from .formats import ACTIVE_RECORD_MARKER, FieldDescriptor, Record

# Fixed binary layouts. Multi-byte integers are little-endian throughout.
HEADER_DTYPE = np.dtype([
    ('file_type', 'u1'),
    ('year', 'u1'),  # years since 1900
    ('month', 'u1'),  # 1-based
    ('day', 'u1'),
    ('nrecords', '<u4'),
    ('header_nbytes', '<u2'),
    ('record_nbytes', '<u2'),
    ('reserved', 'V20'),  # table flags and code page mark live in here
])
FIELD_DTYPE = np.dtype([
    ('name', 'V11'),  # kept raw: numpy would silently strip the NUL padding of an S11 field
    ('type', 'u1'),
    ('displacement', '<u4'),
    ('nbytes', 'u1'),
    ('decimal_places', 'u1'),
    ('flag', 'u1'),
    ('reserved', 'V13'),  # autoincrement values and reserved bytes
])

NUMERIC_NAN = np.nan  # blank or unparseable numeric fields
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def decode_text(text: str) -> str:
    return text


def decode_numeric(text: str) -> int | float:
    """Parse the trimmed text of an N field.

    Integer text gives an ``int``, decimal or exponent text a ``float``. Anything
    else, blank included, gives ``NUMERIC_NAN`` rather than an error.
    """
    if not _NUMBER.fullmatch(text):
        return NUMERIC_NAN
    if text.lstrip("+-").isdigit():
        return int(text)
    return float(text)


def decode_logical(text: str) -> bool:
    return text.casefold() == "t"


DATA_TYPES = {
    "C": decode_text,
    "N": decode_numeric,
    "L": decode_logical,
}


def decode_value(text: str, type_code: str):
    """Coerce the trimmed text of a field according to its type code. Unknown codes pass through."""
    return DATA_TYPES.get(type_code, decode_text)(text)


def decode_record(data: bytes, fields: Sequence[FieldDescriptor], encoding: str, number: int) -> Record:
    """Decode one fixed-length record.

    Field bytes are located from the cumulative lengths of the preceding fields,
    starting right after the delete marker. The descriptor displacement is not
    consulted.
    """
    values = {}
    offset = 1
    for field in fields:
        raw = data[offset:offset + field.nbytes]
        offset += field.nbytes
        text = raw.decode(encoding, errors="replace").strip()
        values[field.name] = decode_value(text, field.type)
    return Record(
        number=number,
        deleted=data[0] != ACTIVE_RECORD_MARKER,
        values=values,
    )
