"""Build small DBF tables in memory for the tests."""

import struct

FIELD_TERMINATOR = b"\x0d"


def field_descriptor(name, type, nbytes, decimal_places=0, displacement=0, flag=0, encoding="ascii"):
    raw_name = name.encode(encoding)[:11].ljust(11, b"\x00")
    return (
        raw_name
        + type.encode("ascii")
        + struct.pack("<I", displacement)
        + bytes([nbytes, decimal_places, flag])
        + bytes(13)
    )


def encode_value(value, type, nbytes, encoding="ascii"):
    raw = str(value).encode(encoding)[:nbytes]
    if type == "N":
        return raw.rjust(nbytes, b" ")
    return raw.ljust(nbytes, b" ")


def build_header(file_type=0x03, date=(124, 10, 19), nrecords=0, header_nbytes=32, record_nbytes=1, reserved=bytes(20)):
    return struct.pack("<BBBBIHH", file_type, *date, nrecords, header_nbytes, record_nbytes) + reserved


def build_dbf(fields, rows, deleted=(), nrecords=None, file_type=0x03, date=(124, 10, 19), displacements=None, encoding="ascii"):
    """Return the bytes of a DBF table.

    ``fields`` is a list of ``(name, type, nbytes[, decimal_places])`` tuples and ``rows`` a
    list of value lists in field order. Row indexes listed in ``deleted`` get the ``*`` delete
    marker. ``displacements`` overrides the displacement stored in each descriptor, which
    otherwise holds the true offset of the field in the record.
    """
    descriptors = b""
    offset = 1
    for i, field in enumerate(fields):
        name, type, nbytes = field[:3]
        decimal_places = field[3] if len(field) > 3 else 0
        displacement = displacements[i] if displacements is not None else offset
        descriptors += field_descriptor(name, type, nbytes, decimal_places, displacement, encoding=encoding)
        offset += nbytes

    header_nbytes = 32 + len(descriptors) + len(FIELD_TERMINATOR)
    record_nbytes = offset
    if nrecords is None:
        nrecords = len(rows)

    records = b""
    for i, row in enumerate(rows):
        records += b"*" if i in deleted else b" "
        for field, value in zip(fields, row):
            records += encode_value(value, field[1], field[2], encoding)

    header = build_header(file_type, date, nrecords, header_nbytes, record_nbytes)
    return header + descriptors + FIELD_TERMINATOR + records


PEOPLE_FIELDS = [
    ("NAME", "C", 10),
    ("AGE", "N", 3),
    ("SCORE", "N", 6, 2),
    ("ACTIVE", "L", 1),
    ("BORN", "D", 8),
]
PEOPLE_ROWS = [
    ["Alice", 34, "12.50", "T", "19900101"],
    ["Bob", 41, "7.25", "F", "19830512"],
    ["Carol", "", "", "t", ""],
    ["Dave", 28, "100.00", "?", "20010230"],
    ["Eve", 52, "-3.75", "f", "19720704"],
]


def people_dbf(**kwargs):
    return build_dbf(PEOPLE_FIELDS, PEOPLE_ROWS, **kwargs)
