"""Shared constants, enums, and dataclasses used across dbfstream."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

if TYPE_CHECKING:
    from tqdm import tqdm

# Structural constants
HEADER_NBYTES = 32  # fixed size of the table header
FIELD_NBYTES = 32  # size of one field descriptor entry
MAX_SHORT_READS = 3  # consecutive short reads tolerated before a file is declared corrupt
ACTIVE_RECORD_MARKER = 0x20  # first byte of a record that has not been deleted
YEAR_OFFSET = 1900  # the header stores the last update year relative to 1900

# Defaults
DEFAULT_ENCODING = "utf-8"
DEFAULT_HIGH_WATER_MARK = 16  # records buffered by the default sink before it pushes back
DEFAULT_CHUNK_NBYTES = 64 * 1024  # bytes read from disk per FileSource.pump()

# Bookkeeping columns added in front of the field values of a row
RECORD_COLUMN = "@RECORD"
DELETED_COLUMN = "@DELETED"

UNKNOWN_FILE_TYPE = "unknown"
FILE_TYPES = {
    0x02: "FoxBASE",
    0x03: "FoxBASE+/Dbase III plus, no memo",
    0x30: "Visual FoxPro",
    0x31: "Visual FoxPro, autoincrement enabled",
    0x32: "Visual FoxPro with field type Varchar or Varbinary",
    0x43: "dBASE IV SQL table files, no memo",
    0x63: "dBASE IV SQL system files, no memo",
    0x83: "FoxBASE+/dBASE III PLUS, with memo",
    0x8B: "dBASE IV with memo",
    0xCB: "dBASE IV SQL table files, with memo",
    0xE5: "HiPer-Six format with SMT memo file",
    0xF5: "FoxPro 2.x (or earlier) with memo",
    0xFB: "FoxBASE",
}


class ParsePhase(Enum):
    AWAITING_HEADER = auto()
    AWAITING_FIELDS = auto()
    AWAITING_RECORDS = auto()
    BLOCKED = auto()
    DONE = auto()
    FAILED = auto()


TERMINAL_PHASES = frozenset({ParsePhase.DONE, ParsePhase.FAILED})


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    name: str
    type: str  # single character type code, e.g. C, N, L, D, M
    displacement: int  # informational only, never used to locate field bytes
    nbytes: int
    decimal_places: int
    flag: int


@dataclass(frozen=True, slots=True)
class Header:
    file_type: str
    file_type_code: int
    date_updated: datetime.date | None  # None when the stored bytes are not a calendar date
    nrecords: int
    header_nbytes: int
    record_nbytes: int
    fields: Tuple[FieldDescriptor, ...] = ()

    @property
    def expected_file_nbytes(self) -> int:
        return self.header_nbytes + self.nrecords * self.record_nbytes

    @property
    def fields_nbytes(self) -> int:
        """Bytes covered by the field descriptors, including the leading delete marker."""
        return 1 + sum(f.nbytes for f in self.fields)

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.fields]


@dataclass(slots=True)
class Record:
    number: int  # 1-based, monotonic within one stream
    deleted: bool
    values: Dict[str, Any] = field(default_factory=dict)

    def as_row(self) -> Dict[str, Any]:
        row = {RECORD_COLUMN: self.number, DELETED_COLUMN: self.deleted}
        row.update(self.values)
        return row


@dataclass(frozen=True, slots=True)
class Config:
    input_files: List[Path]
    out_dir: Path
    encoding: str = DEFAULT_ENCODING
    include_deleted: bool = True
    store_record_numbers: bool = True
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK
    pbar: tqdm | None = None


__all__ = [
    "HEADER_NBYTES",
    "FIELD_NBYTES",
    "MAX_SHORT_READS",
    "ACTIVE_RECORD_MARKER",
    "YEAR_OFFSET",
    "DEFAULT_ENCODING",
    "DEFAULT_HIGH_WATER_MARK",
    "DEFAULT_CHUNK_NBYTES",
    "RECORD_COLUMN",
    "DELETED_COLUMN",
    "UNKNOWN_FILE_TYPE",
    "FILE_TYPES",
    "ParsePhase",
    "TERMINAL_PHASES",
    "FieldDescriptor",
    "Header",
    "Record",
    "Config",
]
