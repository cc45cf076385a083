"""Public package exports for dbfstream."""

from .dbf2csv import dbf2csv
from .exceptions import DBFError, ErrorKind
from .formats import FieldDescriptor, Header, ParsePhase, Record
from .ingest import ByteSource, FeedSource, FileSource
from .pipeline import iter_records, process_file, read_header
from .stream import DBFStream, RecordQueue
from .utils import dbf_to_pandas

__all__ = [
    "dbf2csv",
    "dbf_to_pandas",
    "iter_records",
    "process_file",
    "read_header",
    "DBFStream",
    "RecordQueue",
    "ByteSource",
    "FeedSource",
    "FileSource",
    "DBFError",
    "ErrorKind",
    "FieldDescriptor",
    "Header",
    "ParsePhase",
    "Record",
]

__version__ = "1.0.0"
