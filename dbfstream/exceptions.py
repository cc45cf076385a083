from enum import Enum, auto


class ErrorKind(Enum):
    SHORT_READ = auto()
    CORRUPTED = auto()
    EMPTY_FILE = auto()
    SIZE_MISMATCH = auto()
    NO_FIELDS = auto()
    INTERNAL_INCONSISTENCY = auto()


class DBFError(Exception):
    '''Base class of every error raised while decoding a DBF stream.

    The ``kind`` attribute tells which decoding rule was broken, so callers
    listening on the ``error`` notification do not need to switch on the
    exception class.
    '''
    kind = None

    def __init__(self, message=''):
        self.message = message
        super().__init__(message)


class ShortReadError(DBFError):
    '''Not enough bytes were available for the structural unit being decoded.

    Transient: the stream retries until the short read threshold is reached.'''
    kind = ErrorKind.SHORT_READ


class CorruptedFileError(DBFError):
    kind = ErrorKind.CORRUPTED


class EmptyFileError(DBFError):
    kind = ErrorKind.EMPTY_FILE


class SizeMismatchError(DBFError):
    kind = ErrorKind.SIZE_MISMATCH


class NoFieldsError(DBFError):
    kind = ErrorKind.NO_FIELDS


class InternalInconsistencyError(DBFError):
    '''The state machine reached a phase it does not know how to handle.'''
    kind = ErrorKind.INTERNAL_INCONSISTENCY
