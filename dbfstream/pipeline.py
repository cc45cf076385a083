from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

from .exceptions import DBFError, InternalInconsistencyError
from .formats import (
    DEFAULT_ENCODING,
    DEFAULT_HIGH_WATER_MARK,
    DELETED_COLUMN,
    RECORD_COLUMN,
    Config,
    Header,
    ParsePhase,
    Record,
)
from .ingest import FileSource
from .logginghandler import get_global_log
from .output import write_csv_file
from .stream import DBFStream, RecordQueue
from .warninghandler import get_global_warn

if TYPE_CHECKING:
    from tqdm import tqdm


def iter_records(
    path: Path | str,
    encoding: str = DEFAULT_ENCODING,
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    pbar: tqdm | None = None,
    on_header: Callable[[Header], None] | None = None,
) -> Iterator[Record]:
    """Lazily decode the records of a DBF file.

    At most ``high_water_mark`` decoded records are held in memory; the file is read one
    chunk at a time and only when the stream runs out of bytes. If decoding fails, every
    record decoded before the failure is yielded first and then the ``DBFError`` is raised.
    """
    queue = RecordQueue(high_water_mark)
    with FileSource(path) as source:
        stream = DBFStream(source, queue, encoding)
        if on_header is not None:
            stream.on("header", on_header)
        stream.start()

        while True:
            yield from queue.drain()
            if stream.finished:
                break
            if stream.phase is ParsePhase.BLOCKED:
                stream.resume()
                continue
            nbytes = source.pump()
            if pbar is not None:
                pbar.update(nbytes)
            if nbytes == 0 and not stream.finished and stream.phase is not ParsePhase.BLOCKED:
                raise InternalInconsistencyError(f"Decoding of {source.path.name} stalled in phase {stream.phase.name}.")

    if stream.state.error is not None:
        raise stream.state.error


def read_header(path: Path | str, encoding: str = DEFAULT_ENCODING) -> Header:
    """Decode only the header and field descriptors of a DBF file."""
    headers = []
    with FileSource(path) as source:
        stream = DBFStream(source, RecordQueue(1), encoding)
        stream.on("header", headers.append)
        stream.start()
        while not headers and not stream.finished:
            source.pump()
    if not headers:
        raise stream.state.error
    return headers[0]


def process_file(
    path: Path | str,
    encoding: str = DEFAULT_ENCODING,
    include_deleted: bool = True,
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    pbar: tqdm | None = None,
) -> tuple[pd.DataFrame, Header]:
    """Decode a whole DBF file into a dataframe indexed by record number."""
    path = Path(path)
    headers = []
    rows = [
        record.as_row()
        for record in iter_records(path, encoding, high_water_mark, pbar, on_header=headers.append)
        if include_deleted or not record.deleted
    ]
    header = headers[0]

    # duplicate field names collapse into one column, as they do in the decoded records
    columns = list(dict.fromkeys([RECORD_COLUMN, DELETED_COLUMN] + header.names))
    df = pd.DataFrame.from_records(rows, columns=columns)
    df.set_index(RECORD_COLUMN, inplace=True)

    log = get_global_log()
    log(f"Decoded {df.shape[0]} records from {path.name}.")
    return df, header


def execute_config(cfg: Config) -> list[Path]:
    warn = get_global_warn()
    output_paths = []
    for path in cfg.input_files:
        try:
            df, header = process_file(path, cfg.encoding, cfg.include_deleted, cfg.high_water_mark, pbar=cfg.pbar)
        except DBFError as err:
            warn(f"Skipping {path.name}: {err.kind.name}: {err.message}")
            continue
        out_path = Path(cfg.out_dir) / (path.stem + ".csv")
        output_paths.append(write_csv_file(df, header, out_path, cfg.store_record_numbers, cfg.include_deleted))
    if cfg.pbar is not None:
        cfg.pbar.n = cfg.pbar.total
        cfg.pbar.refresh()
    return output_paths
