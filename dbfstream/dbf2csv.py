"""Batch conversion of DBF tables to CSV.

``dbf2csv`` is the library entry point. ``python -m dbfstream`` (or the ``dbfstream``
console script) reaches the same code through ``main``.
"""

from __future__ import annotations

import codecs
from glob import glob
from pathlib import Path

from .formats import DEFAULT_ENCODING, DEFAULT_HIGH_WATER_MARK, Config
from .logginghandler import set_global_log
from .pipeline import execute_config
from .warninghandler import get_global_warn, set_global_warn

LOG_FILE_PATTERN = ".dbfstream_*.log"


def dbf2csv(
        input_files: str | Path | list[str | Path],
        output_dir: str | Path,
        encoding: str = DEFAULT_ENCODING,
        include_deleted: bool = True,
        store_record_numbers: bool = True,
        pbar: bool = False,
        verbose: int = 1,
) -> list[Path]:
    """Primary API function to convert DBF files to CSV.

    Parameters
    ----------
    input_files : str | Path | list[str | Path]
        Path(s) to input DBF file, directory, or glob pattern.
    output_dir : str | Path
        Path to output directory. Each input file produces ``<stem>.csv`` in it.
    encoding : str, optional
        Codec used to decode field names and text values. Default is utf-8.
    include_deleted : bool, optional
        Keep records flagged as deleted, along with a "@DELETED" column. Default is True.
    store_record_numbers : bool, optional
        Store the 1-based record number of each row as an additional "@RECORD" column. Default is True.
    pbar : bool, optional
        Show a tqdm progress bar over the bytes read. Default is False.
    verbose : int, optional
        0 silences everything, 1 (default) reports warnings as DBFWarning, 2 adds progress
        messages on stderr, 3 writes warnings and debug messages to .dbfstream_<n>.log
        in the output directory.

    Returns
    -------
    list[Path]
        list of Paths to the generated output files. Files that fail to decode are skipped with a warning.
    """
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    log_file_buffer = open_log_file(out_dir) if verbose == 3 else None
    set_global_warn(mode="api", verbose=verbose, logfile_buffer=log_file_buffer)
    set_global_log(mode="api", verbose=verbose, logfile_buffer=log_file_buffer)

    try:
        return main(
            input_files=input_files,
            output_dir=output_dir,
            encoding=encoding,
            include_deleted=include_deleted,
            store_record_numbers=store_record_numbers,
            pbar=pbar,
        )
    finally:
        if log_file_buffer is not None:
            log_file_buffer.close()
            set_global_warn(mode="api", verbose=1)
            set_global_log(mode="api", verbose=1)


def open_log_file(out_dir: Path):
    """Open the next free `.dbfstream_<n>.log` in `out_dir` for writing."""
    n = len(list(out_dir.glob(LOG_FILE_PATTERN))) + 1
    return open(out_dir / LOG_FILE_PATTERN.replace("*", str(n)), "w")


def expand_input_files(input_files) -> list[Path]:
    """Turn a path, directory, glob pattern, or list of those into a flat list of paths."""
    if isinstance(input_files, map):
        input_files = list(input_files)
    if not isinstance(input_files, (list, tuple)):
        input_files = [input_files]

    paths = []
    for item in input_files:
        if isinstance(item, str) and ("?" in item or "*" in item):
            paths.extend(Path(p) for p in sorted(glob(item)))
        elif Path(item).is_dir():
            paths.extend(sorted(p for p in Path(item).iterdir() if p.suffix.lower() == ".dbf"))
        else:
            paths.append(Path(item))
    return paths


def main(
    input_files: str | Path | list[str | Path],
    output_dir: str | Path,
    encoding: str = DEFAULT_ENCODING,
    include_deleted: bool = True,
    store_record_numbers: bool = True,
    pbar: bool = False,
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
) -> list[Path]:
    warn = get_global_warn()

    input_files = expand_input_files(input_files)
    if not input_files:
        warn("No input files found.")

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    codecs.lookup(encoding)

    if pbar is True:
        try:
            from tqdm import tqdm
            total_bytes_to_read = sum(p.stat().st_size for p in input_files)
            pbar = tqdm(
                total=total_bytes_to_read,
                unit="B", unit_scale=True, unit_divisor=1024,
                desc="Processing files",
                mininterval=1.0
            )
        except ImportError:
            warn("tqdm not installed; progress bar disabled.")
            pbar = None
    elif pbar is False:
        pbar = None
    else:
        raise ValueError("Invalid value for pbar. Must be a boolean.")

    cfg = Config(
        input_files=input_files,
        out_dir=out_dir,
        encoding=encoding,
        include_deleted=include_deleted,
        store_record_numbers=store_record_numbers,
        high_water_mark=high_water_mark,
        pbar=pbar,
    )

    try:
        return execute_config(cfg)
    finally:
        if cfg.pbar is not None:
            cfg.pbar.close()
