from __future__ import annotations

import argparse
import codecs
from collections.abc import Sequence
from typing import Optional
from pathlib import Path
import sys

from .dbf2csv import main as d2c_main, open_log_file
from .formats import DEFAULT_ENCODING, DEFAULT_HIGH_WATER_MARK
from .warninghandler import set_global_warn
from .logginghandler import set_global_log

VERBOSE_HELP = """how much to report while decoding. Default is 1.
0: silent.
1: warnings only (default).
2: warnings and progress messages.
3: everything, debug messages included, written to .dbfstream_<n>.log in the output directory."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbfstream",
        description="Decode dBase/FoxPro DBF tables into CSV files, one per table.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("inputs", metavar="INPUT", nargs="+",
                        help="DBF file, directory of .dbf files, or glob pattern. May be repeated.")
    parser.add_argument("-odir", dest="output_dir", metavar="OUTPUT", required=True,
                        help="directory receiving <stem>.csv for every decoded table.")
    parser.add_argument("-encoding", default=DEFAULT_ENCODING,
                        help="codec of field names and text values, e.g. cp1252 or cp866. Default is utf-8.")
    parser.add_argument("-skip-deleted", dest="skip_deleted", action="store_true",
                        help="drop records flagged as deleted, and the @DELETED column with them.")
    parser.add_argument("-hide-record-numbers", dest="hide_record_numbers", action="store_true",
                        help="drop the @RECORD column.")
    parser.add_argument("-high-water-mark", dest="high_water_mark", type=int, default=DEFAULT_HIGH_WATER_MARK,
                        help=f"records buffered before decoding pauses. Default is {DEFAULT_HIGH_WATER_MARK}.")
    parser.add_argument("-pbar", action="store_true", help="show a progress bar over the input bytes (requires tqdm).")
    parser.add_argument("-verbose", type=int, choices=[0, 1, 2, 3], default=1, help=VERBOSE_HELP)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.high_water_mark < 1:
        sys.stderr.write("ERROR: -high-water-mark must be at least 1\n")
        return 2
    try:
        codecs.lookup(args.encoding)
    except LookupError:
        sys.stderr.write(f"ERROR: unknown encoding '{args.encoding}'\n")
        return 2

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    log_file_buffer = open_log_file(out_dir) if args.verbose == 3 else None
    set_global_warn(mode="cli", verbose=args.verbose, logfile_buffer=log_file_buffer)
    set_global_log(mode="cli", verbose=args.verbose, logfile_buffer=log_file_buffer)

    try:
        out_files = d2c_main(
            input_files=args.inputs,
            output_dir=out_dir,
            encoding=args.encoding,
            include_deleted=not args.skip_deleted,
            store_record_numbers=not args.hide_record_numbers,
            pbar=args.pbar,
            high_water_mark=args.high_water_mark,
        )
    finally:
        if log_file_buffer is not None:
            log_file_buffer.close()
            set_global_warn(mode="cli", verbose=0)
            set_global_log(mode="cli", verbose=0)

    for path in out_files:
        print(path)
    return 0 if out_files else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
