import csv
from pathlib import Path

import pandas as pd

from .formats import DELETED_COLUMN, RECORD_COLUMN, Header
from .headers import format_header_summary
from .logginghandler import get_global_log


def write_csv_file(
    df: pd.DataFrame,
    header: Header,
    output_path: Path | str,
    include_record: bool = True,
    include_deleted: bool = True,
) -> Path:
    """Write decoded records to a CSV file with one column per DBF field."""
    output_path = Path(output_path)

    df = df.reset_index() if df.index.name == RECORD_COLUMN else df.copy()
    if not include_record:
        df.drop(columns=RECORD_COLUMN, inplace=True, errors="ignore")
    if not include_deleted:
        df.drop(columns=DELETED_COLUMN, inplace=True, errors="ignore")

    # numeric fields keep the precision declared in their descriptor
    for field in header.fields:
        if field.type == "N" and field.decimal_places and field.name in df.columns:
            if pd.api.types.is_float_dtype(df[field.name]):
                df[field.name] = df[field.name].round(field.decimal_places)

    with open(output_path, "w", encoding="utf-8", newline="") as output_buffer:
        df.to_csv(
            output_buffer,
            index=False,
            na_rep="NAN",
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\n",
        )

    log = get_global_log()
    log(f"Wrote output file {output_path.name} with {df.shape[0]} records and {df.shape[1]} columns from {format_header_summary(header)}.")
    return output_path
