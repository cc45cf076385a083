from pathlib import Path
from typing import Literal

import pandas as pd

from .formats import DEFAULT_ENCODING, RECORD_COLUMN
from .pipeline import process_file


def dbf_to_pandas(
    path: str | Path,
    encoding: str = DEFAULT_ENCODING,
    include_deleted: bool = True,
    index_col: Literal["@RECORD"] | None = RECORD_COLUMN,
) -> pd.DataFrame:
    """
    Reads a DBF file into a pandas dataframe.

    Parameters
    ----------
    path : str | Path
        Path to the DBF file.
    encoding : str, optional
        Codec used to decode field names and text values. Default is utf-8.
        Older files usually need their code page here, e.g. "cp1252" or "cp866".
    include_deleted : bool, optional
        Keep records whose delete marker is set. The "@DELETED" column tells them apart. Default is True.
    index_col : "@RECORD" | None, optional
        Column to set as index. If None, the record number is kept as a regular column. Default is "@RECORD".

    Raises
    ------
    DBFError
        If the file is not a well formed DBF file.
    """
    df, _ = process_file(path, encoding=encoding, include_deleted=include_deleted)
    if index_col is None:
        df = df.reset_index()
    return df
