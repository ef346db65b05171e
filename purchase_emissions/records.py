from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
from loguru import logger

from .errors import PreconditionError


Record = Dict[str, str]


# ---------------------------
# IO helpers
# ---------------------------

def _check_field_counts(path: Path) -> None:
    """
    Every data row must have as many fields as the header. pandas rejects
    long rows but silently pads short ones, so count fields up front.
    Blank lines are skipped, as pandas does.
    """
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header is None:
            return
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                raise PreconditionError(
                    f"Failed to parse CSV content: line {reader.line_num} has {len(row)} fields, "
                    f"expected {len(header)}"
                )


def _read_csv(path: Path) -> pd.DataFrame:
    """
    Read a CSV with every cell as a string. Empty cells stay "" rather
    than NaN, and a UTF-8 BOM is tolerated.
    """
    if not path.exists():
        raise PreconditionError(f"Failed to load {path}: file not found")

    logger.info("Loading input records from {}", path)
    try:
        _check_field_counts(path)
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        )
    except (OSError, UnicodeDecodeError) as e:
        raise PreconditionError(f"Failed to load {path}: {e}") from e
    except (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise PreconditionError(f"Failed to parse CSV content: {e}") from e

    logger.info("Loaded {} rows from {}", len(df), path)
    return df


def _validate_columns(df: pd.DataFrame, required_columns: Sequence[str]) -> None:
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise PreconditionError(
            f"Input is missing required columns: {missing}. Found: {list(df.columns)}"
        )
    if df.empty:
        raise PreconditionError("The input contains no records")


def _to_records(df: pd.DataFrame) -> List[Record]:
    return [
        {str(k): str(v) for k, v in row.items()}
        for row in df.to_dict(orient="records")
    ]


def load_records(path: Path, required_columns: Sequence[str]) -> List[Record]:
    """
    Load records from a CSV file with a header row.

    Every required column must be present; extra columns are kept so they can
    be passed through to the output unchanged.

    Raises PreconditionError when the file is unreadable, malformed, empty or
    lacks a required column.
    """
    df = _read_csv(Path(path))
    _validate_columns(df, required_columns)
    return _to_records(df)


def load_selected_records(path: Path, required_columns: Sequence[str]) -> List[Record]:
    """
    Like load_records() but only the required columns are kept; any other
    column present in the file is discarded.
    """
    df = _read_csv(Path(path))
    _validate_columns(df, required_columns)
    selected = list(dict.fromkeys(required_columns))
    return _to_records(df[selected])
