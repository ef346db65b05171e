from __future__ import annotations

"""
Chunked CSV output.

Merged rows are buffered in memory and written to numbered files once the
buffer reaches `chunk_size` rows, plus a final flush for the trailing
partial chunk. Each file carries its own header so it can be read on its own.

Suffixes are derived from the 0-based index of the row that triggered the
flush: floor(i / chunk_size) for a full chunk, ceil(i / chunk_size) for the
trailing partial one. Full chunks are therefore numbered 0, 1, 2, ... and the
trailing chunk may skip a number (e.g. 25 rows in chunks of 10 -> 0, 1, 3).
"""

import csv
import math
import sys
from pathlib import Path
from typing import Dict, List, Optional, TextIO

import pandas as pd
from loguru import logger

from .config import DEFAULT_CHUNK_SIZE, OUTPUT_COLUMNS
from .ranking import rank_column, rank_columns
from .utils.spans import log_span

OutputRow = Dict[str, str]


def chunk_path(output_path: Path, suffix: int) -> Path:
    """report.csv -> report-3.csv; a base name without .csv just gets -3.csv."""
    output_path = Path(output_path)
    stem = output_path.name[:-4] if output_path.name.lower().endswith(".csv") else output_path.name
    return output_path.with_name(f"{stem}-{suffix}.csv")


def chunk_columns(rows: List[OutputRow]) -> List[str]:
    """
    Header for a chunk: the input columns in first-seen order, then every
    rank column up to the largest rank present in the chunk. Rows with fewer
    candidates are padded with empty cells.
    """
    seen = list(dict.fromkeys(k for row in rows for k in row))
    seen_set = set(seen)

    max_rank = 0
    while rank_column(OUTPUT_COLUMNS[0], max_rank + 1) in seen_set:
        max_rank += 1

    ranked = rank_columns(max_rank)
    ranked_set = set(ranked)
    return [c for c in seen if c not in ranked_set] + ranked


class ChunkedCsvWriter:
    """
    Buffer output rows and flush them in bounded chunks.

    If `output_path` is None the chunks are written to `stream` (stdout by
    default) instead of files.
    """

    def __init__(
        self,
        output_path: Optional[Path],
        total_rows: int,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        stream: Optional[TextIO] = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.output_path = Path(output_path) if output_path is not None else None
        self.total_rows = total_rows
        self.chunk_size = chunk_size
        self.stream = stream
        self._rows: List[OutputRow] = []
        self._next_index = 0
        self.written: List[Path] = []
        self.chunks_flushed = 0

    @property
    def pending(self) -> int:
        return len(self._rows)

    def push(self, row: OutputRow) -> None:
        """Append the next row (in input order) and flush if a chunk boundary is reached."""
        i = self._next_index
        if i >= self.total_rows:
            raise IndexError(f"Row {i} pushed but only {self.total_rows} rows were announced")
        self._rows.append(row)
        self._next_index += 1

        if len(self._rows) >= self.chunk_size:
            self.flush(suffix=i // self.chunk_size)
        elif i == self.total_rows - 1:
            self.flush(suffix=math.ceil(i / self.chunk_size))

    def flush(self, suffix: int) -> Optional[Path]:
        """Serialize the buffered rows and clear the buffer. Returns the file written, if any."""
        if not self._rows:
            return None

        columns = chunk_columns(self._rows)
        df = pd.DataFrame.from_records(self._rows, columns=columns).fillna("")
        n_rows = len(df)

        target: Optional[Path] = None
        with log_span(f"write chunk {suffix} ({n_rows} rows)"):
            if self.output_path is None:
                df.to_csv(self.stream or sys.stdout, index=False, quoting=csv.QUOTE_ALL)
            else:
                target = chunk_path(self.output_path, suffix)
                target.parent.mkdir(parents=True, exist_ok=True)
                df.to_csv(target, index=False, quoting=csv.QUOTE_ALL, encoding="utf-8")
                self.written.append(target)

        if target is not None:
            logger.info("Wrote {} rows to {}", n_rows, target)
        else:
            logger.info("Wrote chunk {} ({} rows) to stdout", suffix, n_rows)

        self._rows = []
        self.chunks_flushed += 1
        return target
