import io
import math

import pandas as pd
import pytest

from purchase_emissions.chunk_writer import ChunkedCsvWriter, chunk_columns, chunk_path
from purchase_emissions.pipeline_types import Candidate, CandidateOutcome, EstimationSuccess
from purchase_emissions.ranking import merge_row, rank_columns, rank_outcomes


def _read(path):
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _push_all(writer, n):
    for i in range(n):
        writer.push({"row": str(i)})


def test_chunk_path_naming(tmp_path):
    assert chunk_path(tmp_path / "report.csv", 2) == tmp_path / "report-2.csv"
    assert chunk_path(tmp_path / "report", 0) == tmp_path / "report-0.csv"


@pytest.mark.parametrize("total,size", [(25, 10), (20, 10), (1, 10), (3, 1), (7, 3), (10000, 10000)])
def test_file_count_and_row_order(tmp_path, total, size):
    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=total, chunk_size=size)
    _push_all(writer, total)

    assert len(writer.written) == math.ceil(total / size)
    frames = [_read(p) for p in writer.written]
    for df in frames[:-1]:
        assert len(df) == size
    assert pd.concat(frames)["row"].tolist() == [str(i) for i in range(total)]
    assert writer.pending == 0


def test_suffixes_follow_flush_index(tmp_path):
    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=25, chunk_size=10)
    _push_all(writer, 25)
    # full chunks at i=9, 19 -> floor(i/10); trailing at i=24 -> ceil(24/10)
    assert [p.name for p in writer.written] == ["out-0.csv", "out-1.csv", "out-3.csv"]


def test_exact_multiple_has_no_trailing_file(tmp_path):
    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=20, chunk_size=10)
    _push_all(writer, 20)
    assert [p.name for p in writer.written] == ["out-0.csv", "out-1.csv"]


def test_single_partial_chunk(tmp_path):
    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=5, chunk_size=10)
    _push_all(writer, 4)
    assert writer.written == []
    writer.push({"row": "4"})
    assert [p.name for p in writer.written] == ["out-1.csv"]


def test_every_chunk_has_header_and_is_quoted(tmp_path):
    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=4, chunk_size=2)
    for i in range(4):
        writer.push({"Item": f"x{i}", "Amount": "1"})
    for path in writer.written:
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == '"Item","Amount"'
        assert lines[1].startswith('"x')


def test_ragged_rank_columns_are_padded():
    rows = [
        {"Item": "a", "Emissions (tCO2e) (1)": "1", "Search term used (1)": "a"},
        {"Item": "b", "Emissions (tCO2e) (1)": "2", "Emissions (tCO2e) (2)": "3"},
    ]
    cols = chunk_columns(rows)
    assert cols[0] == "Item"
    assert len(cols) == 1 + 2 * 11
    assert cols[1] == "Emissions (tCO2e) (1)"
    assert cols[12] == "Emissions (tCO2e) (2)"


def test_stdout_mode_writes_to_stream():
    stream = io.StringIO()
    writer = ChunkedCsvWriter(None, total_rows=3, chunk_size=2, stream=stream)
    _push_all(writer, 3)
    text = stream.getvalue()
    assert text.count('"row"') == 2
    assert writer.written == []
    assert writer.chunks_flushed == 2


def test_rejects_bad_chunk_size_and_extra_rows(tmp_path):
    with pytest.raises(ValueError):
        ChunkedCsvWriter(tmp_path / "out.csv", total_rows=1, chunk_size=0)
    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=1, chunk_size=5)
    writer.push({"row": "0"})
    with pytest.raises(IndexError):
        writer.push({"row": "1"})


def test_merged_rows_with_fewer_candidates_are_padded_in_file(tmp_path):
    def outcome(term, score):
        return CandidateOutcome(
            Candidate(term), EstimationSuccess(mass_amount="1", factor_name=term, match_score=score)
        )

    short = merge_row({"Item": "a"}, rank_outcomes([outcome("a", 0.5)]))
    long = merge_row({"Item": "b"}, rank_outcomes([outcome("b1", 0.2), outcome("b2", 0.7)]))

    writer = ChunkedCsvWriter(tmp_path / "out.csv", total_rows=2, chunk_size=10)
    writer.push(short)
    writer.push(long)

    df = _read(writer.written[0])
    assert list(df.columns) == ["Item"] + rank_columns(2)
    assert df.iloc[0]["Search term used (1)"] == "a"
    assert all(df.iloc[0][c] == "" for c in rank_columns(2)[11:])
    assert df.iloc[1]["Search term used (2)"] == "b2"
