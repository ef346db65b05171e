import asyncio
import io

import pandas as pd

from dummies import NO_MATCH, DummyClient, estimate_response, no_sleep, rejection, transport_error
from purchase_emissions.config import FieldMapping, PipelineSettings, RankingOrder
from purchase_emissions.pipeline import run_pipeline


def _settings(tmp_path, csv_text, **overrides):
    input_path = tmp_path / "purchases.csv"
    input_path.write_text(csv_text, encoding="utf-8")
    mapping = overrides.pop(
        "field_mapping",
        FieldMapping(
            search_term_columns=["Category Level 3"],
            monetary_amount_column="Amount",
            currency_column="Currency",
            country_code_column="Country",
        ),
    )
    return PipelineSettings(
        input_path=input_path,
        output_path=tmp_path / "out.csv",
        field_mapping=mapping,
        **overrides,
    )


def _read(path):
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def test_single_row_single_candidate(tmp_path):
    settings = _settings(
        tmp_path,
        'Category Level 3,Amount,Currency,Country\nCoffee,"10,00",USD,USA\n',
    )
    client = DummyClient({"Coffee": [estimate_response(mass="0.001", name="Coffee shops", score=0.9)]})

    report = asyncio.run(run_pipeline(settings, client, sleep=no_sleep))

    assert report.rows_processed == 1
    assert report.candidates_estimated == 1
    assert client.calls[0]["amount"] == "10.00"
    assert client.calls[0]["category"] is None
    assert [p.name for p in report.files_written] == ["out-0.csv"]

    df = _read(report.files_written[0])
    assert len(df) == 1
    row = df.iloc[0]
    assert row["Category Level 3"] == "Coffee"
    assert row["Emissions (tCO2e) (1)"] == "0.001"
    assert row["Emission factor name (1)"] == "Coffee shops"
    assert row["Confidence score (1)"] == "0.9"
    assert row["Search term used (1)"] == "Coffee"
    assert "Emissions (tCO2e) (2)" not in df.columns


def test_scored_candidate_ranks_before_no_match(tmp_path):
    mapping = FieldMapping(
        search_term_columns=["Supplier", "Description"],
        category_columns=["Category"],
        monetary_amount_column="Amount",
        currency_column="Currency",
        country_code_column="Country",
    )
    settings = _settings(
        tmp_path,
        "Supplier,Description,Category,Amount,Currency,Country\nAcme,Widgets,Hardware,5,EUR,DEU\n",
        field_mapping=mapping,
    )
    client = DummyClient({"Acme": [NO_MATCH], "Widgets": [estimate_response(score=0.4, name="Tools")]})

    report = asyncio.run(run_pipeline(settings, client, sleep=no_sleep))

    row = _read(report.files_written[0]).iloc[0]
    assert row["Search term used (1)"] == "Widgets"
    assert row["Emission factor name (1)"] == "Tools"
    assert row["Search term used (2)"] == "Acme"
    assert row["Emission factor name (2)"] == ""
    assert row["Category used (2)"] == "Hardware"


def test_failures_do_not_abort_the_run(tmp_path):
    settings = _settings(
        tmp_path,
        "Category Level 3,Amount,Currency,Country\nBad,1,XXX,USA\nFlaky,2,USD,USA\nGood,3,USD,USA\n",
        chunk_size=2,
    )
    client = DummyClient(
        {
            "Bad": [rejection("Invalid currency")],
            "Flaky": [transport_error("timeout")],
            "Good": [estimate_response()],
        }
    )

    report = asyncio.run(run_pipeline(settings, client, sleep=no_sleep))

    assert report.rows_processed == 3
    assert report.candidate_failures == 2
    assert client.calls_by_term == {"Bad": 1, "Flaky": 5, "Good": 1}

    assert [p.name for p in report.files_written] == ["out-0.csv", "out-1.csv"]
    df = pd.concat([_read(p) for p in report.files_written])
    assert df["Category Level 3"].tolist() == ["Bad", "Flaky", "Good"]
    assert df["Emission factor name (1)"].tolist() == [
        "Error: Invalid currency",
        "Error: timeout",
        "Coffee shops",
    ]


def test_descending_ranking_order(tmp_path):
    mapping = FieldMapping(
        search_term_columns=["A", "B"],
        monetary_amount_column="Amount",
        currency_column="Currency",
        country_code_column="Country",
    )
    settings = _settings(
        tmp_path,
        "A,B,Amount,Currency,Country\nlow,high,1,USD,USA\n",
        field_mapping=mapping,
        ranking_order=RankingOrder.DESCENDING,
    )
    client = DummyClient({"low": [estimate_response(score=0.1)], "high": [estimate_response(score=0.8)]})

    report = asyncio.run(run_pipeline(settings, client, sleep=no_sleep))

    row = _read(report.files_written[0]).iloc[0]
    assert row["Search term used (1)"] == "high"
    assert row["Search term used (2)"] == "low"


def test_stdout_output(tmp_path):
    settings = _settings(tmp_path, "Category Level 3,Amount,Currency,Country\nCoffee,1,USD,USA\n")
    settings = settings.model_copy(update={"output_path": None})
    stream = io.StringIO()

    report = asyncio.run(run_pipeline(settings, DummyClient(), stream=stream, sleep=no_sleep))

    assert report.files_written == []
    assert '"Emission factor name (1)"' in stream.getvalue()
    assert '"Coffee shops"' in stream.getvalue()
