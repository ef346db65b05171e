from __future__ import annotations

"""
Batch pipeline: input CSV in, chunked output CSV(s) out.

Rows are processed strictly one after another. Within a row every candidate
is estimated concurrently and the row only moves on to ranking once all of
them have settled.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, TextIO

from loguru import logger

from .chunk_writer import ChunkedCsvWriter
from .config import PipelineSettings
from .errors import PreconditionError
from .estimate import EstimateClient, Sleep
from .lune_client import LuneClient
from .pipeline_types import EstimationFailure
from .ranking import merge_row, rank_outcomes
from .records import load_records, load_selected_records
from .row_estimator import estimate_row


@dataclass
class PipelineReport:
    rows_processed: int = 0
    candidates_estimated: int = 0
    candidate_failures: int = 0
    files_written: List[Path] = field(default_factory=list)


async def run_pipeline(
    settings: PipelineSettings,
    client: EstimateClient,
    stream: Optional[TextIO] = None,
    sleep: Sleep = asyncio.sleep,
) -> PipelineReport:
    """
    Run the whole batch with an already constructed estimation client.

    Raises PreconditionError (before any row is estimated) if the input
    cannot be loaded. Candidate failures never abort the run.
    """
    mapping = settings.field_mapping
    loader = load_selected_records if settings.selected_columns_only else load_records
    records = loader(settings.input_path, mapping.required_columns())

    total = len(records)
    writer = ChunkedCsvWriter(
        output_path=settings.output_path,
        total_rows=total,
        chunk_size=settings.chunk_size,
        stream=stream,
    )
    report = PipelineReport()

    for i, record in enumerate(records):
        outcomes = await estimate_row(
            record,
            mapping,
            client,
            max_concurrency=settings.max_concurrency,
            max_attempts=settings.max_attempts,
            retry_delay_seconds=settings.retry_delay_seconds,
            sleep=sleep,
        )
        for o in outcomes:
            if isinstance(o.outcome, EstimationFailure):
                report.candidate_failures += 1
                logger.error("Error: {}", o.outcome.message)

        ranked = rank_outcomes(outcomes, settings.ranking_order)
        writer.push(merge_row(record, ranked))

        report.rows_processed += 1
        report.candidates_estimated += len(outcomes)
        logger.info("Processed {}/{}", i + 1, total)

    report.files_written = list(writer.written)
    logger.info(
        "Done: {} rows, {} candidates ({} failed), {} chunk(s)",
        report.rows_processed,
        report.candidates_estimated,
        report.candidate_failures,
        writer.chunks_flushed,
    )
    return report


async def _run_with_lune(settings: PipelineSettings, api_key: str) -> PipelineReport:
    async with LuneClient(api_key) as client:
        return await run_pipeline(settings, client)


def run(settings: PipelineSettings, api_key: Optional[str]) -> PipelineReport:
    """Synchronous entry point used by the CLI."""
    if not api_key:
        raise PreconditionError("API key is required but has not been set.")
    return asyncio.run(_run_with_lune(settings, api_key))
