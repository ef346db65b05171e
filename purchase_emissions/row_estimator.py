from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional

from .config import MAX_ATTEMPTS, RETRY_DELAY_SECONDS, FieldMapping
from .estimate import EstimateClient, Sleep, estimate
from .normalize import clean_value, normalize_amount
from .permutations import search_category_permutations
from .pipeline_types import Candidate, CandidateOutcome
from .records import Record


@dataclass(frozen=True)
class RowRequest:
    """Request fields extracted from one input record."""

    search_terms: List[str]
    categories: List[Optional[str]]
    amount: str
    currency: str
    country_code: str


def extract_row_request(record: Record, mapping: FieldMapping) -> RowRequest:
    # no category columns -> categories stays empty, the generator substitutes "absent"
    categories: List[Optional[str]] = [
        clean_value(record.get(c)) for c in mapping.category_columns
    ]
    return RowRequest(
        search_terms=[clean_value(record.get(c)) for c in mapping.search_term_columns],
        categories=categories,
        amount=normalize_amount(record.get(mapping.monetary_amount_column)),
        currency=clean_value(record.get(mapping.currency_column)),
        country_code=clean_value(record.get(mapping.country_code_column)),
    )


async def estimate_row(
    record: Record,
    mapping: FieldMapping,
    client: EstimateClient,
    max_concurrency: Optional[int] = None,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay_seconds: float = RETRY_DELAY_SECONDS,
    sleep: Sleep = asyncio.sleep,
) -> List[CandidateOutcome]:
    """
    Estimate every candidate of a record concurrently and wait for all of them.

    Results come back in candidate-generation order regardless of completion
    order. With max_concurrency=None all candidates are in flight at once.
    """
    request = extract_row_request(record, mapping)
    candidates = search_category_permutations(request.search_terms, request.categories)
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _one(candidate: Candidate) -> CandidateOutcome:
        async def _call():
            return await estimate(
                client,
                amount=request.amount,
                currency=request.currency,
                search_term=candidate.search_term,
                category=candidate.category or None,
                country_code=request.country_code,
                max_attempts=max_attempts,
                retry_delay_seconds=retry_delay_seconds,
                sleep=sleep,
            )

        if semaphore is None:
            outcome = await _call()
        else:
            async with semaphore:
                outcome = await _call()
        return CandidateOutcome(candidate=candidate, outcome=outcome)

    return list(await asyncio.gather(*(_one(c) for c in candidates)))
