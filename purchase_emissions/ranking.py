# purchase_emissions/ranking.py
from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from .config import OUTPUT_COLUMNS, RankingOrder
from .pipeline_types import (
    CandidateOutcome,
    EstimationFailure,
    EstimationOutcome,
    RankedOutcome,
)


# ---------------------------------------------------------------------------
# Ranking policy
# ---------------------------------------------------------------------------

def rank_outcomes(
    outcomes: Sequence[CandidateOutcome],
    order: RankingOrder = RankingOrder.ASCENDING,
) -> List[RankedOutcome]:
    """
    Order candidate outcomes and assign 1-based ranks.

      1) outcomes with a match score, sorted by score (ascending by default)
      2) outcomes without one (no-match successes and failures), in their
         original candidate order

    Sorting is stable, so equal scores keep candidate order.
    """
    scored = [o for o in outcomes if o.outcome.match_score is not None]
    unscored = [o for o in outcomes if o.outcome.match_score is None]

    if order == RankingOrder.DESCENDING:
        scored.sort(key=lambda o: -o.outcome.match_score)
    else:
        scored.sort(key=lambda o: o.outcome.match_score)

    return [
        RankedOutcome(candidate=o.candidate, outcome=o.outcome, rank=i)
        for i, o in enumerate(scored + unscored, start=1)
    ]


# ---------------------------------------------------------------------------
# Output columns
# ---------------------------------------------------------------------------

def rank_column(name: str, rank: int) -> str:
    return f"{name} ({rank})"


def rank_columns(n_ranks: int) -> List[str]:
    """Header names for ranks 1..n_ranks, rank-major."""
    return [rank_column(name, r) for r in range(1, n_ranks + 1) for name in OUTPUT_COLUMNS]


def _format_score(score) -> str:
    return f"{score}" if score else ""


def outcome_columns(ranked: RankedOutcome) -> Dict[str, str]:
    """The eleven output cells for one ranked outcome, keyed by suffixed column name."""
    outcome: EstimationOutcome = ranked.outcome
    candidate = ranked.candidate

    if isinstance(outcome, EstimationFailure):
        values = dict.fromkeys(OUTPUT_COLUMNS, "")
        values["Emission factor name"] = f"Error: {outcome.message}"
    else:
        has_mass = outcome.has_mass
        values = {
            "Emissions (tCO2e)": outcome.mass_amount,
            "Emission factor name": outcome.factor_name,
            "Emission factor source": outcome.factor_source,
            "Emission factor intensity": outcome.factor_intensity,
            "Emission factor intensity unit": (
                f"{outcome.numerator_unit}CO2e/{outcome.requested_currency}" if has_mass else ""
            ),
            "Emission factor original unit": (
                f"{outcome.numerator_unit}CO2e/{outcome.denominator_unit}" if has_mass else ""
            ),
            "Exchange rate": outcome.exchange_rate,
            "Confidence score": _format_score(outcome.match_score),
            "Dashboard URL": outcome.dashboard_url,
            "Search term used": candidate.search_term,
            "Category used": candidate.category or "",
        }

    return {rank_column(name, ranked.rank): values[name] for name in OUTPUT_COLUMNS}


def merge_row(record: Mapping[str, str], ranked: Sequence[RankedOutcome]) -> Dict[str, str]:
    """The input record's own columns followed by every ranked outcome's columns."""
    row: Dict[str, str] = dict(record)
    for r in sorted(ranked, key=lambda x: x.rank):
        row.update(outcome_columns(r))
    return row
