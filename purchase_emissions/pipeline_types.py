"""Typed containers shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Candidate:
    """One (search term, category) interpretation of an input record."""

    search_term: str
    category: Optional[str] = None


@dataclass(frozen=True)
class EstimationSuccess:
    """
    A successful service answer. When the service found no usable
    classification every field is empty and match_score is None.
    """

    mass_amount: str = ""
    factor_name: str = ""
    factor_source: str = ""
    factor_intensity: str = ""
    numerator_unit: str = ""
    denominator_unit: str = ""
    requested_currency: str = ""
    exchange_rate: str = ""
    match_score: Optional[float] = None
    dashboard_url: str = ""

    @property
    def has_mass(self) -> bool:
        return bool(self.mass_amount)


@dataclass(frozen=True)
class EstimationFailure:
    """A candidate that could not be estimated."""

    message: str
    retryable: bool

    @property
    def match_score(self) -> None:
        return None


EstimationOutcome = Union[EstimationSuccess, EstimationFailure]


@dataclass(frozen=True)
class CandidateOutcome:
    """Unranked pairing of a candidate with its outcome."""

    candidate: Candidate
    outcome: EstimationOutcome


@dataclass(frozen=True)
class RankedOutcome:
    candidate: Candidate
    outcome: EstimationOutcome
    rank: int
