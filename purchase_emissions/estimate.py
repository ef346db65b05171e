from __future__ import annotations

"""
Estimate adapter: one service call per candidate with a fixed-delay retry.

Rejections that carry a status code are final. Transport or unknown
failures are retried after RETRY_DELAY_SECONDS, up to MAX_ATTEMPTS calls in
total. Whatever happens, the caller gets exactly one EstimationOutcome and
never an exception.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Tuple

from loguru import logger

from .config import DASHBOARD_URL_TEMPLATE, MAX_ATTEMPTS, RETRY_DELAY_SECONDS
from .errors import EstimationServiceError
from .pipeline_types import EstimationFailure, EstimationOutcome, EstimationSuccess
from .utils.spans import log_span


class EstimateClient(Protocol):
    async def create_transaction_estimate(
        self,
        amount: str,
        currency: str,
        search_term: str,
        country_code: str,
        category: Optional[str] = None,
    ) -> Dict[str, Any]: ...


Sleep = Callable[[float], Awaitable[None]]


def dashboard_url(estimate_id: str) -> str:
    return DASHBOARD_URL_TEMPLATE.format(estimate_id=estimate_id)


def _as_float(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    return float(value)


def _failure_details(exc: Exception) -> Tuple[Optional[int], str]:
    """Status code (None for transport/unknown failures) and message of an error."""
    if isinstance(exc, EstimationServiceError):
        return exc.status_code, exc.message
    status_code = getattr(exc, "status_code", None)
    return (status_code if isinstance(status_code, int) else None), str(exc) or type(exc).__name__


def _format_number(value: float) -> str:
    # 12 significant digits drops float noise such as 0.30000000000000004
    return f"{value:.12g}"


def outcome_from_response(response: Mapping[str, Any], currency: str) -> EstimationSuccess:
    """
    Convert a service response into a success outcome.

    A response without `mass` means the search term could not be matched
    well enough: that is still a success, just an empty one.
    """
    mass = response.get("mass")
    if not mass:
        return EstimationSuccess()

    factor = response.get("emission_factor") or {}
    gas = factor.get("gas_emissions") or {}

    exchange_rate = _as_float(response.get("exchange_rate"), default=1.0)
    co2e_per_unit = _as_float(gas.get("co2e"), default=0.0)

    score = response.get("search_term_match_score")

    return EstimationSuccess(
        mass_amount=str(mass.get("amount", "")),
        factor_name=str(factor.get("name", "") or ""),
        factor_source=str(factor.get("source", "") or ""),
        factor_intensity=_format_number(co2e_per_unit * exchange_rate),
        numerator_unit=str(factor.get("numerator_unit", "") or ""),
        denominator_unit=str(factor.get("denominator_unit", "") or ""),
        requested_currency=currency,
        exchange_rate=_format_number(exchange_rate),
        match_score=float(score) if score is not None else None,
        dashboard_url=dashboard_url(str(response.get("id", ""))),
    )


async def estimate(
    client: EstimateClient,
    amount: str,
    currency: str,
    search_term: str,
    category: Optional[str],
    country_code: str,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay_seconds: float = RETRY_DELAY_SECONDS,
    sleep: Sleep = asyncio.sleep,
) -> EstimationOutcome:
    """
    Estimate emissions for a single candidate.

    Returns EstimationFailure(retryable=False) after one call on a status-coded
    rejection, EstimationFailure(retryable=True) after `max_attempts` transport
    failures, otherwise an EstimationSuccess.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            with log_span(f"estimate '{search_term}' / '{category or ''}' attempt {attempt}"):
                response = await client.create_transaction_estimate(
                    amount=amount,
                    currency=currency,
                    search_term=search_term,
                    country_code=country_code,
                    category=category,
                )
        except Exception as e:
            status_code, message = _failure_details(e)
            if status_code is not None:
                return EstimationFailure(message=message, retryable=False)
            if attempt >= max_attempts:
                logger.warning(
                    "Giving up on '{}' after {} attempts: {}", search_term, attempt, message
                )
                return EstimationFailure(message=message, retryable=True)
            logger.debug(
                "Retrying estimate ({}/{}) for '{}': {}", attempt, max_attempts, search_term, message
            )
            await sleep(retry_delay_seconds)
            continue

        try:
            return outcome_from_response(response, currency)
        except (TypeError, ValueError, AttributeError) as e:
            return EstimationFailure(message=f"Malformed estimate response: {e}", retryable=False)
