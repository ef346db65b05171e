from __future__ import annotations

"""
Minimal async client for the Lune transaction estimate endpoint.

Only the call the pipeline needs is implemented. Every failure is raised as
EstimationServiceError; the status code is set only when the server answered
with an HTTP error, so callers can tell rejections from transport problems.
"""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from .config import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_USER_AGENT,
    LUNE_API_BASE_URL,
    TRANSACTION_ESTIMATE_PATH,
)
from .errors import EstimationServiceError


def _http_client(
    api_key: str,
    base_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        headers={
            "Authorization": f"Bearer {api_key}",
            "User-Agent": HTTP_USER_AGENT,
            "Content-Type": "application/json",
        },
        timeout=httpx.Timeout(HTTP_READ_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT),
        transport=transport,
    )


def _error_description(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("description", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and value.get("message"):
                return str(value["message"])
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


def build_estimate_request(
    amount: str,
    currency: str,
    search_term: str,
    country_code: str,
    category: Optional[str] = None,
) -> Dict[str, Any]:
    merchant: Dict[str, Any] = {
        "search_term": search_term,
        "country_code": country_code,
    }
    if category:
        merchant["category"] = category
    return {
        "value": {"value": amount, "currency": currency},
        "merchant": merchant,
    }


class LuneClient:
    """
    Use as an async context manager so the underlying connection pool is
    closed once the run finishes.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = LUNE_API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = _http_client(api_key, base_url, transport)

    async def __aenter__(self) -> LuneClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_transaction_estimate(
        self,
        amount: str,
        currency: str,
        search_term: str,
        country_code: str,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = build_estimate_request(amount, currency, search_term, country_code, category)
        try:
            r = await self._client.post(TRANSACTION_ESTIMATE_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.debug("Estimate request transport error for '{}': {}", search_term, e)
            raise EstimationServiceError(f"{type(e).__name__}: {e}") from e

        if r.status_code >= 400:
            raise EstimationServiceError(_error_description(r), status_code=r.status_code)

        try:
            body = r.json()
        except ValueError as e:
            raise EstimationServiceError(f"Invalid JSON in estimate response: {e}") from e
        if not isinstance(body, dict):
            raise EstimationServiceError(f"Unexpected estimate response: {body!r}")
        return body
