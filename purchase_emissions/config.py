from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------
# Estimation service
# ---------------------------

API_KEY_ENV_VAR = "API_KEY"

LUNE_API_BASE_URL = os.getenv("LUNE_API_BASE_URL", "https://api.lune.co")
TRANSACTION_ESTIMATE_PATH = "/v1/estimates/transactions"

DASHBOARD_URL_TEMPLATE = (
    "https://dashboard.lune.co/calculate-emissions/everyday-purchases/{estimate_id}/results"
)

HTTP_CONNECT_TIMEOUT = 5.0
HTTP_READ_TIMEOUT = 30.0

HTTP_USER_AGENT = "purchase-emissions/1.0"


# ---------------------------
# Retry policy (fixed delay, no jitter)
# ---------------------------

MAX_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 0.5


# ---------------------------
# Output
# ---------------------------

DEFAULT_CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "10000"))

# per-rank output columns, each suffixed with " (rank)"
OUTPUT_COLUMNS: List[str] = [
    "Emissions (tCO2e)",
    "Emission factor name",
    "Emission factor source",
    "Emission factor intensity",
    "Emission factor intensity unit",
    "Emission factor original unit",
    "Exchange rate",
    "Confidence score",
    "Dashboard URL",
    "Search term used",
    "Category used",
]

ASSUMPTIONS_WARNING = (
    "Warning: this tool assumes: 'monetary-amount-column' contains valid floating point numbers, "
    "'currency-column' contains valid ISO4217 currency codes and 'country-code-column' "
    "valid alpha-3 ISO3166 country codes"
)


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class RankingOrder(str, Enum):
    """
    Ordering applied to candidates that carry a match score.

    ASCENDING is the historical behaviour of the tool: the lowest score ranks first.
    """

    ASCENDING = "ascending"
    DESCENDING = "descending"


class FieldMapping(BaseModel):
    """
    Which input columns feed which estimation request fields.
    """

    search_term_columns: List[str] = Field(min_length=1)
    category_columns: List[str] = Field(default_factory=list)
    monetary_amount_column: str
    currency_column: str
    country_code_column: str

    @field_validator("search_term_columns", "category_columns")
    @classmethod
    def _strip_column_list(cls, value: List[str]) -> List[str]:
        names = [v.strip() for v in value]
        if any(not n for n in names):
            raise ValueError("column names must not be blank")
        return names

    @field_validator("monetary_amount_column", "currency_column", "country_code_column")
    @classmethod
    def _strip_column(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("column name must not be blank")
        return name

    def required_columns(self) -> List[str]:
        return [
            *self.search_term_columns,
            self.monetary_amount_column,
            self.currency_column,
            self.country_code_column,
            *self.category_columns,
        ]


class PipelineSettings(BaseModel):
    """
    Run configuration, built once by the CLI and passed into the pipeline.
    """

    input_path: Path
    output_path: Optional[Path] = None
    field_mapping: FieldMapping
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    max_concurrency: Optional[int] = Field(default=None, ge=1)
    ranking_order: RankingOrder = RankingOrder.ASCENDING
    max_attempts: int = Field(default=MAX_ATTEMPTS, ge=1)
    retry_delay_seconds: float = Field(default=RETRY_DELAY_SECONDS, ge=0.0)
    selected_columns_only: bool = False
