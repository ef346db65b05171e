from __future__ import annotations

"""
Value normalisation helpers shared by the CLI and the row estimator.

Public helpers:

* split_column_list(text) -> List[str]
    Comma separated column names from the command line.

* clean_value(value) -> str
    Trimmed cell value; missing cells become "".

* normalize_amount(value) -> str
    Monetary amount as a plain decimal string.
"""

import re
from typing import List, Optional

# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------

# "10,00" / "-3,5": a single comma followed by one or two digits is a decimal
# comma, not a thousands separator.
_DECIMAL_COMMA_RE = re.compile(r"[-+]?\d+,\d{1,2}")


def clean_value(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).strip()


def split_column_list(text: Optional[str]) -> List[str]:
    """
    Split a comma separated list of column names, trimming each name.

    Blank entries (e.g. from a trailing comma) are dropped.
    """
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def normalize_amount(value: Optional[str]) -> str:
    """
    Turn a monetary amount cell into the plain decimal string the
    estimation service expects.

    Rules:
    - surrounding whitespace is dropped
    - thousands separators are removed: "1,234.50" -> "1234.50", "1,234" -> "1234"
    - a lone decimal comma becomes a dot: "10,00" -> "10.00"

    No further validation happens here: the caller is responsible for
    feeding valid numbers.
    """
    text = clean_value(value)
    if _DECIMAL_COMMA_RE.fullmatch(text):
        return text.replace(",", ".")
    return text.replace(",", "")
