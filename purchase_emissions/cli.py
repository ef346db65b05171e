from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from .config import (
    API_KEY_ENV_VAR,
    ASSUMPTIONS_WARNING,
    DEFAULT_CHUNK_SIZE,
    FieldMapping,
    PipelineSettings,
    RankingOrder,
)
from .errors import PreconditionError
from .normalize import split_column_list
from .pipeline import run


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="purchase-emissions",
        description="Estimate the emissions of purchases listed in a CSV file and write the results as CSV.",
    )
    ap.add_argument("csv_file", type=Path, help="The source CSV file")
    ap.add_argument("-o", "--output", type=Path, default=None,
                    help="Base name of the destination CSV file(s); stdout when omitted")
    ap.add_argument("-s", "--search-term-columns", default=None,
                    help="Comma separated names of the columns containing mapping to the API's 'search_term'")
    ap.add_argument("-ca", "--category-columns", default=None,
                    help="Comma separated names of the columns containing mapping to the API's 'category'")
    ap.add_argument("-m", "--monetary-amount-column", default=None,
                    help="The name of the column containing mapping to the API's 'value'")
    ap.add_argument("-cu", "--currency-column", default=None,
                    help="The name of the column containing mapping to the API's 'currency'")
    ap.add_argument("-c", "--country-code-column", default=None,
                    help="The name of the column containing mapping to the API's 'country_code'")
    ap.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE,
                    help="Number of rows per output file")
    ap.add_argument("--max-concurrency", type=int, default=None,
                    help="Maximum simultaneous estimate requests per row (unbounded by default)")
    ap.add_argument("--ranking-order", choices=[o.value for o in RankingOrder],
                    default=RankingOrder.ASCENDING.value,
                    help="Order of scored candidates in the output")
    ap.add_argument("--selected-columns-only", action="store_true",
                    help="Only carry the mapped columns over to the output")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return ap


def configure_logging(verbose: bool = False, sink=None) -> None:
    # CSV may go to stdout, so logs stay on stderr
    logger.remove()
    logger.add(sink or sys.stderr, level="DEBUG" if verbose else "INFO")


def settings_from_args(args: argparse.Namespace) -> PipelineSettings:
    search_terms = split_column_list(args.search_term_columns)
    if (
        not search_terms
        or not args.monetary_amount_column
        or not args.currency_column
        or not args.country_code_column
    ):
        raise PreconditionError(
            "All of search-term-columns, monetary-amount-column, currency-column "
            "and country-code-column are required"
        )
    try:
        mapping = FieldMapping(
            search_term_columns=search_terms,
            category_columns=split_column_list(args.category_columns),
            monetary_amount_column=args.monetary_amount_column,
            currency_column=args.currency_column,
            country_code_column=args.country_code_column,
        )
        return PipelineSettings(
            input_path=args.csv_file,
            output_path=args.output,
            field_mapping=mapping,
            chunk_size=args.chunk_size,
            max_concurrency=args.max_concurrency,
            ranking_order=RankingOrder(args.ranking_order),
            selected_columns_only=args.selected_columns_only,
        )
    except ValidationError as e:
        raise PreconditionError(f"Invalid configuration: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    api_key = os.getenv(API_KEY_ENV_VAR)
    if not api_key:
        logger.error("{} environment variable is required but has not been set.", API_KEY_ENV_VAR)
        return 1

    try:
        settings = settings_from_args(args)
    except PreconditionError as e:
        logger.error(e.message)
        return 1

    logger.warning(ASSUMPTIONS_WARNING)

    try:
        run(settings, api_key)
    except PreconditionError as e:
        logger.error(e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
