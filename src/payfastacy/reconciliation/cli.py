#!/usr/bin/env python3
"""Command-line interface for payment operators.

Usage:
    python -m payfastacy.reconciliation.cli search --status unpaid --from 2024-01-01 --to 2024-01-31
    python -m payfastacy.reconciliation.cli search --ref ORDER --format csv --output payments.csv
    python -m payfastacy.reconciliation.cli txn 123456
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings, configure_logging
from ..database import DatabaseManager
from ..errors import PaymentError
from .export import SearchExporter
from .gateway import SePayClient
from .models import SearchFilters
from .service import ReconciliationEngine

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


def write_output(output: str, output_file: Optional[str] = None) -> None:
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info(f"Output written to {output_file}")
    else:
        print(output)


async def run_search_async(
    settings: Settings,
    filters: SearchFilters,
    output_format: str = "json",
    output_file: Optional[str] = None,
) -> int:
    """Run a payment search and export the result.

    Args:
        settings: Service configuration.
        filters: Search filters.
        output_format: 'json', 'csv' or 'text'.
        output_file: Optional output file path.

    Returns:
        Exit code.
    """
    db = DatabaseManager(settings.database_url)
    try:
        await db.initialize(create_tables=False)
        async with db.session() as session:
            engine = ReconciliationEngine(session, settings=settings)
            result = await engine.search_payments(filters)
    except PaymentError as e:
        logger.error(f"Search failed: {e.message}")
        return EXIT_FAILURE
    except SQLAlchemyError as e:
        logger.error(f"Cannot connect to database: {e}")
        return EXIT_FAILURE
    finally:
        await db.shutdown()

    logger.info(f"Found {result.count} payments")
    write_output(SearchExporter(result).render(output_format), output_file)
    return EXIT_OK


async def run_txn_async(settings: Settings, txn_id: str) -> int:
    """Print SePay transaction details as JSON."""
    client = SePayClient.from_settings(settings)
    try:
        transaction = await client.fetch_transaction(txn_id)
    except PaymentError as e:
        logger.error(f"Transaction lookup failed ({e.status_code}): {e.message}")
        return EXIT_FAILURE

    write_output(json.dumps(transaction, indent=2, ensure_ascii=False))
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="payfastacy",
        description="Payment search and SePay lookup tools.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    search_parser = subparsers.add_parser("search", help="Search stored payments")
    search_parser.add_argument("--ref", help="Reference code substring")
    search_parser.add_argument("--content", help="Payment content substring")
    search_parser.add_argument(
        "--status",
        choices=["paid", "unpaid"],
        help="Payment status",
    )
    search_parser.add_argument("--from", dest="date_from", help="Start date (YYYY-MM-DD)")
    search_parser.add_argument("--to", dest="date_to", help="End date (YYYY-MM-DD)")
    search_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "text"],
        default="json",
        help="Output format (default: json)",
    )
    search_parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)",
    )

    txn_parser = subparsers.add_parser("txn", help="Fetch a SePay transaction")
    txn_parser.add_argument("txn_id", help="SePay transaction id")

    return parser


def main(args: Optional[list] = None, settings: Optional[Settings] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Optional list of command-line arguments (for testing).
        settings: Optional configuration (for testing).

    Returns:
        Exit code.
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return EXIT_USAGE

    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if parsed_args.command == "search":
        try:
            filters = SearchFilters(
                ref=parsed_args.ref,
                content=parsed_args.content,
                status=parsed_args.status,
                date_from=parsed_args.date_from,
                date_to=parsed_args.date_to,
            )
        except ValidationError as e:
            for err in e.errors():
                logger.error(err["msg"])
            return EXIT_USAGE

        return asyncio.run(run_search_async(
            settings=settings,
            filters=filters,
            output_format=parsed_args.format,
            output_file=parsed_args.output,
        ))

    if parsed_args.command == "txn":
        return asyncio.run(run_txn_async(settings, parsed_args.txn_id))

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
