#!/usr/bin/env python3
"""Hardcover Explorer CLI - preview what an import would bring in."""
import argparse
import asyncio
import csv
import json
import logging
import sys
from datetime import datetime
from typing import List, Optional

from tabulate import tabulate

from hardcover_import.config import Config
from hardcover_import.errors import HardcoverError
from hardcover_import.parse import parse_timestamp
from hardcover_import.provider import HardcoverImportProvider, KEY_API_TOKEN
from hardcover_import.records import CanonicalRecord, WatchEvent, Rating, WatchlistEntry

logger = logging.getLogger(__name__)


def record_date(record: CanonicalRecord) -> datetime:
    """Pick the timestamp that belongs to the record kind."""
    if isinstance(record, WatchEvent):
        return record.watched_at
    if isinstance(record, Rating):
        return record.rated_at
    if isinstance(record, WatchlistEntry):
        return record.added_at
    raise TypeError(f"Unknown record type: {type(record).__name__}")


def truncate(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


def table_rows(records: List[CanonicalRecord]) -> List[list]:
    rows = []
    for record in records:
        rows.append([
            truncate(record.title, 50),
            record.year or "Unknown",
            record.rating if isinstance(record, Rating) else "",
            record.identifiers.get("isbn13") or record.identifiers.get("isbn") or "N/A",
            record_date(record).strftime("%Y-%m-%d"),
        ])
    return rows


def display_records(records: List[CanonicalRecord], format_type: str):
    """Display records in specified format."""
    if format_type == "table":
        headers = ["Title", "Year", "Rating", "ISBN", "Date"]
        print("\n" + tabulate(table_rows(records), headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([r.to_dict() for r in records], indent=2))

    elif format_type == "compact":
        for i, record in enumerate(records, 1):
            print(f"{i}. {record.title} ({record.external_id})")


def export_records(records: List[CanonicalRecord], output: str):
    """Write records to a .csv or .json file."""
    if output.lower().endswith(".csv"):
        with open(output, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["External ID", "Title", "Year", "Rating", "ISBN-13", "ISBN-10", "Date"])
            for record in records:
                writer.writerow([
                    record.external_id,
                    record.title,
                    record.year or "",
                    record.rating if isinstance(record, Rating) else "",
                    record.identifiers.get("isbn13", ""),
                    record.identifiers.get("isbn", ""),
                    record_date(record).isoformat(),
                ])
    else:
        with open(output, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in records], f, indent=2)

    logger.info(f"Exported {len(records)} records to {output}")


def parse_since(value: str) -> datetime:
    """argparse type for --since."""
    since = parse_timestamp(value)
    if since is None:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 date/time: {value!r}")
    return since


async def run_command(args, token: Optional[str]) -> int:
    """Run one subcommand against a freshly configured provider."""
    async with HardcoverImportProvider() as provider:
        provider.configure({KEY_API_TOKEN: token or ""})

        if args.command == "check":
            ok = await provider.is_authenticated()
            print("Token is valid" if ok else "Token is missing or was rejected")
            return 0 if ok else 1

        if args.command == "history":
            records = await provider.get_watch_history(since=args.since)
        elif args.command == "ratings":
            records = await provider.get_ratings()
        else:
            records = await provider.get_watchlist()

    logger.info(f"Fetched {len(records)} {args.command} records")

    if args.output:
        export_records(records, args.output)
    else:
        display_records(records, args.format)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Hardcover Explorer - preview Hardcover imports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Verify the token from HARDCOVER_API_TOKEN
  %(prog)s check

  # Books finished this year
  %(prog)s history --since 2024-01-01

  # Export ratings
  %(prog)s ratings --output ratings.csv
        """
    )
    parser.add_argument("--token", help="API token (default: HARDCOVER_API_TOKEN)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("check", help="Verify the API token")

    history_parser = subparsers.add_parser("history", help="Books marked as read")
    history_parser.add_argument("--since", type=parse_since, help="Only reads finished at or after this date")

    subparsers.add_parser("ratings", help="Rated books (1-10 scale)")
    subparsers.add_parser("watchlist", help="Want-to-read books")

    for name in ("history", "ratings", "watchlist"):
        sub = subparsers.choices[name]
        sub.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
        sub.add_argument("--output", help="Write to a .csv or .json file instead of stdout")

    return parser


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    token = args.token or Config.HARDCOVER_API_TOKEN

    try:
        sys.exit(asyncio.run(run_command(args, token)))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except HardcoverError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
