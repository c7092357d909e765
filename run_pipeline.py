#!/usr/bin/env python3
"""
Command line entrypoint for the food alert pipeline.

Usage:
    # Create the database tables
    uv run python run_pipeline.py init-db

    # Fetch and store the latest alerts (page limit from config / INGEST_PAGE_LIMIT)
    uv run python run_pipeline.py ingest --pages 5

    # Run today's digests, logging them instead of emailing
    uv run python run_pipeline.py digest --date 2026-10-19

    # Review normalization
    uv run python run_pipeline.py stats
    uv run python run_pipeline.py unknowns --type hazard
    uv run python run_pipeline.py preview hazard "fipronil - {pesticide residues}"
    uv run python run_pipeline.py add-mapping country "Holland (NL)" Netherlands
"""
import argparse
import sys
from datetime import date

from food_alerts import admin
from food_alerts.config import load_config
from food_alerts.database import init_db, load_mappings
from food_alerts.digest import log_dispatcher, run_digest
from food_alerts.ingest import run_ingestion
from food_alerts.mapping_cache import MappingCache
from food_alerts.models import MappingType

MAPPING_TYPES = [t.value for t in MappingType]


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Food safety alert ingestion and digests")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables")

    ingest = subparsers.add_parser("ingest", help="Fetch, normalize and store feed records")
    ingest.add_argument("--pages", type=int, help="Maximum number of feed pages to fetch")

    digest = subparsers.add_parser("digest", help="Run the digest job with the logging dispatcher")
    digest.add_argument("--date", type=_parse_date, help="Run as if today were this date (YYYY-MM-DD)")

    subparsers.add_parser("stats", help="Show normalization statistics")

    unknowns = subparsers.add_parser("unknowns", help="List unmapped values awaiting review")
    unknowns.add_argument("--type", choices=MAPPING_TYPES, help="Only this value type")
    unknowns.add_argument("--limit", type=int, default=50)

    mappings = subparsers.add_parser("mappings", help="List custom mappings")
    mappings.add_argument("--type", choices=MAPPING_TYPES, help="Only this mapping type")
    mappings.add_argument("--limit", type=int, default=100)

    preview = subparsers.add_parser("preview", help="Show how a raw value normalizes today")
    preview.add_argument("type", choices=MAPPING_TYPES)
    preview.add_argument("raw_value")

    add = subparsers.add_parser("add-mapping", help="Add or update a custom mapping")
    add.add_argument("type", choices=MAPPING_TYPES)
    add.add_argument("raw_value")
    add.add_argument("normalized_value")
    add.add_argument("--confidence", type=float, default=1.0)

    review = subparsers.add_parser("mark-reviewed", help="Dismiss an unknown value")
    review.add_argument("type", choices=MAPPING_TYPES)
    review.add_argument("raw_value")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.command == "init-db":
        init_db()
        print("Database initialized")

    elif args.command == "ingest":
        config = load_config()
        if args.pages is not None:
            config.page_limit = args.pages
        result = run_ingestion(config)
        print(f"Pages: {result.pages_processed}, records: {result.records_seen}, "
              f"failed: {result.records_failed}, facts: {result.facts_upserted}")
        if result.aborted:
            print(f"Aborted: {result.error}", file=sys.stderr)
            sys.exit(1)

    elif args.command == "digest":
        result = run_digest(log_dispatcher, today=args.date)
        print(f"Processed: {result.processed}, sent: {result.sent}, all clear: {result.all_clear}, "
              f"skipped: {result.skipped}, failed: {result.failed}")
        if result.failed:
            sys.exit(1)

    elif args.command == "stats":
        stats = admin.normalization_stats()
        print(f"Raw records: {stats['raw_records']}, facts: {stats['facts']}, "
              f"mappings: {stats['total_mappings']}")
        for entry in stats["unknown_values"]:
            print(f"  {entry['type']}: {entry['count']} unmapped sightings, e.g. {', '.join(entry['top_values'])}")

    elif args.command == "unknowns":
        for unknown in admin.list_unknowns(args.type, args.limit):
            suggestion = f" -> {unknown.suggested_mapping}" if unknown.suggested_mapping else ""
            print(f"{unknown.occurrence_count:>5}  {unknown.value_type.value:<9} {unknown.raw_value}{suggestion}")

    elif args.command == "mappings":
        for mapping in admin.list_mappings(args.type, args.limit):
            print(f"{mapping.mapping_type.value:<9} {mapping.raw_value} -> {mapping.normalized_value} "
                  f"(confidence {mapping.confidence:.2f})")

    elif args.command == "preview":
        cache = MappingCache(load_mappings)
        admin.refresh_cache(cache)
        print(admin.preview_normalization(args.type, args.raw_value, cache))

    elif args.command == "add-mapping":
        try:
            mapping = admin.add_mapping(args.type, args.raw_value, args.normalized_value, args.confidence)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Mapped {mapping.raw_value!r} -> {mapping.normalized_value!r}")

    elif args.command == "mark-reviewed":
        if not admin.mark_reviewed(args.type, args.raw_value):
            print(f"No unknown {args.type} value {args.raw_value!r}", file=sys.stderr)
            sys.exit(1)
        print("Marked as reviewed")


if __name__ == "__main__":
    main()
