"""
Command line entry point for loading and checking versioned dimensions.

Usage:
  dimension-versioning create-tables --db-url URL [--dimension customer ...]
  dimension-versioning load --db-url URL --dimension customer --input customers.jsonl
  dimension-versioning sync-sequences --db-url URL [--dimension customer ...]
  dimension-versioning verify --db-url URL --dimension customer
"""

from typing import List, Optional
import argparse
import json
import logging
import sys

from sqlalchemy import create_engine

from .common.banking_dimensions import BANKING_SCHEMA, banking_dimensions
from .common.config import DeduplicationConfig, DimensionConfig, DimensionRegistry
from .common.exceptions import DimensionalProcessingError, DimensionValidationError
from .common.utils import build_record, coerce_attributes
from .scd_type2.version_manager import DimensionVersionManager
from .storage.sql_store import SqlDimensionStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dimension-versioning",
        description="SCD Type 2 versioning for the banking warehouse dimensions"
    )
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(sub, dimension_required: bool = False, many: bool = True):
        sub.add_argument("--db-url", required=True, help="SQLAlchemy database URL")
        sub.add_argument("--schema", default=BANKING_SCHEMA,
                         help="Warehouse schema; pass an empty string for none")
        sub.add_argument("--config", help="JSON file with a list of dimension configurations")
        sub.add_argument("--reflect", action="store_true",
                         help="Read table definitions from the database")
        if many:
            sub.add_argument("--dimension", action="append", dest="dimensions",
                             required=dimension_required)
        else:
            sub.add_argument("--dimension", required=True)

    add_common(subparsers.add_parser("create-tables", help="Create dimension tables"))

    load = subparsers.add_parser("load", help="Apply JSON-lines as-of records")
    add_common(load, many=False)
    load.add_argument("--input", required=True, help="JSON-lines file, '-' for stdin")
    load.add_argument("--strategy", default="latest", choices=["latest", "earliest", "reject"],
                      help="How to resolve conflicting records for the same key and date")

    add_common(subparsers.add_parser("sync-sequences",
                                     help="Advance surrogate key sequences past loaded data"))
    add_common(subparsers.add_parser("verify", help="Check version chain invariants"), many=False)
    return parser


def load_registry(args) -> DimensionRegistry:
    if args.config:
        with open(args.config, "r", encoding="utf-8") as fh:
            return DimensionRegistry(DimensionConfig.from_dict(item) for item in json.load(fh))
    return DimensionRegistry(banking_dimensions(args.schema or None))


def selected(registry: DimensionRegistry, dimension_ids: Optional[List[str]]) -> List[DimensionConfig]:
    if not dimension_ids:
        return list(registry)
    return [registry.get(dimension_id) for dimension_id in dimension_ids]


def read_records(path: str, config: DimensionConfig):
    stream = sys.stdin if path == "-" else open(path, "r", encoding="utf-8")
    try:
        for line_number, line in enumerate(stream, start=1):
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except ValueError as e:
                raise DimensionValidationError(f"Line {line_number}: invalid JSON: {str(e)}") from e
            if not isinstance(row, dict):
                raise DimensionValidationError(f"Line {line_number}: expected a JSON object")
            try:
                record = build_record(
                    config.dimension_id,
                    row.get("natural_key"),
                    row.get("as_of_date"),
                    coerce_attributes(config, row.get("attributes") or {})
                )
            except DimensionalProcessingError as e:
                raise DimensionalProcessingError(f"Line {line_number}: {e.message}", e.error_code) from e
            yield record
    finally:
        if stream is not sys.stdin:
            stream.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(levelname)s:%(name)s:%(message)s")

    try:
        registry = load_registry(args)
        store = SqlDimensionStore(create_engine(args.db_url), reflect=args.reflect)

        if args.command == "create-tables":
            for name in store.create_tables(selected(registry, args.dimensions)):
                print(name)
            return 0

        if args.command == "sync-sequences":
            for config in selected(registry, args.dimensions):
                print(f"{config.dimension_id}\t{store.sync_sequence(config)}")
            return 0

        strategy = getattr(args, "strategy", "latest")
        manager = DimensionVersionManager(
            store, registry, deduplication_config=DeduplicationConfig(strategy)
        )

        if args.command == "load":
            config = registry.get(args.dimension)
            metrics = manager.apply_batch(read_records(args.input, config))
            print(json.dumps(metrics.to_dict(), indent=2))
            return 1 if metrics.records_with_errors else 0

        violations = manager.verify(args.dimension)
        for natural_key, result in violations.items():
            for error in result.errors:
                print(f"{natural_key}\t{error}")
        return 1 if violations else 0

    except DimensionalProcessingError as e:
        logger.error(f"{e.error_code}: {e.message}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
