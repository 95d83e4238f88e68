"""CLI entrypoint for the factsheet weights workflow."""

import argparse
import asyncio
import json
import logging
import sys
import warnings
from pathlib import Path

# Suppress noisy warnings and loggers (HTTP client internals)
warnings.filterwarnings("ignore", category=ResourceWarning)
for logger_name in ["httpx", "httpcore", "pypdf", "asyncio"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)

from dotenv import load_dotenv  # noqa: E402 - must be after logging config

# Load environment variables before the config module reads them
load_dotenv()


async def fetch_weights(
    isins: list[str],
    mapping_path: str | None = None,
    db_path: str | None = None,
    verbose: bool = False,
    log_dir: str | None = None,
) -> list[dict]:
    """Run the workflow for each ISIN in turn.

    Args:
        isins: ISINs as typed by the user (normalized by the workflow).
        mapping_path: Mapping JSON. Falls back to FACTSHEET_MAPPING_PATH.
        db_path: SQLite file for cache and fetch log. Falls back to
            FACTSHEET_DB_PATH, then to in-memory stores.
        verbose: Verbose output.
        log_dir: Directory for per-run log files.

    Returns:
        One JSON-ready dict per ISIN, in input order. Failures carry ``code``.
    """
    # Import here so .env values are visible to the config module
    from factsheet_weights.core.config import DB_PATH, MAPPING_PATH
    from factsheet_weights.core.mapping import MappingRepository
    from factsheet_weights.core.stores import SqlStore
    from factsheet_weights.orchestrator import WeightsWorkflow

    mapping_path = mapping_path or MAPPING_PATH
    db_path = db_path or DB_PATH

    mapping = MappingRepository.from_json_file(mapping_path) if mapping_path else MappingRepository()
    store = SqlStore.from_path(db_path) if db_path else None

    outputs: list[dict] = []
    try:
        async with WeightsWorkflow(
            mapping=mapping,
            cache=store,
            fetch_log=store,
            verbose=verbose,
            log_dir=log_dir,
        ) as workflow:
            for isin in isins:
                outcome = await workflow.run(isin)
                record = outcome.to_dict()
                if "code" in record:
                    record = {"isin": isin, **record}
                outputs.append(record)
            if len(isins) > 1:
                workflow.logger.summary(workflow.get_stats())
    finally:
        if store is not None:
            store.close()
    return outputs


def print_summary(outputs: list[dict]):
    """One block per ISIN: constituents table or error."""
    for record in outputs:
        print(f"\n{'='*50}")
        print(f"ISIN: {record['isin']}")
        print(f"{'='*50}")
        if "code" in record:
            print(f"  [{record['code']}] {record['message']}")
            if record.get("http_status") is not None:
                print(f"  HTTP status: {record['http_status']}")
            continue
        print(f"  Source: {record['source_pdf_url']}")
        print(f"  As of: {record['as_of_date'] or '-'}")
        print(f"  Cache: {record['cache_status']}")
        if record.get("nav_usd") is not None:
            print(f"  NAV: {record['nav_usd']:.2f} USD")
        for constituent in record["constituents"]:
            print(f"    {constituent['name']:<24} {constituent['weight']:>7.2f}%")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Crypto ETP constituent weights from issuer factsheets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  factsheet-weights CH0454664001
  factsheet-weights CH0454664001 DE000A27Z304 -m data/isin_mapping.json
  factsheet-weights CH0454664001 --db weights.sqlite -o out.json
        """,
    )
    parser.add_argument("isins", nargs="+", metavar="ISIN", help="One or more ISINs")
    parser.add_argument(
        "-m", "--mapping",
        default=None,
        help="Per-ISIN mapping JSON (default: $FACTSHEET_MAPPING_PATH)",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite file for cache and fetch log (default: $FACTSHEET_DB_PATH, else in-memory)",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Write results as JSON to this file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with DEBUG level logging",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for per-run log files",
    )

    args = parser.parse_args(argv)

    outputs = asyncio.run(fetch_weights(
        isins=args.isins,
        mapping_path=args.mapping,
        db_path=args.db,
        verbose=args.verbose,
        log_dir=args.log_dir,
    ))

    print_summary(outputs)

    if args.output:
        output_file = Path(args.output)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(outputs, f, indent=2, ensure_ascii=False)
        print(f"\n[OUTPUT] {output_file}")

    sys.exit(0 if all("code" not in record for record in outputs) else 1)


if __name__ == "__main__":
    main()
