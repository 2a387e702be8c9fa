"""
fetch_filings.py — Download a company's XBRL filings into the local EDGAR cache.

This script:
1. Resolves the ticker to a CIK through the SEC ticker map
2. Loads (or reuses) every page of the company's submissions index
3. Downloads the XBRL instance of each filing matching the date range and forms
4. Optionally renders each downloaded filing to markdown

Usage:
    python scripts/fetch_filings.py AAPL --start 2023-01-01 --end 2023-12-31 --forms 10-K 10-Q --extract
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from datetime import date

from advisor.core.cache import CacheLayout
from advisor.core.logging import configure_logging
from advisor.services.ingestion.clients import EdgarClient, EdgarClientSettings, RateLimiter
from advisor.services.ingestion.edgar_adapter import extract_filing, fetch_matching_filings
from advisor.services.ingestion.errors import EdgarError
from advisor.services.ingestion.tickers import TickerIndex
from advisor.services.ingestion.types import Query, ReportType


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Fetch SEC EDGAR XBRL filings for a ticker",
        epilog=f"Known forms: {ReportType.list_types()}",
    )
    parser.add_argument("ticker", help="Ticker symbol, e.g. AAPL")
    parser.add_argument("--start", type=date.fromisoformat, required=True, help="First filing date (YYYY-MM-DD)")
    parser.add_argument("--end", type=date.fromisoformat, default=date.today(), help="Last filing date (default: today)")
    parser.add_argument("--forms", nargs="+", default=["10-K", "10-Q"], help="Report types to keep (default: 10-K 10-Q)")
    parser.add_argument("--adr", action="store_true", help="Treat the issuer as a depositary receipt")
    parser.add_argument("--data-dir", default=None, help="Cache root (default: ADVISOR_DATA_DIR)")
    parser.add_argument("--extract", action="store_true", help="Render each downloaded filing to markdown")
    parser.add_argument("--max-concurrent", type=int, default=10, help="Cap on in-flight EDGAR requests (default: 10)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    configure_logging(args.log_level)
    cache = CacheLayout(args.data_dir)
    config = replace(EdgarClientSettings.from_app_settings(), max_concurrent_requests=args.max_concurrent)
    RateLimiter.configure(args.max_concurrent)
    client = EdgarClient(config=config)

    query = Query(
        tickers=[args.ticker],
        start_date=args.start,
        end_date=args.end,
        report_types=[ReportType.parse(form) for form in args.forms],
        is_adr=args.adr,
    )

    print("=" * 80)
    print(f"EDGAR filings for {args.ticker.upper()}: {args.start} to {args.end} ({', '.join(args.forms)})")
    print("=" * 80)

    try:
        index = TickerIndex.load(client, cache)
        documents = fetch_matching_filings(args.ticker, query, client, cache, index, show_progress=True)
    except EdgarError as exc:
        print(f"[ERROR] {exc}")
        return 1

    print(f"\n[OK] {len(documents)} documents in cache")
    for path, filing in sorted(documents.items(), key=lambda item: item[1].filing_date):
        print(f"  {filing.filing_date}  {str(filing.report_type):<8} {filing.accession_number}  {path}")

    if args.extract:
        failures = 0
        for path, filing in documents.items():
            try:
                extract_filing(path, filing.report_type, cache=cache, ticker_index=index)
            except EdgarError as exc:
                failures += 1
                print(f"[ERROR] {filing.accession_number}: {exc}")
        print(f"\n[OK] Rendered {len(documents) - failures} filings to {cache.parsed_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
