"""
extract_filing.py — Render one cached XBRL instance to markdown.

The document must live in the cache layout
`{root}/edgar/filings/{cid}/{accession-flat}/{document}`; output goes to
`{root}/edgar/parsed/{cid}/{accession-flat}/filing.md` and `filing.json`.

Usage:
    python scripts/extract_filing.py data/edgar/filings/0000320193/000032019323000106/aapl-20230930_htm.xml 10-K
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from advisor.core.cache import CacheLayout
from advisor.core.logging import configure_logging
from advisor.services.ingestion.edgar_adapter import extract_filing
from advisor.services.ingestion.errors import EdgarError
from advisor.services.ingestion.types import ReportType


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Render a cached EDGAR XBRL instance to markdown")
    parser.add_argument("path", type=Path, help="Cached instance document")
    parser.add_argument("report_type", help=f"Report type ({ReportType.list_types()})")
    parser.add_argument("--data-dir", default=None, help="Cache root (default: ADVISOR_DATA_DIR)")
    parser.add_argument("--print", dest="print_markdown", action="store_true", help="Echo the markdown")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    configure_logging(args.log_level)
    if not args.path.exists():
        print(f"[ERROR] Document not found at {args.path}")
        return 1

    try:
        markdown, metadata = extract_filing(args.path, args.report_type, cache=CacheLayout(args.data_dir))
    except EdgarError as exc:
        print(f"[ERROR] {exc}")
        return 1

    print(f"[OK] {metadata['report_type']} {metadata['accession_number']} (CIK {metadata['cik']}, {metadata['symbol'] or 'no ticker'})")
    if args.print_markdown:
        print(markdown)
    return 0


if __name__ == "__main__":
    sys.exit(main())
