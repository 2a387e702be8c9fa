"""
cache.py — On-Disk EDGAR Cache Layout

Purpose:
- Compute the deterministic cache paths shared by every ingestion stage:

    {root}/edgar/filings/CIK{cid}_{page}.json            submission index pages
    {root}/edgar/filings/{cid}/{accession-flat}/{doc}    primary documents
    {root}/edgar/tickers.json                            ticker map
    {root}/edgar/parsed/{cid}/{accession-flat}/filing.md rendered markdown

- Paths are pure functions of their keys, so a warm cache is reused across
  runs and each path is written by at most one task.

This module does NOT:
- Read or write cached content (see the EDGAR client).
- Delete anything; failed downloads are left in place for inspection.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from advisor.core.config import settings


class CacheLayout:
    """
    Path builder rooted at `ADVISOR_DATA_DIR` (or an explicit root).
    """

    def __init__(self, root: Optional[Union[str, Path]] = None) -> None:
        self.root = Path(root) if root is not None else Path(settings.ADVISOR_DATA_DIR)

    @property
    def edgar_dir(self) -> Path:
        return self.root / "edgar"

    @property
    def filings_dir(self) -> Path:
        return self.edgar_dir / "filings"

    @property
    def parsed_dir(self) -> Path:
        return self.edgar_dir / "parsed"

    @property
    def tickers_path(self) -> Path:
        return self.edgar_dir / "tickers.json"

    def index_page_path(self, cid: str, page: int) -> Path:
        return self.filings_dir / f"CIK{cid}_{page}.json"

    def document_dir(self, cid: str, accession_flat: str) -> Path:
        return self.filings_dir / cid / accession_flat

    def document_path(self, cid: str, accession_flat: str, document_name: str) -> Path:
        return self.document_dir(cid, accession_flat) / document_name

    def parsed_filing_dir(self, cid: str, accession_flat: str) -> Path:
        return self.parsed_dir / cid / accession_flat

    def ensure_directories(self) -> None:
        """Create the fixed part of the tree (per-filing folders are created on demand)."""
        for path in (self.edgar_dir, self.filings_dir, self.parsed_dir):
            path.mkdir(parents=True, exist_ok=True)
