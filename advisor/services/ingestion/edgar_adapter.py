"""
edgar_adapter.py — SEC / EDGAR ingestion facade.

Callers outside the ingestion core should talk to this module rather than
wiring the loader, query filter, fetcher and parser themselves. This keeps
the outward-facing API function-oriented and easy to mock in tests.

Exposed operations:
- fetch_matching_filings(company, query) -> {document path: FilingDescriptor}
- extract_filing(path, report_type)      -> (markdown, metadata)
- ingest_matching_filings(company, query, sink) hands each rendered filing
  to a document sink (e.g. an embedding store).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple, Union

from bs4 import UnicodeDammit

from advisor.core.cache import CacheLayout
from advisor.core.logging import get_logger
from advisor.services.ingestion.clients import EdgarClient
from advisor.services.ingestion.errors import XmlError
from advisor.services.ingestion.filing_fetcher import FilingFetcher
from advisor.services.ingestion.filing_index import FilingIndexLoader
from advisor.services.ingestion.filing_query import select_filings
from advisor.services.ingestion.tickers import TickerIndex, get_ticker_index
from advisor.services.ingestion.types import FilingDescriptor, Query, ReportType, pad_cik
from advisor.services.ingestion.xbrl import parse_instance, render_markdown

logger = get_logger(__name__)

DOC_TYPE = "edgar_filing"
MARKDOWN_FILENAME = "filing.md"
METADATA_FILENAME = "filing.json"


class DocumentSink(Protocol):
    """Anything that accepts rendered documents, e.g. a vector store adapter."""

    def add_document(self, content: str, metadata: Dict[str, Any]) -> None:
        ...


def resolve_company(company: Union[str, int], ticker_index: TickerIndex) -> str:
    """Return the padded CompanyId for a ticker or a numeric CIK."""
    text = str(company).strip()
    if text.isdigit():
        return pad_cik(text)
    return ticker_index.cik_for(text)


def fetch_matching_filings(
    company: Union[str, int],
    query: Query,
    edgar_client: Optional[EdgarClient] = None,
    cache: Optional[CacheLayout] = None,
    ticker_index: Optional[TickerIndex] = None,
    show_progress: bool = False,
) -> Dict[Path, FilingDescriptor]:
    """
    Load the company's submissions index, select the filings matching `query`,
    and download their XBRL instances.

    Failed downloads are logged and omitted from the result.

    Raises:
        InvalidTicker, MalformedIndex, FetchError (index pages only)
    """
    client = edgar_client or EdgarClient()
    cache = cache or CacheLayout()
    index = ticker_index or get_ticker_index(client, cache)

    cid = resolve_company(company, index)
    company_filings = FilingIndexLoader(client, cache).load_filings(cid, is_adr=query.is_adr)
    filings = select_filings(company_filings, query, index)

    fetcher = FilingFetcher(client, cache, show_progress=show_progress)
    report = fetcher.fetch(cid, filings)
    if report.failures:
        logger.warning(
            "%d filings for CIK %s failed: %s",
            len(report.failures),
            cid,
            ", ".join(report.failed_accessions),
        )
    return report.documents


def read_document(path: Path) -> str:
    """Decode a cached document, detecting its encoding."""
    raw = path.read_bytes()
    dammit = UnicodeDammit(raw, ["utf-8", "windows-1252"])
    if dammit.unicode_markup is None:
        return raw.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def extract_filing(
    path: Union[str, Path],
    report_type: Union[ReportType, str],
    cache: Optional[CacheLayout] = None,
    ticker_index: Optional[TickerIndex] = None,
) -> Tuple[str, Dict[str, Any]]:
    """
    Render a cached XBRL instance to markdown and write it with its metadata
    to `{root}/edgar/parsed/{cid}/{accession-flat}/filing.md` (+ `filing.json`).

    The document path must follow the cache layout
    `.../{cid}/{accession-flat}/{document}`.

    Raises:
        XmlError if the document is not well-formed.
    """
    path = Path(path)
    cache = cache or CacheLayout()
    if isinstance(report_type, str):
        report_type = ReportType.parse(report_type)

    accession_flat = path.parent.name
    cid = path.parent.parent.name

    symbol = ""
    index = ticker_index
    if index is None:
        index = get_ticker_index(cache=cache)
    try:
        symbol = index.ticker_for_cik(cid) or ""
    except ValueError:
        symbol = ""
    if not symbol:
        logger.warning("No ticker found for CIK %s", cid)

    facts = parse_instance(read_document(path))
    title = f"{symbol or cid} {report_type} {accession_flat}"
    markdown = render_markdown(facts, title=title)

    metadata: Dict[str, Any] = {
        "doc_type": DOC_TYPE,
        "filepath": str(path),
        "report_type": str(report_type),
        "cik": cid,
        "accession_number": accession_flat,
        "symbol": symbol,
        "chunk_index": 0,
        "total_chunks": 1,
    }

    out_dir = cache.parsed_filing_dir(cid, accession_flat)
    out_dir.mkdir(parents=True, exist_ok=True)
    markdown_path = out_dir / MARKDOWN_FILENAME
    markdown_path.write_text(markdown, encoding="utf-8")
    with (out_dir / METADATA_FILENAME).open("w", encoding="utf-8") as fh:
        json.dump(metadata, fh, indent=2, sort_keys=True)
    logger.info("Rendered %d facts from %s to %s", len(facts), path, markdown_path)
    return markdown, metadata


def ingest_matching_filings(
    company: Union[str, int],
    query: Query,
    sink: DocumentSink,
    edgar_client: Optional[EdgarClient] = None,
    cache: Optional[CacheLayout] = None,
    ticker_index: Optional[TickerIndex] = None,
    show_progress: bool = False,
) -> int:
    """
    Fetch, extract, and hand every matching filing to `sink`.

    Returns the number of documents delivered. A filing whose instance does
    not parse is logged and skipped.
    """
    client = edgar_client or EdgarClient()
    cache = cache or CacheLayout()
    index = ticker_index or get_ticker_index(client, cache)

    documents = fetch_matching_filings(company, query, client, cache, index, show_progress=show_progress)
    delivered = 0
    for path, filing in sorted(documents.items(), key=lambda item: (item[1].filing_date, str(item[0]))):
        try:
            markdown, metadata = extract_filing(path, filing.report_type, cache=cache, ticker_index=index)
        except XmlError as exc:
            logger.error("Skipping filing %s: %s", filing.accession_number, exc)
            continue
        sink.add_document(markdown, metadata)
        delivered += 1
    return delivered
