"""
filing_query.py — Select filings from a merged submissions index.

A filing matches a `Query` when its report type equals one of the accepted
types (by variant), its filing date lies in the inclusive date range, and at
least one of the query's tickers resolves to the company being filtered.
"""

from __future__ import annotations

from typing import Iterator, List

from advisor.core.logging import get_logger
from advisor.services.ingestion.errors import InvalidTicker
from advisor.services.ingestion.filing_index import CompanyFilings
from advisor.services.ingestion.tickers import TickerIndex
from advisor.services.ingestion.types import FilingDescriptor, Query, pad_cik

logger = get_logger(__name__)


def query_matches_company(query: Query, cik, ticker_index: TickerIndex) -> bool:
    cid = pad_cik(cik)
    for ticker in query.tickers:
        try:
            if ticker_index.cik_for(ticker) == cid:
                return True
        except InvalidTicker:
            logger.debug("Ticker %s does not resolve; skipping", ticker)
    return False


def matches_filing(filing: FilingDescriptor, query: Query) -> bool:
    if filing.report_type not in query.report_types:
        return False
    return query.start_date <= filing.filing_date <= query.end_date


def iter_matching_filings(
    company_filings: CompanyFilings, query: Query, ticker_index: TickerIndex
) -> Iterator[FilingDescriptor]:
    """Lazily yield matching rows; nothing is yielded for another company's query."""
    if not query_matches_company(query, company_filings.cik, ticker_index):
        return
    for filing in company_filings.iter_filings():
        if matches_filing(filing, query):
            yield filing


def select_filings(company_filings: CompanyFilings, query: Query, ticker_index: TickerIndex) -> List[FilingDescriptor]:
    filings = list(iter_matching_filings(company_filings, query, ticker_index))
    logger.info(
        "Selected %d filings for %s (%s to %s, forms: %s)",
        len(filings),
        ", ".join(query.tickers),
        query.start_date.isoformat(),
        query.end_date.isoformat(),
        ", ".join(str(report_type) for report_type in query.report_types),
    )
    return filings
