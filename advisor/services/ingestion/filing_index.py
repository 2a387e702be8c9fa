"""
filing_index.py — Paginated Submissions Index Loader

Purpose:
- Walk a company's submissions index: page 0 (`CIK{cid}.json`) plus the
  continuation pages it lists under `filings.files`.
- Persist each page to `{root}/edgar/filings/CIK{cid}_{page}.json` so a warm
  cache issues no network I/O.
- Merge the columnar pages into one `FilingEntry` and inflate it lazily into
  `FilingDescriptor` rows.

This module does NOT:
- Filter filings (see `filing_query.py`).
- Download filing documents (see `filing_fetcher.py`).
"""

from __future__ import annotations

import json
from datetime import date
from typing import Iterator, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from advisor.core.cache import CacheLayout
from advisor.core.logging import get_logger
from advisor.services.ingestion.clients.edgar_client import JSON_CONTENT_TYPE, EdgarClient
from advisor.services.ingestion.errors import MalformedIndex
from advisor.services.ingestion.types import FilingDescriptor, ReportType, pad_cik

logger = get_logger(__name__)

# Columns every page must carry, in inflation order.
REQUIRED_COLUMNS = (
    "accession_number",
    "filing_date",
    "acceptance_date_time",
    "report_type",
    "file_number",
    "film_number",
    "size",
    "is_xbrl",
    "is_inline_xbrl",
    "primary_document",
    "primary_doc_description",
)
# Columns that older pages sometimes omit entirely.
OPTIONAL_COLUMNS = ("report_date", "act", "items")


# ---------------------------------------------------------------------------
# Archive JSON schemas
# ---------------------------------------------------------------------------

class FilingEntry(BaseModel):
    """Columnar filing listing: one parallel array per field."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    accession_number: List[str] = Field(default_factory=list, alias="accessionNumber")
    filing_date: List[date] = Field(default_factory=list, alias="filingDate")
    report_date: Optional[List[Optional[str]]] = Field(default=None, alias="reportDate")
    acceptance_date_time: List[str] = Field(default_factory=list, alias="acceptanceDateTime")
    act: Optional[List[Optional[str]]] = None
    report_type: List[str] = Field(default_factory=list, alias="form")
    file_number: List[str] = Field(default_factory=list, alias="fileNumber")
    film_number: List[str] = Field(default_factory=list, alias="filmNumber")
    items: Optional[List[Optional[str]]] = None
    size: List[int] = Field(default_factory=list)
    is_xbrl: List[int] = Field(default_factory=list, alias="isXBRL")
    is_inline_xbrl: List[int] = Field(default_factory=list, alias="isInlineXBRL")
    primary_document: List[str] = Field(default_factory=list, alias="primaryDocument")
    primary_doc_description: List[str] = Field(default_factory=list, alias="primaryDocDescription")

    def column_lengths(self) -> dict:
        lengths = {name: len(getattr(self, name)) for name in REQUIRED_COLUMNS}
        for name in OPTIONAL_COLUMNS:
            column = getattr(self, name)
            if column is not None:
                lengths[name] = len(column)
        return lengths

    def row_count(self) -> int:
        """
        Common length of the parallel arrays.

        Raises:
            MalformedIndex if any two columns differ in length.
        """
        lengths = self.column_lengths()
        distinct = set(lengths.values())
        if len(distinct) > 1:
            detail = ", ".join(f"{name}={length}" for name, length in sorted(lengths.items()))
            raise MalformedIndex(f"column lengths differ: {detail}")
        return distinct.pop() if distinct else 0

    def iter_filings(self) -> Iterator[FilingDescriptor]:
        """Inflate rows lazily, checking every column has an element at each index."""
        count = self.row_count()
        for i in range(count):
            yield FilingDescriptor(
                accession_number=self.accession_number[i],
                filing_date=self.filing_date[i],
                report_date=_optional_cell(self.report_date, i) or None,
                acceptance_date_time=self.acceptance_date_time[i],
                act=_optional_cell(self.act, i),
                report_type=ReportType.parse(self.report_type[i]),
                file_number=self.file_number[i],
                film_number=self.film_number[i],
                items=_optional_cell(self.items, i),
                size=self.size[i],
                is_xbrl=bool(self.is_xbrl[i]),
                is_inline_xbrl=bool(self.is_inline_xbrl[i]),
                primary_document=self.primary_document[i],
                primary_doc_description=self.primary_doc_description[i],
            )


class FilingFile(BaseModel):
    """Continuation page descriptor listed on page 0."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    filing_count: int = Field(0, alias="filingCount")
    filing_from: str = Field("", alias="filingFrom")
    filing_to: str = Field("", alias="filingTo")


class FilingsData(BaseModel):
    recent: FilingEntry
    files: List[FilingFile] = Field(default_factory=list)


class CompanyFilings(BaseModel):
    """Page 0 of a submissions index: company metadata plus filings."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cik: str
    entity_type: str = Field("", alias="entityType")
    sic: str = ""
    sic_description: str = Field("", alias="sicDescription")
    name: str = ""
    tickers: List[str] = Field(default_factory=list)
    exchanges: List[Optional[str]] = Field(default_factory=list)
    filings: FilingsData

    def iter_filings(self) -> Iterator[FilingDescriptor]:
        return self.filings.recent.iter_filings()


def _optional_cell(column: Optional[List[Optional[str]]], i: int) -> str:
    if column is None:
        return ""
    return column[i] or ""


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_filing_entries(entries: Sequence[FilingEntry]) -> FilingEntry:
    """
    Concatenate columnar entries in order. No deduplication: pages are disjoint.

    An optional column absent from some pages is padded with None for those
    pages so the merged arrays stay parallel.
    """
    merged = FilingEntry()
    for name in REQUIRED_COLUMNS:
        column: list = []
        for entry in entries:
            column.extend(getattr(entry, name))
        setattr(merged, name, column)

    for name in OPTIONAL_COLUMNS:
        if all(getattr(entry, name) is None for entry in entries):
            continue
        column = []
        for entry in entries:
            values = getattr(entry, name)
            if values is None:
                column.extend([None] * len(entry.accession_number))
            else:
                column.extend(values)
        setattr(merged, name, column)

    merged.row_count()
    return merged


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class FilingIndexLoader:
    """
    Load and merge every page of a company's submissions index.

    Pages are read strictly in order: continuation names are only known once
    page 0 has been parsed.
    """

    def __init__(self, edgar_client: Optional[EdgarClient] = None, cache: Optional[CacheLayout] = None):
        self._client = edgar_client or EdgarClient()
        self._cache = cache or CacheLayout()

    def load_filings(self, cik, page_limit: Optional[int] = None, is_adr: bool = False) -> CompanyFilings:
        """
        Return page 0's `CompanyFilings` with `filings.recent` replaced by the
        merged entry of all loaded pages.

        `is_adr` is accepted for depositary-receipt issuers; they load exactly
        like any other company.

        Raises:
            MalformedIndex (with page_index) for unparseable pages.
            FetchError subclasses when a page cannot be fetched.
        """
        cid = pad_cik(cik)
        logger.info("Loading submissions index for CIK %s%s", cid, " (ADR)" if is_adr else "")

        page_index = 0
        current_url = self._client.submissions_url(f"CIK{cid}.json")
        accumulator: List[FilingEntry] = []
        continuations: List[FilingFile] = []

        while True:
            path = self._cache.index_page_path(cid, page_index)
            if not path.exists():
                self._client.fetch_to_path(current_url, path, JSON_CONTENT_TYPE)
            text = path.read_text(encoding="utf-8")

            if page_index == 0:
                company = _parse_company(text, page_index)
                accumulator.append(company.filings.recent)
                continuations = list(company.filings.files)
            else:
                accumulator.append(_parse_entry(text, page_index))

            page_index += 1
            if page_limit is not None and page_index >= page_limit:
                break
            if not continuations:
                break
            head = continuations.pop(0)
            current_url = self._client.submissions_url(head.name)

        try:
            merged = merge_filing_entries(accumulator)
        except MalformedIndex as exc:
            raise MalformedIndex(exc.detail, page_index=page_index - 1) from exc

        first_page = self._cache.index_page_path(cid, 0).read_text(encoding="utf-8")
        company = _parse_company(first_page, 0)
        company.filings.recent = merged
        log_filing_summary(company)
        return company


def _parse_company(text: str, page_index: int) -> CompanyFilings:
    try:
        company = CompanyFilings.model_validate(json.loads(text))
        company.filings.recent.row_count()
    except MalformedIndex as exc:
        logger.error("Unparseable submissions page %d: %s", page_index, exc.detail)
        raise MalformedIndex(exc.detail, page_index=page_index) from exc
    except (ValueError, ValidationError) as exc:
        logger.error("Unparseable submissions page %d: %s", page_index, exc)
        raise MalformedIndex(str(exc), page_index=page_index) from exc
    return company


def _parse_entry(text: str, page_index: int) -> FilingEntry:
    try:
        entry = FilingEntry.model_validate(json.loads(text))
        entry.row_count()
    except MalformedIndex as exc:
        logger.error("Unparseable submissions page %d: %s", page_index, exc.detail)
        raise MalformedIndex(exc.detail, page_index=page_index) from exc
    except (ValueError, ValidationError) as exc:
        logger.error("Unparseable submissions page %d: %s", page_index, exc)
        raise MalformedIndex(str(exc), page_index=page_index) from exc
    return entry


def log_filing_summary(company: CompanyFilings) -> None:
    """Log total filings, unique report types, and the filing-date range."""
    entry = company.filings.recent
    total = entry.row_count()
    if not total:
        logger.info("%s (CIK %s): no filings", company.name, company.cik)
        return
    report_types = sorted(set(entry.report_type))
    logger.info(
        "%s (CIK %s): %d filings, %d report types [%s], filed %s to %s",
        company.name,
        company.cik,
        total,
        len(report_types),
        ", ".join(report_types),
        min(entry.filing_date).isoformat(),
        max(entry.filing_date).isoformat(),
    )
