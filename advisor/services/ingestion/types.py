"""
types.py — Shared Data Layer for the EDGAR ingestion pipeline

Purpose:
- Define the row-oriented filing descriptor produced from the columnar
  submissions index.
- Define report types and the query used to select filings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

CIK_WIDTH = 10


def pad_cik(cik) -> str:
    """
    Zero-pad a CIK to the 10-digit CompanyId the archive expects.

    Example:
        pad_cik(320193) -> "0000320193"
    """
    text = str(cik).strip()
    if not text.isdigit():
        raise ValueError(f"CIK must be numeric, got {cik!r}")
    return text.zfill(CIK_WIDTH)


class FormType(str, Enum):
    """Forms the pipeline recognizes by name."""
    FORM_10K = "10-K"
    FORM_10Q = "10-Q"
    FORM_8K = "8-K"
    FORM_4 = "4"
    FORM_5 = "5"
    FORM_S1 = "S-1"
    FORM_S3 = "S-3"
    FORM_S4 = "S-4"
    FORM_DEF14A = "DEF 14A"
    FORM_13F = "13F"
    FORM_13G = "13G"
    FORM_13D = "13D"
    FORM_SD = "SD"
    FORM_6K = "6-K"
    FORM_20F = "20-F"
    FORM_N1A = "N-1A"
    FORM_NCSR = "N-CSR"
    FORM_NPORT = "N-PORT"
    FORM_NQ = "N-Q"


_FORMS_BY_TAG = {form.value: form for form in FormType}


@dataclass(frozen=True, eq=False)
class ReportType:
    """
    A filing's form: either a known `FormType` or an "other" tag kept verbatim.

    Known forms compare by variant (so "10-k" equals "10-K"); other tags
    compare by their raw string, and never equal a known form.
    """
    form: Optional[FormType]
    raw: str

    @classmethod
    def parse(cls, tag: str) -> "ReportType":
        """
        Known forms match case-insensitively after trimming, so a typed
        "10-k" selects the 10-K variant; the tag as given is kept in `raw`.
        Unknown tags become "other" types compared by exact string.
        """
        form = _FORMS_BY_TAG.get(tag.strip().upper())
        return cls(form=form, raw=tag)

    @classmethod
    def of(cls, form: FormType) -> "ReportType":
        return cls(form=form, raw=form.value)

    @staticmethod
    def list_types() -> str:
        return ", ".join(form.value for form in FormType)

    @property
    def is_other(self) -> bool:
        return self.form is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReportType):
            return NotImplemented
        if self.form is None or other.form is None:
            return self.form is None and other.form is None and self.raw == other.raw
        return self.form is other.form

    def __hash__(self) -> int:
        return hash(self.form) if self.form is not None else hash((None, self.raw))

    def __str__(self) -> str:
        return self.form.value if self.form is not None else self.raw


@dataclass(frozen=True)
class FilingDescriptor:
    """
    One row of the submissions index.

    Attributes mirror the archive's columns; `report_type` is parsed into a
    `ReportType` and the 0/1 XBRL flags into booleans.
    """
    accession_number: str
    filing_date: date
    report_date: Optional[str]
    acceptance_date_time: str
    act: str
    report_type: ReportType
    file_number: str
    film_number: str
    items: str
    size: int
    is_xbrl: bool
    is_inline_xbrl: bool
    primary_document: str
    primary_doc_description: str

    @property
    def accession_flat(self) -> str:
        """Accession number with dashes removed, as used in archive paths."""
        return self.accession_number.replace("-", "")

    @property
    def xbrl_document_name(self) -> str:
        """
        Name of the XBRL instance the archive publishes next to an inline filing.

        `aapl-20230930.htm` -> `aapl-20230930_htm.xml`; other names are unchanged.
        """
        name = self.primary_document
        if name.endswith(".htm"):
            return name[: -len(".htm")] + "_htm.xml"
        return name


@dataclass
class Query:
    """
    Filing selection: tickers, inclusive date range, accepted report types.

    `is_adr` marks foreign depositary receipts; they are loaded exactly like
    standard filings.
    """
    tickers: List[str]
    start_date: date
    end_date: date
    report_types: List[ReportType] = field(default_factory=list)
    is_adr: bool = False

    @property
    def primary_ticker(self) -> str:
        if not self.tickers:
            raise ValueError("Query has no tickers")
        return self.tickers[0]
