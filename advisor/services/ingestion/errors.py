"""
errors.py — Exception hierarchy for the EDGAR ingestion core.

Single operations raise one of these; batch operations (the filing fetcher)
record them per task instead of aborting.
"""

from __future__ import annotations

from typing import Optional


class EdgarError(RuntimeError):
    """Base exception for EDGAR ingestion failures."""


class InvalidTicker(EdgarError):
    """Ticker is malformed or absent from the ticker index."""

    def __init__(self, ticker: str, reason: str = "not found in ticker index") -> None:
        self.ticker = ticker
        super().__init__(f"Invalid ticker {ticker!r}: {reason}")


class FetchError(EdgarError):
    """Base class for failures while fetching a URL to the cache."""


class RemoteError(FetchError):
    """The archive answered with a non-success status."""

    def __init__(self, url: str, status_code: int) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} for {url}")


class TruncatedResponse(FetchError):
    """The body failed a completeness check (length or JSON tail)."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Truncated response from {url}: {detail}")


class Timeout(FetchError):
    """Connect or total request timeout."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Request timed out: {url}")


class MalformedIndex(EdgarError):
    """A submissions index page could not be parsed or inflated."""

    def __init__(self, detail: str, page_index: Optional[int] = None) -> None:
        self.detail = detail
        self.page_index = page_index
        where = f" (page {page_index})" if page_index is not None else ""
        super().__init__(f"Malformed submissions index{where}: {detail}")


class XmlError(EdgarError):
    """The instance document is not well-formed XML."""


class SkippedDimension(EdgarError):
    """An explicit member whose axis or member is not a prefixed name."""
