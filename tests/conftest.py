"""
Shared fixtures for the EDGAR ingestion tests.

No test touches the network: `FakeSession` stands in for `requests.Session`
and serves canned responses per URL, recording every call and the peak
number of concurrent requests.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from requests.structures import CaseInsensitiveDict

from advisor.core.cache import CacheLayout
from advisor.services.ingestion.clients import EdgarClient, EdgarClientSettings, RateLimiter

TEST_USER_AGENT = "advisor-tests test@example.com"
APPLE_CIK = "0000320193"


# ============================================================================
# Fake HTTP layer
# ============================================================================

class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


@dataclass
class FakeCall:
    url: str
    headers: Dict[str, str]
    timeout: Any


Route = Union[FakeResponse, BaseException, Callable[[str], FakeResponse], List[Any]]


class FakeSession:
    """
    Minimal `requests.Session` double.

    Routes map a URL to a response, an exception to raise, a callable, or a
    list consumed one item per call (for retry sequences). Unknown URLs 404.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None, delay: float = 0.0):
        self.headers = CaseInsensitiveDict()
        self.routes: Dict[str, Route] = dict(routes or {})
        self.delay = delay
        self.calls: List[FakeCall] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, timeout: Any = None) -> FakeResponse:
        with self._lock:
            self.calls.append(FakeCall(url=url, headers=dict(headers or {}), timeout=timeout))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            return self._resolve(url)
        finally:
            with self._lock:
                self.in_flight -= 1

    def _resolve(self, url: str) -> FakeResponse:
        with self._lock:
            route = self.routes.get(url)
            if isinstance(route, list):
                route = route.pop(0) if len(route) > 1 else route[0]
        if route is None:
            return FakeResponse(404, b"Not Found")
        if isinstance(route, BaseException):
            raise route
        if callable(route):
            return route(url)
        return route

    def urls(self) -> List[str]:
        return [call.url for call in self.calls]


def json_response(payload: Any, status_code: int = 200) -> FakeResponse:
    body = json.dumps(payload).encode("utf-8")
    return FakeResponse(
        status_code,
        body,
        {"Content-Type": "application/json", "Content-Length": str(len(body))},
    )


def xml_response(text: str, status_code: int = 200) -> FakeResponse:
    body = text.encode("utf-8")
    return FakeResponse(
        status_code,
        body,
        {"Content-Type": "application/xml", "Content-Length": str(len(body))},
    )


# ============================================================================
# Archive payload builders
# ============================================================================

ENTRY_COLUMNS = {
    "accessionNumber": "accession",
    "filingDate": "filing_date",
    "reportDate": "report_date",
    "acceptanceDateTime": "accepted",
    "act": "act",
    "form": "form",
    "fileNumber": "file_number",
    "filmNumber": "film_number",
    "items": "items",
    "size": "size",
    "isXBRL": "is_xbrl",
    "isInlineXBRL": "is_inline_xbrl",
    "primaryDocument": "primary_document",
    "primaryDocDescription": "description",
}


def filing_row(accession: str, form: str, filing_date: str, primary_document: Optional[str] = None, **overrides) -> Dict[str, Any]:
    row = {
        "accession": accession,
        "filing_date": filing_date,
        "report_date": filing_date,
        "accepted": f"{filing_date}T16:30:00.000Z",
        "act": "34",
        "form": form,
        "file_number": "001-36743",
        "film_number": "231000000",
        "items": "",
        "size": 1000,
        "is_xbrl": 1,
        "is_inline_xbrl": 1,
        "primary_document": primary_document or f"doc-{accession}.htm",
        "description": form,
    }
    row.update(overrides)
    return row


def filing_entry(rows: List[Dict[str, Any]]) -> Dict[str, List[Any]]:
    """Columnar FilingEntry JSON from row dicts."""
    return {column: [row[key] for row in rows] for column, key in ENTRY_COLUMNS.items()}


def company_payload(cik: str, rows: List[Dict[str, Any]], files: Optional[List[str]] = None) -> Dict[str, Any]:
    return {
        "cik": str(int(cik)),
        "entityType": "operating",
        "sic": "3571",
        "sicDescription": "Electronic Computers",
        "name": "Apple Inc.",
        "tickers": ["AAPL"],
        "exchanges": ["Nasdaq"],
        "filings": {
            "recent": filing_entry(rows),
            "files": [
                {"name": name, "filingCount": 0, "filingFrom": "", "filingTo": ""}
                for name in (files or [])
            ],
        },
    }


TICKERS_PAYLOAD = {
    "0": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."},
    "1": {"cik_str": 789019, "ticker": "MSFT", "title": "MICROSOFT CORP"},
    "2": {"cik_str": 1067983, "ticker": "BRK-B", "title": "BERKSHIRE HATHAWAY INC"},
    "3": {"cik_str": 1067983, "ticker": "BRK-A", "title": "BERKSHIRE HATHAWAY INC"},
    "4": {"cik_str": 1018724, "ticker": "AMZN", "title": "AMAZON COM INC"},
}


SAMPLE_INSTANCE = """<?xml version="1.0" encoding="utf-8"?>
<xbrli:xbrl xmlns:xbrli="http://www.xbrl.org/2003/instance"
            xmlns:link="http://www.xbrl.org/2003/linkbase"
            xmlns:xlink="http://www.w3.org/1999/xlink"
            xmlns:xbrldi="http://xbrl.org/2006/xbrldi"
            xmlns:iso4217="http://www.xbrl.org/2003/iso4217"
            xmlns:us-gaap="http://fasb.org/us-gaap/2023"
            xmlns:dei="http://xbrl.sec.gov/dei/2023"
            xmlns:srt="http://fasb.org/srt/2023"
            xmlns:aapl="http://www.apple.com/20230930">
  <link:schemaRef xlink:type="simple" xlink:href="aapl-20230930.xsd"/>
  <xbrli:context id="c1">
    <xbrli:entity>
      <xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:instant>2023-09-30</xbrli:instant>
    </xbrli:period>
  </xbrli:context>
  <xbrli:context id="c2">
    <xbrli:entity>
      <xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:startDate>2022-09-25</xbrli:startDate>
      <xbrli:endDate>2023-09-30</xbrli:endDate>
    </xbrli:period>
  </xbrli:context>
  <xbrli:context id="c3">
    <xbrli:entity>
      <xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier>
      <xbrli:segment>
        <xbrldi:explicitMember dimension="srt:ProductOrServiceAxis">aapl:IPhoneMember</xbrldi:explicitMember>
      </xbrli:segment>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:startDate>2022-09-25</xbrli:startDate>
      <xbrli:endDate>2023-09-30</xbrli:endDate>
    </xbrli:period>
  </xbrli:context>
  <xbrli:context id="c4">
    <xbrli:entity>
      <xbrli:identifier scheme="http://www.sec.gov/CIK">0000320193</xbrli:identifier>
      <xbrli:segment>
        <xbrldi:explicitMember dimension="srt:ProductOrServiceAxis">aapl:MacMember</xbrldi:explicitMember>
      </xbrli:segment>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:startDate>2022-09-25</xbrli:startDate>
      <xbrli:endDate>2023-09-30</xbrli:endDate>
    </xbrli:period>
  </xbrli:context>
  <xbrli:unit id="usd">
    <xbrli:measure>iso4217:USD</xbrli:measure>
  </xbrli:unit>
  <xbrli:unit id="shares">
    <xbrli:measure>xbrli:shares</xbrli:measure>
  </xbrli:unit>
  <xbrli:unit id="pure">
    <xbrli:measure>xbrli:pure</xbrli:measure>
  </xbrli:unit>
  <xbrli:unit id="usdPerShare">
    <xbrli:divide>
      <xbrli:unitNumerator>
        <xbrli:measure>iso4217:USD</xbrli:measure>
      </xbrli:unitNumerator>
      <xbrli:unitDenominator>
        <xbrli:measure>xbrli:shares</xbrli:measure>
      </xbrli:unitDenominator>
    </xbrli:divide>
  </xbrli:unit>
  <dei:EntityRegistrantName contextRef="c2" id="f1">Apple   Inc.</dei:EntityRegistrantName>
  <us-gaap:Cash contextRef="c1" unitRef="usd" decimals="-6" id="f2">
      1234.56
  </us-gaap:Cash>
  <us-gaap:Revenues contextRef="c3" unitRef="usd" decimals="-6" id="f3">200583000000</us-gaap:Revenues>
  <us-gaap:Revenues contextRef="c4" unitRef="usd" decimals="-6" id="f4">29357000000</us-gaap:Revenues>
  <dei:EntityCommonStockSharesOutstanding contextRef="c1" unitRef="shares" decimals="-3" id="f5">15550061000</dei:EntityCommonStockSharesOutstanding>
  <us-gaap:EffectiveIncomeTaxRateContinuingOperations contextRef="c2" unitRef="pure" decimals="3" id="f6">0.147</us-gaap:EffectiveIncomeTaxRateContinuingOperations>
  <us-gaap:EarningsPerShareBasic contextRef="c2" unitRef="usdPerShare" decimals="2" id="f7">6.16</us-gaap:EarningsPerShareBasic>
  <us-gaap:IncomeTaxDisclosureTextBlock contextRef="c2" id="f8">&lt;div&gt;&lt;p&gt;Income   taxes&lt;/p&gt;&lt;p&gt;are &lt;b&gt;due&lt;/b&gt;&lt;/p&gt;&lt;/div&gt;</us-gaap:IncomeTaxDisclosureTextBlock>
  <dei:DocumentType id="f9">10-K</dei:DocumentType>
</xbrli:xbrl>
"""


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def cache(tmp_path) -> CacheLayout:
    return CacheLayout(tmp_path / "data")


@pytest.fixture
def client_config() -> EdgarClientSettings:
    return EdgarClientSettings(user_agent=TEST_USER_AGENT, max_retries=3, backoff_base=0)


@pytest.fixture
def make_client(client_config):
    """Build an EdgarClient over a FakeSession with its own rate limiter."""

    def _make(session: FakeSession, limiter: Optional[RateLimiter] = None) -> EdgarClient:
        return EdgarClient(
            session=session,
            config=client_config,
            rate_limiter=limiter or RateLimiter(client_config.max_concurrent_requests),
        )

    return _make
