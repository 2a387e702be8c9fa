"""
Tests for the concurrent filing document fetcher.

Tests verify that:
1. A failing filing does not abort the batch (partial success)
2. In-flight requests never exceed the rate limiter cap
3. Document paths mirror the archive URL layout
4. A warm cache issues no requests
5. Interrupting the drain cancels queued work and releases every permit
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from datetime import date
from pathlib import Path

import pytest
import requests

from advisor.services.ingestion.clients.rate_limiter import RateLimiter
from advisor.services.ingestion.errors import Timeout
from advisor.services.ingestion.filing_fetcher import FetchReport, FetchResult, FilingFetcher, _publish
from advisor.services.ingestion.types import FilingDescriptor, ReportType

from conftest import APPLE_CIK, FakeResponse, FakeSession, xml_response

ARCHIVE = "https://www.sec.gov/Archives/edgar/data/"


def make_filing(i: int) -> FilingDescriptor:
    return FilingDescriptor(
        accession_number=f"0000320193-23-{i:06d}",
        filing_date=date(2023, 1, 1),
        report_date=None,
        acceptance_date_time="2023-01-01T00:00:00.000Z",
        act="34",
        report_type=ReportType.parse("10-Q"),
        file_number="001-36743",
        film_number="",
        items="",
        size=100,
        is_xbrl=True,
        is_inline_xbrl=True,
        primary_document=f"aapl-{i}.htm",
        primary_doc_description="10-Q",
    )


def document_url(filing: FilingDescriptor) -> str:
    return f"{ARCHIVE}{APPLE_CIK}/{filing.accession_flat}/{filing.xbrl_document_name}"


def serve_all(filings, delay: float = 0.0) -> FakeSession:
    return FakeSession({document_url(f): xml_response(f"<xbrl id='{f.accession_flat}'/>") for f in filings}, delay=delay)


# ============================================================================
# Partial success
# ============================================================================

def test_one_failure_does_not_abort_batch(cache, make_client, caplog):
    filings = [make_filing(i) for i in range(5)]
    session = serve_all(filings)
    session.routes[document_url(filings[2])] = FakeResponse(404, b"Not Found")

    with caplog.at_level(logging.ERROR):
        report = FilingFetcher(make_client(session), cache).fetch(APPLE_CIK, filings)

    assert len(report.documents) == 4
    assert filings[2] not in report.documents.values()
    assert report.failed_accessions == [filings[2].accession_number]
    assert any(filings[2].accession_number in record.getMessage() for record in caplog.records)
    for path in report.documents:
        assert path.exists()


def test_timed_out_document_is_one_failure(cache, make_client):
    filings = [make_filing(i) for i in range(6)]
    session = serve_all(filings)
    slow_url = document_url(filings[3])
    session.routes[slow_url] = requests.Timeout("read timed out")

    report = FilingFetcher(make_client(session), cache).fetch(APPLE_CIK, filings)

    assert len(report.documents) == 5
    assert report.failed_accessions == [filings[3].accession_number]
    assert isinstance(report.failures[0].error, Timeout)
    # Timeouts are not retried.
    assert session.urls().count(slow_url) == 1


def test_empty_batch_makes_no_requests(cache, make_client):
    session = FakeSession()

    report = FilingFetcher(make_client(session), cache).fetch(APPLE_CIK, [])

    assert report.documents == {}
    assert session.calls == []


# ============================================================================
# Concurrency and backpressure
# ============================================================================

def test_in_flight_requests_respect_cap(cache, make_client):
    filings = [make_filing(i) for i in range(200)]
    session = serve_all(filings, delay=0.005)
    limiter = RateLimiter(10)

    report = FilingFetcher(make_client(session, limiter), cache, max_workers=32).fetch(APPLE_CIK, filings)

    assert len(report.documents) == 200
    assert session.max_in_flight <= 10
    assert limiter.in_flight == 0


def test_small_channel_still_drains_everything(cache, make_client):
    filings = [make_filing(i) for i in range(25)]
    session = serve_all(filings)

    report = FilingFetcher(make_client(session), cache, max_workers=8, channel_capacity=2).fetch(APPLE_CIK, filings)

    assert len(report.documents) == 25
    assert report.failures == []


# ============================================================================
# Paths and cache reuse
# ============================================================================

def test_document_path_mirrors_archive_url(cache, make_client):
    filings = [make_filing(i) for i in range(3)]
    fetcher = FilingFetcher(make_client(serve_all(filings)), cache)

    report = fetcher.fetch(320193, filings)

    for path, filing in report.documents.items():
        url, expected_path = fetcher.document_target(APPLE_CIK, filing)
        assert path == expected_path
        assert "-" not in filing.accession_flat
        relative = path.relative_to(cache.filings_dir).as_posix()
        assert url.split("/edgar/data/", 1)[1] == relative


def test_warm_cache_issues_no_requests(cache, make_client):
    filings = [make_filing(i) for i in range(4)]
    first = FilingFetcher(make_client(serve_all(filings)), cache).fetch(APPLE_CIK, filings)

    offline = FakeSession()
    second = FilingFetcher(make_client(offline), cache).fetch(APPLE_CIK, filings)

    assert offline.calls == []
    assert second.documents == first.documents


# ============================================================================
# Interruption
# ============================================================================

def wait_until_idle(limiter: RateLimiter, session: FakeSession, deadline: float = 5.0) -> None:
    """Wait for workers still running after an interrupt to settle."""
    end = time.monotonic() + deadline
    seen = -1
    while time.monotonic() < end:
        if not limiter.in_flight and not session.in_flight and len(session.calls) == seen:
            return
        seen = len(session.calls)
        time.sleep(0.1)


def test_interrupted_drain_cancels_queued_filings(cache, make_client, monkeypatch):
    filings = [make_filing(i) for i in range(50)]
    session = serve_all(filings, delay=0.02)
    limiter = RateLimiter(2)

    def interrupt(self, result):
        raise KeyboardInterrupt

    monkeypatch.setattr(FetchReport, "record", interrupt)
    fetcher = FilingFetcher(make_client(session, limiter), cache, max_workers=4)

    with pytest.raises(KeyboardInterrupt):
        fetcher.fetch(APPLE_CIK, filings)

    wait_until_idle(limiter, session)
    assert limiter.in_flight == 0
    assert session.in_flight == 0
    assert len(session.calls) < len(filings)


def test_publish_gives_up_once_stopped():
    channel: "queue.Queue[FetchResult]" = queue.Queue(maxsize=1)
    result = FetchResult(filing=make_filing(0), url="u", path=Path("doc.xml"))
    assert _publish(channel, result, threading.Event())

    stop = threading.Event()
    stop.set()

    assert not _publish(channel, result, stop)
    assert channel.qsize() == 1
