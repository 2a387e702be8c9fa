"""
filing_fetcher.py — Concurrent Filing Document Fetcher

Purpose:
- Download the XBRL instance of every selected filing into
  `{root}/edgar/filings/{cid}/{accession-flat}/{doc}`.
- Run one task per filing on a thread pool; the shared rate limiter inside
  `EdgarClient` caps how many are on the network at once.
- Report per-filing results over a bounded channel drained by the caller,
  so a slow consumer applies backpressure to the workers.

Batch contract: partial success. A failing filing is logged with its
accession number and recorded in the report; the batch always completes.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from advisor.core.cache import CacheLayout
from advisor.core.logging import get_logger
from advisor.services.ingestion.clients.edgar_client import XML_CONTENT_TYPE, EdgarClient
from advisor.services.ingestion.errors import EdgarError
from advisor.services.ingestion.types import FilingDescriptor, pad_cik

logger = get_logger(__name__)

DEFAULT_MAX_WORKERS = 32
DEFAULT_CHANNEL_CAPACITY = 100
POLL_INTERVAL_SECONDS = 0.1


@dataclass
class FetchResult:
    filing: FilingDescriptor
    url: str
    path: Path
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FetchReport:
    """Successful documents keyed by path, plus every failed result."""
    documents: Dict[Path, FilingDescriptor] = field(default_factory=dict)
    failures: List[FetchResult] = field(default_factory=list)

    def record(self, result: FetchResult) -> None:
        if result.ok:
            self.documents[result.path] = result.filing
        else:
            self.failures.append(result)

    @property
    def failed_accessions(self) -> List[str]:
        return [result.filing.accession_number for result in self.failures]


class FilingFetcher:
    def __init__(
        self,
        edgar_client: Optional[EdgarClient] = None,
        cache: Optional[CacheLayout] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        channel_capacity: int = DEFAULT_CHANNEL_CAPACITY,
        show_progress: bool = False,
    ):
        self._client = edgar_client or EdgarClient()
        self._cache = cache or CacheLayout()
        self._max_workers = max_workers
        self._channel_capacity = channel_capacity
        self._show_progress = show_progress

    def document_target(self, cid: str, filing: FilingDescriptor) -> Tuple[str, Path]:
        """Archive URL and cache path of a filing's XBRL instance."""
        accession_flat = filing.accession_flat
        document = filing.xbrl_document_name
        url = self._client.document_url(cid, accession_flat, document)
        path = self._cache.document_path(cid, accession_flat, document)
        return url, path

    def fetch(self, cik, filings: Iterable[FilingDescriptor]) -> FetchReport:
        """
        Fetch every filing's document; never raises for a single filing.

        Interrupting the drain (e.g. KeyboardInterrupt) stops the workers,
        cancels queued tasks, and re-raises. Files already written stay in
        the cache and are reused next run.
        """
        cid = pad_cik(cik)
        filings = list(filings)
        report = FetchReport()
        if not filings:
            return report

        self._cache.ensure_directories()
        channel: "queue.Queue[FetchResult]" = queue.Queue(maxsize=self._channel_capacity)
        stop = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self._max_workers, len(filings))),
            thread_name_prefix="edgar-fetch",
        )
        try:
            futures = [executor.submit(self._fetch_one, cid, filing, channel, stop) for filing in filings]
            self._drain(channel, futures, len(filings), report, cid)
        except BaseException:
            stop.set()
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        logger.info(
            "Fetched %d of %d documents for CIK %s (%d failed)",
            len(report.documents),
            len(filings),
            cid,
            len(report.failures),
        )
        return report

    def _drain(
        self,
        channel: "queue.Queue[FetchResult]",
        futures: List[Future],
        total: int,
        report: FetchReport,
        cid: str,
    ) -> None:
        received = 0
        with tqdm(total=total, desc=f"CIK {cid}", unit="filing", disable=not self._show_progress) as progress:
            while received < total:
                try:
                    result = channel.get(timeout=POLL_INTERVAL_SECONDS)
                except queue.Empty:
                    if all(future.done() for future in futures) and channel.empty():
                        break
                    continue
                received += 1
                report.record(result)
                progress.update(1)

    def _fetch_one(
        self,
        cid: str,
        filing: FilingDescriptor,
        channel: "queue.Queue[FetchResult]",
        stop: threading.Event,
    ) -> None:
        if stop.is_set():
            return
        url, path = self.document_target(cid, filing)
        try:
            self._client.fetch_to_path(url, path, XML_CONTENT_TYPE)
            logger.info("Saved %s %s to %s", filing.report_type, filing.accession_number, path)
            result = FetchResult(filing=filing, url=url, path=path)
        except (EdgarError, OSError) as exc:
            logger.error("Failed to fetch filing %s from %s: %s", filing.accession_number, url, exc)
            result = FetchResult(filing=filing, url=url, path=path, error=exc)
        except Exception as exc:
            logger.exception("Unexpected error fetching filing %s from %s", filing.accession_number, url)
            result = FetchResult(filing=filing, url=url, path=path, error=exc)
        _publish(channel, result, stop)


def _publish(channel: "queue.Queue[FetchResult]", result: FetchResult, stop: threading.Event) -> bool:
    """Blocking put that gives up once the batch is stopped."""
    while not stop.is_set():
        try:
            channel.put(result, timeout=POLL_INTERVAL_SECONDS)
            return True
        except queue.Full:
            continue
    return False
