"""
edgar_client.py — HTTP cache fetcher for SEC EDGAR endpoints.

Responsibilities:
- Fetch a URL to a target path on disk, reusing any complete existing file
- Verify completeness (Content-Length, JSON tail) before and after writing
- Hold a rate-limiter permit for every request attempt
- Retry throttled/server-error responses with exponential backoff

The client is sync/blocking; concurrency comes from the worker threads that
share it (see `FilingFetcher`).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import requests
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from advisor.core.config import settings
from advisor.core.logging import get_logger
from advisor.services.ingestion.clients.rate_limiter import RateLimiter
from advisor.services.ingestion.errors import FetchError, RemoteError, Timeout, TruncatedResponse


logger = get_logger(__name__)


JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"

SEC_BASE_HEADERS = {
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

RETRYABLE_STATUSES = frozenset({403, 429, 500, 502, 503, 504})

SUBMISSIONS_PATH_TEMPLATE = "/submissions/{name}"
DOCUMENT_PATH_TEMPLATE = "/Archives/edgar/data/{cid}/{accession_flat}/{document}"
COMPANY_TICKER_PATH = "/files/company_tickers.json"


class ThrottledResponse(RemoteError):
    """Retryable status (throttling or transient server error)."""


@dataclass(frozen=True)
class EdgarClientSettings:
    """
    EdgarClient tunables. Only the user agent comes from the environment.
    """
    user_agent: str
    max_concurrent_requests: int = 10
    timeout_seconds: float = 30
    connect_timeout_seconds: float = 10
    max_retries: int = 3
    backoff_base: float = 0.6
    submissions_base_url: str = "https://data.sec.gov"
    archive_base_url: str = "https://www.sec.gov"

    @classmethod
    def from_app_settings(cls) -> "EdgarClientSettings":
        return cls(user_agent=settings.USER_AGENT)


class EdgarClient:
    """
    Thin wrapper over `requests.Session` that materializes EDGAR responses on disk.

    Every attempt acquires one permit from the rate limiter and releases it
    once the body has been read, so the in-flight cap holds across retries.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        config: Optional[EdgarClientSettings] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self._session = session or requests.Session()
        self._config = config or EdgarClientSettings.from_app_settings()
        self._rate_limiter = rate_limiter or RateLimiter.edgar(self._config.max_concurrent_requests)
        self._session.headers.update({**SEC_BASE_HEADERS, "User-Agent": self._config.user_agent})
        self._retrying = Retrying(
            stop=stop_after_attempt(max(self._config.max_retries, 1)),
            wait=wait_exponential(multiplier=self._config.backoff_base, max=5),
            retry=retry_if_exception_type((ThrottledResponse, requests.ConnectionError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    @property
    def config(self) -> EdgarClientSettings:
        return self._config

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    # --------------------------------------------------------------------- #
    # URL builders
    # --------------------------------------------------------------------- #
    def submissions_url(self, name: str) -> str:
        """URL of a submissions page, e.g. `CIK0000320193.json`."""
        return self._config.submissions_base_url + SUBMISSIONS_PATH_TEMPLATE.format(name=name)

    def document_url(self, cid: str, accession_flat: str, document: str) -> str:
        return self._config.archive_base_url + DOCUMENT_PATH_TEMPLATE.format(
            cid=cid, accession_flat=accession_flat, document=document
        )

    def company_tickers_url(self) -> str:
        return self._config.archive_base_url + COMPANY_TICKER_PATH

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def fetch_to_path(
        self,
        url: str,
        path: Union[str, Path],
        content_type: str = JSON_CONTENT_TYPE,
        force: bool = False,
    ) -> Path:
        """
        Ensure `path` holds the complete body of `url`.

        An existing non-empty file is returned without network I/O unless
        `force` is set. When a forced or fresh fetch fails and a complete
        file is already present, that file is used instead.

        Raises:
            RemoteError, TruncatedResponse, Timeout, FetchError
        """
        path = Path(path)
        if not force and _is_non_empty(path):
            logger.debug("Cache hit %s", path)
            return path

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            body = self._download(url, content_type)
            _write_atomic(path, body, url)
        except FetchError as exc:
            if path.exists() and self._existing_is_complete(path, content_type):
                logger.warning("Fetch of %s failed (%s); falling back to cached %s", url, exc, path)
                return path
            raise
        logger.debug("Saved %s (%d bytes)", path, len(body))
        return path

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #
    def _download(self, url: str, content_type: str) -> bytes:
        headers = {
            "User-Agent": self._config.user_agent,
            "Accept": content_type,
            "Content-Type": content_type,
            "Accept-Encoding": SEC_BASE_HEADERS["Accept-Encoding"],
        }
        try:
            response = self._retrying.copy()(self._perform_request, url, headers)
        except requests.ConnectionError as exc:
            raise FetchError(f"Connection to {url} failed: {exc}") from exc
        except requests.RequestException as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc

        body = response.content
        _check_length(url, response.headers, body)
        if _is_json(content_type):
            _check_json(url, body)
        return body

    def _perform_request(self, url: str, headers: Dict[str, str]) -> requests.Response:
        with self._rate_limiter.permit(url=url):
            logger.debug("Requesting %s", url)
            try:
                response = self._session.get(
                    url,
                    headers=headers,
                    timeout=(self._config.connect_timeout_seconds, self._config.timeout_seconds),
                )
                # Body is consumed while the permit is held.
                response.content
            except requests.Timeout as exc:
                raise Timeout(url) from exc

        logger.debug("Response %s for %s", response.status_code, url)
        if response.status_code in RETRYABLE_STATUSES:
            logger.warning("EDGAR request throttled or server error (status %s) for %s", response.status_code, url)
            raise ThrottledResponse(url, response.status_code)
        if not 200 <= response.status_code < 300:
            raise RemoteError(url, response.status_code)
        return response

    def _existing_is_complete(self, path: Path, content_type: str) -> bool:
        try:
            body = path.read_bytes()
        except OSError:
            return False
        if not body:
            return False
        if _is_json(content_type):
            try:
                _check_json(str(path), body)
            except TruncatedResponse:
                return False
        return True


# ---------------------------------------------------------------------- #
# Completeness checks
# ---------------------------------------------------------------------- #
def _is_non_empty(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def _is_json(content_type: str) -> bool:
    return "json" in content_type.lower()


def _check_length(url: str, headers, body: bytes) -> None:
    advertised = headers.get("Content-Length")
    # requests transparently decodes gzip/deflate, so the header then counts
    # compressed bytes.
    if advertised is None or headers.get("Content-Encoding"):
        return
    try:
        expected = int(advertised)
    except ValueError:
        return
    logger.debug("Content length for %s: expected %d, received %d", url, expected, len(body))
    if expected != len(body):
        raise TruncatedResponse(url, f"expected {expected} bytes, received {len(body)}")


def _check_json(url: str, body: bytes) -> None:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TruncatedResponse(url, f"body is not UTF-8 ({exc})") from exc
    if not text.strip().endswith("}"):
        raise TruncatedResponse(url, "JSON body does not end with '}'")
    try:
        json.loads(text)
    except ValueError as exc:
        raise TruncatedResponse(url, f"JSON body does not parse ({exc})") from exc


def _write_atomic(path: Path, body: bytes, url: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(body)
        os.replace(tmp_name, path)
    except OSError as exc:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise FetchError(f"Could not write {path}: {exc}") from exc

    written = path.stat().st_size
    if written != len(body):
        raise TruncatedResponse(url, f"wrote {written} bytes to {path}, received {len(body)}")
