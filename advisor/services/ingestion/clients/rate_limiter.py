"""
rate_limiter.py — Process-wide cap on in-flight EDGAR requests.

The limiter does not pace time; it bounds concurrency. Callers hold a permit
from before the request is sent until the response body has been read:

    with limiter.permit():
        response = session.get(url)
        body = response.content
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from advisor.core.logging import get_logger
from advisor.services.ingestion.errors import Timeout

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENT = 10

_global_lock = threading.Lock()
_global_limiter: Optional["RateLimiter"] = None


class RateLimiter:
    """Counting semaphore guarding outbound archive requests."""

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._semaphore = threading.BoundedSemaphore(max_concurrent)
        self._count_lock = threading.Lock()
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        with self._count_lock:
            return self._in_flight

    @contextmanager
    def permit(self, timeout: Optional[float] = None, url: str = "") -> Iterator[None]:
        """
        Hold one permit for the duration of the block.

        A waiter that gives up (timeout) never holds a slot; a holder always
        releases, whatever way the block exits.
        """
        if not self._semaphore.acquire(timeout=timeout):
            raise Timeout(url or "<rate limiter permit>")
        with self._count_lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._count_lock:
                self._in_flight -= 1
            self._semaphore.release()

    @classmethod
    def configure(cls, max_concurrent: int) -> "RateLimiter":
        """
        Set the shared limiter's cap. Call once at startup, before any client
        is built; replacing a limiter with permits outstanding is refused.
        """
        global _global_limiter
        with _global_lock:
            current = _global_limiter
            if current is not None and current.max_concurrent == max_concurrent:
                return current
            if current is not None and current.in_flight:
                raise RuntimeError(
                    f"Cannot resize the EDGAR rate limiter while {current.in_flight} requests are in flight"
                )
            _global_limiter = cls(max_concurrent)
            return _global_limiter

    @classmethod
    def edgar(cls, max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> "RateLimiter":
        """
        Return the shared limiter, creating it on first use.

        The cap is fixed by whoever creates it (or by `configure`). A later
        request for a different cap gets the existing limiter and a warning.
        """
        global _global_limiter
        with _global_lock:
            if _global_limiter is None:
                _global_limiter = cls(max_concurrent)
            elif _global_limiter.max_concurrent != max_concurrent:
                logger.warning(
                    "EDGAR rate limiter already capped at %d; ignoring requested cap %d (use RateLimiter.configure)",
                    _global_limiter.max_concurrent,
                    max_concurrent,
                )
            return _global_limiter
