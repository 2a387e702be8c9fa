"""
tickers.py — Ticker → CompanyId Index

Purpose:
- Load the SEC `company_tickers.json` map (cached at `{root}/edgar/tickers.json`).
- Resolve user-visible tickers to 10-digit CompanyIds and back.
- Serve prefix lookups for autocomplete collaborators.

The process-wide index is built once (see `get_ticker_index`) and is
read-only afterwards, so worker threads may share it freely.
"""

from __future__ import annotations

import json
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from advisor.core.cache import CacheLayout
from advisor.core.logging import get_logger
from advisor.services.ingestion.clients.edgar_client import JSON_CONTENT_TYPE, EdgarClient
from advisor.services.ingestion.errors import InvalidTicker
from advisor.services.ingestion.types import pad_cik

logger = get_logger(__name__)

# Alphanumerics, with one share-class separator allowed (BRK-B, BF.B).
TICKER_PATTERN = re.compile(r"[A-Z0-9]+(?:[-.][A-Z0-9]+)?")

_index_lock = threading.Lock()
_ticker_index: Optional["TickerIndex"] = None


@dataclass(frozen=True)
class TickerRecord:
    ticker: str
    name: str
    cik: str


def normalize_ticker(ticker: str) -> str:
    """
    Uppercase and validate a ticker symbol.

    Alphanumerics only, except for one share-class separator (`BRK-B`,
    `BF.B`): the SEC ticker file lists such symbols, so rejecting every
    non-alphanumeric character would make them unreachable.
    """
    symbol = (ticker or "").strip().upper()
    if not TICKER_PATTERN.fullmatch(symbol):
        raise InvalidTicker(ticker, "tickers must be alphanumeric, with at most one share-class separator")
    return symbol


class TickerIndex:
    """
    Immutable mapping `ticker -> TickerRecord`, iterable in source order.
    """

    def __init__(self, records: List[TickerRecord]):
        self._records = list(records)
        self._by_ticker: Dict[str, TickerRecord] = {}
        self._by_cik: Dict[str, TickerRecord] = {}
        for record in self._records:
            self._by_ticker.setdefault(record.ticker.upper(), record)
            # First listed symbol wins for companies with several share classes.
            self._by_cik.setdefault(record.cik, record)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TickerIndex":
        """
        Build from the SEC payload: `{"0": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."}, ...}`.
        """
        records = []
        for row in payload.values():
            records.append(
                TickerRecord(
                    ticker=str(row["ticker"]).upper(),
                    name=str(row.get("title", "")),
                    cik=pad_cik(row["cik_str"]),
                )
            )
        return cls(records)

    @classmethod
    def load(cls, edgar_client: Optional[EdgarClient] = None, cache: Optional[CacheLayout] = None) -> "TickerIndex":
        """Fetch (or reuse) the cached ticker file and build the index."""
        client = edgar_client or EdgarClient()
        cache = cache or CacheLayout()
        path = client.fetch_to_path(client.company_tickers_url(), cache.tickers_path, JSON_CONTENT_TYPE)
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        index = cls.from_payload(payload)
        logger.info("Loaded %d tickers from %s", len(index), path)
        return index

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #
    def lookup(self, ticker: str) -> TickerRecord:
        """
        Raises:
            InvalidTicker if the ticker is malformed or unknown.
        """
        symbol = normalize_ticker(ticker)
        record = self._by_ticker.get(symbol)
        if record is None:
            raise InvalidTicker(ticker)
        return record

    def cik_for(self, ticker: str) -> str:
        return self.lookup(ticker).cik

    def ticker_for_cik(self, cik) -> Optional[str]:
        record = self._by_cik.get(pad_cik(cik))
        return record.ticker if record else None

    def complete(self, prefix: str, limit: Optional[int] = None) -> List[TickerRecord]:
        """Records whose ticker starts with `prefix` (case-insensitive), in source order."""
        wanted = prefix.strip().upper()
        matches = [record for record in self._records if record.ticker.startswith(wanted)]
        return matches[:limit] if limit is not None else matches

    def __iter__(self) -> Iterator[TickerRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, ticker: object) -> bool:
        return isinstance(ticker, str) and ticker.strip().upper() in self._by_ticker


def get_ticker_index(edgar_client: Optional[EdgarClient] = None, cache: Optional[CacheLayout] = None) -> TickerIndex:
    """Return the process-wide index, loading it on first use."""
    global _ticker_index
    with _index_lock:
        if _ticker_index is None:
            _ticker_index = TickerIndex.load(edgar_client, cache)
        return _ticker_index


def reset_ticker_index() -> None:
    """Forget the process-wide index (tests, or after the cache root changes)."""
    global _ticker_index
    with _index_lock:
        _ticker_index = None
