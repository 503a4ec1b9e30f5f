"""
Nyx - Stealth Payment Scanner

Finds payments addressed to a meta-address by reading announcement
memos from an external ledger.

Handles:
- Pagination (cursor based) up to a transaction limit
- Page caching keyed by (address range, cursor) with TTL and size bound
- Retry with exponential backoff on transient ledger errors
- Cancellation between pages (partial result is returned)

The ledger itself is injected as a LedgerSource.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from nyx.config import ScannerConfig
from nyx.core.types import EphemeralKey, Point, StealthMetaAddress, StealthPaymentInfo
from nyx.errors import ErrorKind, ScannerError, StealthAddressError, TransientLedgerError
from nyx.stealth.address import StealthCandidate, scan_transactions
from nyx.stealth.memo import parse_ephemeral_key_memo

logger = logging.getLogger("nyx.scanner")


# ============================================================================
# LEDGER INTERFACE
# ============================================================================

@dataclass(frozen=True)
class LedgerTransaction:
    """Transaction as seen by the scanner."""
    signature: str
    memos: Tuple[str, ...] = ()
    destinations: Tuple[bytes, ...] = ()
    slot: int = 0
    block_time: Optional[float] = None


@dataclass(frozen=True)
class LedgerPage:
    transactions: Tuple[LedgerTransaction, ...] = ()
    next_cursor: Optional[str] = None


class LedgerSource(Protocol):
    """Paginated read access to ledger transactions."""

    def fetch_page(self, address_range: str, cursor: Optional[str], limit: int) -> LedgerPage:
        """
        Fetch up to limit transactions touching address_range after cursor.

        Raises:
            TransientLedgerError: safe to retry
        """
        ...


@dataclass
class ScanResult:
    payments: List[StealthPaymentInfo] = field(default_factory=list)
    ephemeral_keys: List[EphemeralKey] = field(default_factory=list)
    transactions_scanned: int = 0
    pages_fetched: int = 0
    cache_hits: int = 0
    next_cursor: Optional[str] = None
    # Transactions of the page at next_cursor already processed
    next_offset: int = 0
    cancelled: bool = False

    @property
    def complete(self) -> bool:
        return not self.cancelled and self.next_cursor is None and self.next_offset == 0


# ============================================================================
# PAGE CACHE
# ============================================================================

class PageCache:
    """
    Thread-safe TTL cache of ledger pages.

    Cache: (address_range, cursor) -> (page, expiry_time), LRU-bounded.
    """

    def __init__(
        self,
        ttl_sec: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_sec = ttl_sec
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Tuple[str, Optional[str]], Tuple[LedgerPage, float]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Tuple[str, Optional[str]]) -> Optional[LedgerPage]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                page, expiry = entry
                if self._clock() < expiry:
                    self._entries.move_to_end(key)
                    self.hits += 1
                    return page
                del self._entries[key]
            self.misses += 1
            return None

    def put(self, key: Tuple[str, Optional[str]], page: LedgerPage) -> None:
        with self._lock:
            self._entries[key] = (page, self._clock() + self.ttl_sec)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, float]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / lookups if lookups else 0.0,
            }


# ============================================================================
# SCANNER
# ============================================================================

class PaymentScanner:
    """
    Scans ledger pages for stealth payments.

    Only successfully fetched pages are cached. A partial result resumes
    from (next_cursor, next_offset), so a page cut by max_transactions is
    finished from the cache instead of skipped.
    """

    def __init__(
        self,
        source: LedgerSource,
        config: Optional[ScannerConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.config = (config or ScannerConfig()).ensure_valid()
        self._sleep = sleep
        self._cache = PageCache(self.config.cache_ttl_sec, self.config.cache_max_entries, clock)

    def _fetch_with_retry(self, address_range: str, cursor: Optional[str]) -> LedgerPage:
        delay = self.config.retry_delay_sec
        last_error: Optional[Exception] = None

        for attempt in range(self.config.retry_count):
            try:
                return self.source.fetch_page(address_range, cursor, self.config.batch_size)
            except TransientLedgerError as e:
                last_error = e
                logger.warning(
                    f"Ledger fetch failed for {address_range} (attempt {attempt + 1}/"
                    f"{self.config.retry_count}): {e.message}"
                )
                if attempt < self.config.retry_count - 1:
                    self._sleep(delay)
                    delay *= self.config.backoff_factor

        raise ScannerError(
            "Ledger fetch failed after retries",
            ErrorKind.SCAN_RETRIES_EXHAUSTED,
            {"address_range": address_range, "cursor": cursor, "attempts": self.config.retry_count},
        ) from last_error

    def _get_page(self, address_range: str, cursor: Optional[str], result: ScanResult) -> LedgerPage:
        key = (address_range, cursor)
        page = self._cache.get(key)
        if page is not None:
            result.cache_hits += 1
            return page
        page = self._fetch_with_retry(address_range, cursor)
        self._cache.put(key, page)
        return page

    def _walk(
        self,
        address_range: str,
        cancel_event: Optional[threading.Event],
        on_transaction: Callable[[LedgerTransaction], None],
        cursor: Optional[str] = None,
        offset: int = 0,
    ) -> ScanResult:
        if offset < 0:
            raise ScannerError(
                "Resume offset cannot be negative", ErrorKind.INVALID_PARAMETER, {"offset": offset}
            )
        result = ScanResult(next_cursor=cursor, next_offset=offset)

        while True:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info(f"Scan of {address_range} cancelled after {result.pages_fetched} pages")
                break

            page = self._get_page(address_range, cursor, result)
            result.pages_fetched += 1

            pending = page.transactions[offset:]
            remaining = self.config.max_transactions - result.transactions_scanned
            for tx in pending[:remaining]:
                on_transaction(tx)
                result.transactions_scanned += 1

            if len(pending) > remaining:
                result.next_cursor = cursor
                result.next_offset = offset + remaining
                break

            cursor = page.next_cursor
            offset = 0
            result.next_cursor = cursor
            result.next_offset = 0
            if cursor is None or result.transactions_scanned >= self.config.max_transactions:
                break

        return result

    def fetch_ephemeral_keys(
        self,
        address_range: str,
        cancel_event: Optional[threading.Event] = None,
        cursor: Optional[str] = None,
        offset: int = 0,
    ) -> ScanResult:
        """Collect announced ephemeral keys without checking ownership."""
        keys: List[EphemeralKey] = []

        def collect(tx: LedgerTransaction) -> None:
            for memo in tx.memos:
                ephemeral = parse_ephemeral_key_memo(memo)
                if ephemeral is not None:
                    keys.append(EphemeralKey(
                        public_key=ephemeral,
                        transaction_signature=tx.signature,
                        created_at=tx.block_time or 0.0,
                    ))

        result = self._walk(address_range, cancel_event, collect, cursor, offset)
        result.ephemeral_keys = keys
        return result

    def scan(
        self,
        meta_address: StealthMetaAddress,
        address_range: str,
        cancel_event: Optional[threading.Event] = None,
        cursor: Optional[str] = None,
        offset: int = 0,
    ) -> ScanResult:
        """
        Find payments for meta_address.

        Args:
            meta_address: Recipient meta-address (view private key required)
            address_range: Ledger address range to read
            cancel_event: Set to stop after the current page
            cursor: Resume point from a previous partial result (next_cursor)
            offset: Transactions to skip on the resumed page (next_offset)

        Returns:
            ScanResult; cancelled=True with partial payments if cancelled
        """
        if meta_address.view_private is None:
            raise StealthAddressError(
                "Meta-address has no view private key", ErrorKind.MISSING_PRIVATE_KEY
            )
        keys: List[EphemeralKey] = []
        payments: List[StealthPaymentInfo] = []

        def check(tx: LedgerTransaction) -> None:
            candidates = []
            for memo in tx.memos:
                ephemeral = parse_ephemeral_key_memo(memo)
                if ephemeral is None:
                    continue
                keys.append(EphemeralKey(
                    public_key=ephemeral,
                    transaction_signature=tx.signature,
                    created_at=tx.block_time or 0.0,
                ))
                for destination in tx.destinations:
                    if len(destination) != 32:
                        continue
                    candidates.append(StealthCandidate(
                        ephemeral_public_key=ephemeral,
                        address=Point(bytes(destination)),
                        transaction_signature=tx.signature,
                    ))
            if candidates:
                payments.extend(scan_transactions(candidates, meta_address))

        result = self._walk(address_range, cancel_event, check, cursor, offset)
        result.ephemeral_keys = keys
        result.payments = payments
        logger.info(
            f"Scanned {result.transactions_scanned} transactions in {address_range}: "
            f"{len(payments)} payments found"
        )
        return result

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Scanner cache cleared")

    def cache_stats(self) -> Dict[str, float]:
        return self._cache.stats()
