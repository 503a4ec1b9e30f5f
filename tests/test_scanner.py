"""
Nyx Payment Scanner Tests
"""

import threading

import pytest

from nyx.config import ScannerConfig
from nyx.errors import ConfigError, ErrorKind, ScannerError, StealthAddressError, TransientLedgerError
from nyx.stealth import (
    LedgerPage,
    LedgerTransaction,
    PageCache,
    PaymentScanner,
    create_ephemeral_key_memo,
    generate_stealth_address,
)

from conftest import FakeClock, FakeLedger


def _payment_tx(meta, signature, slot=0):
    stealth, eph = generate_stealth_address(meta.public())
    return LedgerTransaction(
        signature=signature,
        memos=(create_ephemeral_key_memo(eph.public_key),),
        destinations=(stealth.address.data,),
        slot=slot,
        block_time=1000.0 + slot,
    )


def _noise_tx(signature):
    return LedgerTransaction(signature=signature, memos=("hello",), destinations=(b"\x01" * 32,))


@pytest.fixture
def ledger_txs(meta_address, other_meta_address):
    return [
        _payment_tx(meta_address, "tx0", 0),
        _noise_tx("tx1"),
        _payment_tx(other_meta_address, "tx2", 2),
        _payment_tx(meta_address, "tx3", 3),
        _noise_tx("tx4"),
    ]


class TestScan:
    """Tests for full scans."""

    def test_finds_payments_across_pages(self, meta_address, ledger_txs, fake_ledger_factory, fast_scanner_config):
        """Test payments on different pages are all found."""
        ledger = fake_ledger_factory(ledger_txs, page_size=2)
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=lambda s: None)
        result = scanner.scan(meta_address, "range-a")

        assert result.complete
        assert result.transactions_scanned == 5
        assert result.pages_fetched == 3
        assert [p.transaction_signature for p in result.payments] == ["tx0", "tx3"]
        assert len(result.ephemeral_keys) == 3

    def test_ephemeral_keys_only(self, ledger_txs, fake_ledger_factory, fast_scanner_config):
        """Test ephemeral key collection without ownership checks."""
        ledger = fake_ledger_factory(ledger_txs)
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=lambda s: None)
        result = scanner.fetch_ephemeral_keys("range-a")
        assert [k.transaction_signature for k in result.ephemeral_keys] == ["tx0", "tx2", "tx3"]
        assert result.payments == []

    def test_requires_view_key(self, meta_address, fake_ledger_factory):
        """Test scanning with a public-only meta-address raises."""
        scanner = PaymentScanner(fake_ledger_factory([]))
        with pytest.raises(StealthAddressError):
            scanner.scan(meta_address.public(), "range-a")

    def test_max_transactions(self, meta_address, ledger_txs, fake_ledger_factory):
        """Test the scan stops at the transaction limit mid-page."""
        config = ScannerConfig(batch_size=2, max_transactions=3)
        scanner = PaymentScanner(fake_ledger_factory(ledger_txs), config, sleep=lambda s: None)
        result = scanner.scan(meta_address, "range-a")
        assert result.transactions_scanned == 3
        assert result.next_cursor == "2"
        assert result.next_offset == 1
        assert not result.complete

    def test_resume_from_cursor(self, meta_address, ledger_txs, fake_ledger_factory):
        """Test a partial scan can be resumed."""
        config = ScannerConfig(batch_size=2, max_transactions=2)
        scanner = PaymentScanner(fake_ledger_factory(ledger_txs), config, sleep=lambda s: None)
        first = scanner.scan(meta_address, "range-a")
        second = scanner.scan(meta_address, "range-a", cursor=first.next_cursor)
        assert first.next_offset == 0
        assert [p.transaction_signature for p in first.payments] == ["tx0"]
        assert [p.transaction_signature for p in second.payments] == ["tx3"]

    def test_resume_mid_page(self, meta_address, ledger_txs, fake_ledger_factory):
        """Test resuming after a mid-page stop skips and repeats nothing."""
        config = ScannerConfig(batch_size=2, max_transactions=3)
        ledger = fake_ledger_factory(ledger_txs, page_size=2)
        scanner = PaymentScanner(ledger, config, sleep=lambda s: None)

        first = scanner.scan(meta_address, "range-a")
        second = scanner.scan(
            meta_address, "range-a", cursor=first.next_cursor, offset=first.next_offset
        )

        assert first.transactions_scanned + second.transactions_scanned == 5
        assert [p.transaction_signature for p in first.payments] == ["tx0"]
        assert [p.transaction_signature for p in second.payments] == ["tx3"]
        assert second.complete
        # The cut page is served from the cache on resume
        assert second.cache_hits == 1
        assert [c[1] for c in ledger.calls] == [None, "2", "4"]

    def test_resume_within_first_page(self, ledger_txs, fake_ledger_factory):
        """Test a stop inside the first page is not reported complete."""
        config = ScannerConfig(batch_size=4, max_transactions=1)
        scanner = PaymentScanner(fake_ledger_factory(ledger_txs, page_size=4), config)

        first = scanner.fetch_ephemeral_keys("range-a")
        assert first.next_cursor is None
        assert first.next_offset == 1
        assert not first.complete

        signatures = [k.transaction_signature for k in first.ephemeral_keys]
        result = first
        while not result.complete:
            result = scanner.fetch_ephemeral_keys(
                "range-a", cursor=result.next_cursor, offset=result.next_offset
            )
            signatures.extend(k.transaction_signature for k in result.ephemeral_keys)
        assert signatures == ["tx0", "tx2", "tx3"]

    def test_negative_offset_rejected(self, meta_address, fake_ledger_factory, fast_scanner_config):
        """Test a negative resume offset raises."""
        scanner = PaymentScanner(fake_ledger_factory([]), fast_scanner_config)
        with pytest.raises(ScannerError) as exc:
            scanner.scan(meta_address, "r", offset=-1)
        assert exc.value.kind == ErrorKind.INVALID_PARAMETER

    @pytest.mark.parametrize("overrides", [
        {"retry_count": 0},
        {"batch_size": 0},
        {"max_transactions": 0},
        {"backoff_factor": 0.5},
        {"cache_max_entries": 0},
    ])
    def test_invalid_config_rejected(self, fake_ledger_factory, overrides):
        """Test the scanner refuses an invalid configuration up front."""
        with pytest.raises(ConfigError) as exc:
            PaymentScanner(fake_ledger_factory([]), ScannerConfig(**overrides))
        assert exc.value.kind == ErrorKind.INVALID_CONFIG
        assert exc.value.context["errors"]


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_before_start(self, meta_address, ledger_txs, fake_ledger_factory, fast_scanner_config):
        """Test a pre-set event returns an empty, cancelled result."""
        ledger = fake_ledger_factory(ledger_txs)
        cancel = threading.Event()
        cancel.set()
        result = PaymentScanner(ledger, fast_scanner_config).scan(meta_address, "r", cancel_event=cancel)
        assert result.cancelled
        assert result.pages_fetched == 0
        assert ledger.calls == []

    def test_cancel_mid_scan(self, meta_address, ledger_txs, fast_scanner_config):
        """Test cancelling after the first page keeps partial results."""
        cancel = threading.Event()

        class CancellingLedger:
            def __init__(self, inner):
                self.inner = inner

            def fetch_page(self, address_range, cursor, limit):
                page = self.inner.fetch_page(address_range, cursor, limit)
                cancel.set()
                return page

        scanner = PaymentScanner(CancellingLedger(FakeLedger(ledger_txs)), fast_scanner_config)
        result = scanner.scan(meta_address, "r", cancel_event=cancel)

        assert result.cancelled
        assert result.pages_fetched == 1
        assert result.next_cursor == "2"
        assert [p.transaction_signature for p in result.payments] == ["tx0"]


class TestRetry:
    """Tests for retry with backoff."""

    def test_transient_failure_recovers(self, meta_address, ledger_txs, fake_ledger_factory,
                                        fast_scanner_config, recorded_sleeps):
        """Test transient errors are retried with exponential backoff."""
        ledger = fake_ledger_factory(ledger_txs)
        ledger.failures["2"] = 2
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=recorded_sleeps)
        result = scanner.scan(meta_address, "r")

        assert result.complete
        assert recorded_sleeps.delays == [0.5, 1.0]
        assert len(result.payments) == 2

    def test_retries_exhausted(self, meta_address, ledger_txs, fake_ledger_factory,
                               fast_scanner_config, recorded_sleeps):
        """Test persistent failure raises SCAN_RETRIES_EXHAUSTED."""
        ledger = fake_ledger_factory(ledger_txs)
        ledger.failures[None] = 10
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=recorded_sleeps)

        with pytest.raises(ScannerError) as exc:
            scanner.scan(meta_address, "r")
        assert exc.value.kind == ErrorKind.SCAN_RETRIES_EXHAUSTED
        assert isinstance(exc.value.__cause__, TransientLedgerError)
        assert len(ledger.calls) == 3
        assert recorded_sleeps.delays == [0.5, 1.0]

    def test_non_transient_propagates(self, meta_address, fast_scanner_config):
        """Test non-transient errors are not retried."""
        class BrokenLedger:
            calls = 0

            def fetch_page(self, address_range, cursor, limit):
                BrokenLedger.calls += 1
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            PaymentScanner(BrokenLedger(), fast_scanner_config).scan(meta_address, "r")
        assert BrokenLedger.calls == 1


class TestCache:
    """Tests for page caching."""

    def test_second_scan_uses_cache(self, meta_address, ledger_txs, fake_ledger_factory, fast_scanner_config):
        """Test repeated scans hit the cache instead of the ledger."""
        ledger = fake_ledger_factory(ledger_txs)
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=lambda s: None)
        scanner.scan(meta_address, "r")
        calls = len(ledger.calls)

        result = scanner.scan(meta_address, "r")
        assert len(ledger.calls) == calls
        assert result.cache_hits == 3
        assert scanner.cache_stats()["hits"] == 3

    def test_clear_cache(self, meta_address, ledger_txs, fake_ledger_factory, fast_scanner_config):
        """Test clearing forces refetch."""
        ledger = fake_ledger_factory(ledger_txs)
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=lambda s: None)
        scanner.scan(meta_address, "r")
        scanner.clear_cache()
        scanner.scan(meta_address, "r")
        assert len(ledger.calls) == 6
        assert scanner.cache_stats()["size"] == 3

    def test_failed_page_not_cached(self, meta_address, ledger_txs, fake_ledger_factory,
                                    fast_scanner_config, recorded_sleeps):
        """Test a failed fetch leaves nothing in the cache."""
        ledger = fake_ledger_factory(ledger_txs)
        ledger.failures[None] = 3
        scanner = PaymentScanner(ledger, fast_scanner_config, sleep=recorded_sleeps)
        with pytest.raises(ScannerError):
            scanner.scan(meta_address, "r")
        assert scanner.cache_stats()["size"] == 0

        result = scanner.scan(meta_address, "r")
        assert result.complete


class TestPageCache:
    """Tests for the TTL/LRU cache."""

    def test_ttl_expiry(self):
        """Test entries expire after the TTL."""
        clock = FakeClock(0.0)
        cache = PageCache(ttl_sec=10, max_entries=4, clock=clock)
        page = LedgerPage()
        cache.put(("r", None), page)
        assert cache.get(("r", None)) is page
        clock.advance(10)
        assert cache.get(("r", None)) is None
        assert cache.stats()["size"] == 0

    def test_lru_eviction(self):
        """Test the least recently used entry is evicted."""
        cache = PageCache(ttl_sec=100, max_entries=2, clock=FakeClock(0.0))
        cache.put(("r", "a"), LedgerPage())
        cache.put(("r", "b"), LedgerPage())
        cache.get(("r", "a"))
        cache.put(("r", "c"), LedgerPage())
        assert cache.get(("r", "a")) is not None
        assert cache.get(("r", "b")) is None

    def test_keys_distinguish_range(self):
        """Test different address ranges do not share entries."""
        cache = PageCache(ttl_sec=100, max_entries=4, clock=FakeClock(0.0))
        cache.put(("r1", None), LedgerPage())
        assert cache.get(("r2", None)) is None
        stats = cache.stats()
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.0
