"""
Nyx Test Fixtures
"""

import pytest
from typing import Dict, List, Optional, Tuple

from nyx.config import PrivacyConfig, ScannerConfig
from nyx.core.types import Keypair
from nyx.crypto import elgamal
from nyx.errors import TransientLedgerError
from nyx.stealth import generate_stealth_meta_address
from nyx.stealth.scanner import LedgerPage, LedgerTransaction
from nyx.viewing import MemoryViewingKeyStore, ViewingKeyManager

# Small decryption bound keeps the baby-step table tiny in tests
TEST_BOUND = 2**20


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLedger:
    """
    In-memory paginated ledger.

    failures maps a cursor to how many transient errors to raise before
    serving that page.
    """

    def __init__(self, transactions: List[LedgerTransaction], page_size: int = 2):
        self.transactions = transactions
        self.page_size = page_size
        self.failures: Dict[Optional[str], int] = {}
        self.calls: List[Tuple[str, Optional[str], int]] = []

    def fetch_page(self, address_range: str, cursor: Optional[str], limit: int) -> LedgerPage:
        self.calls.append((address_range, cursor, limit))
        if self.failures.get(cursor, 0) > 0:
            self.failures[cursor] -= 1
            raise TransientLedgerError("ledger unavailable")

        start = int(cursor) if cursor else 0
        size = min(self.page_size, limit)
        chunk = self.transactions[start:start + size]
        end = start + len(chunk)
        next_cursor = str(end) if end < len(self.transactions) else None
        return LedgerPage(transactions=tuple(chunk), next_cursor=next_cursor)


@pytest.fixture
def owner_seed() -> bytes:
    """Deterministic owner signing seed."""
    return bytes([i % 256 for i in range(32)])


@pytest.fixture
def keypair() -> Keypair:
    """Random ElGamal keypair."""
    return elgamal.generate_keypair()


@pytest.fixture
def other_keypair() -> Keypair:
    return elgamal.generate_keypair()


@pytest.fixture
def meta_address():
    """Recipient meta-address with private keys."""
    return generate_stealth_meta_address()


@pytest.fixture
def other_meta_address():
    return generate_stealth_meta_address()


@pytest.fixture
def test_config() -> PrivacyConfig:
    config = PrivacyConfig()
    config.elgamal.max_decryptable_amount = TEST_BOUND
    return config


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryViewingKeyStore:
    return MemoryViewingKeyStore()


@pytest.fixture
def manager(owner_seed, store, test_config, clock) -> ViewingKeyManager:
    """Owner-side manager with fake clock and memory store."""
    return ViewingKeyManager(owner_seed=owner_seed, store=store, config=test_config, clock=clock)


@pytest.fixture
def auditor_manager(store, test_config, clock) -> ViewingKeyManager:
    """Auditor-side manager (no owner seed) sharing the same store."""
    return ViewingKeyManager(store=store, config=test_config, clock=clock)


@pytest.fixture
def auditor_keypair() -> Keypair:
    return elgamal.generate_keypair()


@pytest.fixture
def account() -> bytes:
    return bytes([7] * 32)


@pytest.fixture
def other_account() -> bytes:
    return bytes([9] * 32)


@pytest.fixture
def fast_scanner_config() -> ScannerConfig:
    return ScannerConfig(batch_size=2, retry_count=3, retry_delay_sec=0.5, backoff_factor=2.0)


@pytest.fixture
def fake_ledger_factory():
    def factory(transactions, page_size=2):
        return FakeLedger(transactions, page_size)
    return factory


@pytest.fixture
def recorded_sleeps():
    """Sleep replacement that records delays."""
    delays: List[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep
