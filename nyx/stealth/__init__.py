"""
Nyx stealth addresses: derivation, announcement memos, payment scanning.
"""

from nyx.stealth.address import (
    StealthCandidate,
    generate_stealth_meta_address,
    generate_stealth_address,
    is_transaction_for_me,
    derive_stealth_spending_key,
    scan_transactions,
    encode_meta_address,
    decode_meta_address,
)
from nyx.stealth.memo import (
    MemoAnnouncement,
    create_ephemeral_key_memo,
    parse_memo,
    parse_ephemeral_key_memo,
)
from nyx.stealth.scanner import (
    LedgerTransaction,
    LedgerPage,
    LedgerSource,
    ScanResult,
    PageCache,
    PaymentScanner,
)

__all__ = [
    "StealthCandidate",
    "generate_stealth_meta_address",
    "generate_stealth_address",
    "is_transaction_for_me",
    "derive_stealth_spending_key",
    "scan_transactions",
    "encode_meta_address",
    "decode_meta_address",
    "MemoAnnouncement",
    "create_ephemeral_key_memo",
    "parse_memo",
    "parse_ephemeral_key_memo",
    "LedgerTransaction",
    "LedgerPage",
    "LedgerSource",
    "ScanResult",
    "PageCache",
    "PaymentScanner",
]
