"""
╔═══════════════════════════════════════════════════════════════════════════════╗
║                       NYX - CONFIDENTIAL BALANCE LAYER                        ║
║                                                                               ║
║       Encrypted amounts, stealth addresses and auditor viewing keys           ║
║       over Ed25519 (libsodium via PyNaCl).                                    ║
╠═══════════════════════════════════════════════════════════════════════════════╣
║                                                                               ║
║  AMOUNTS:                                                                     ║
║  ────────                                                                     ║
║  - elgamal:           Additive ElGamal, bounded discrete-log decryption       ║
║  - pedersen:          Pedersen commitments (C = v*H + r*G)                    ║
║  - ProofBackend:      Pluggable range proofs (none bundled)                   ║
║                                                                               ║
║  STEALTH ADDRESSES:                                                           ║
║  ──────────────────                                                           ║
║  - StealthMetaAddress: View/spend key pairs                                   ║
║  - generate_stealth_address / is_transaction_for_me                           ║
║  - STEALTH:<base58> announcement memos                                        ║
║  - PaymentScanner:    Paginated, cached, retrying ledger scan                 ║
║                                                                               ║
║  VIEWING KEYS:                                                                ║
║  ─────────────                                                                ║
║  - ViewingKeyManager: Issue, revoke, validate, decrypt                        ║
║  - Stores:            In-memory and SQLite                                    ║
║  - Disclosure:        Permission-gated sharing of non-secret fields           ║
║                                                                               ║
║  ⚠️  No range proof system is bundled. verify() on an amount that              ║
║      carries a proof raises NOT_IMPLEMENTED until a backend is supplied.      ║
║                                                                               ║
╚═══════════════════════════════════════════════════════════════════════════════╝
"""

from nyx.errors import (
    ErrorKind,
    PrivacyError,
    ConfigError,
    EncryptionError,
    ProofGenerationError,
    ProofVerificationError,
    StealthAddressError,
    ViewingKeyError,
    ComplianceError,
    ScannerError,
    TransientLedgerError,
)
from nyx.config import PrivacyConfig, setup_logging
from nyx.core import (
    Scalar,
    Point,
    Keypair,
    Ciphertext,
    Commitment,
    EncryptedAmount,
    EncryptedBalance,
    StealthMetaAddress,
    StealthAddress,
    EphemeralKey,
    StealthPaymentInfo,
    ViewingKeyPermissions,
    ViewingKey,
)
from nyx.crypto import elgamal, pedersen, ProofBackend, ZKProof
from nyx.stealth import (
    generate_stealth_meta_address,
    generate_stealth_address,
    is_transaction_for_me,
    derive_stealth_spending_key,
    scan_transactions,
    create_ephemeral_key_memo,
    parse_ephemeral_key_memo,
    PaymentScanner,
)
from nyx.viewing import ViewingKeyConfig, ViewingKeyManager

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ErrorKind",
    "PrivacyError",
    "ConfigError",
    "EncryptionError",
    "ProofGenerationError",
    "ProofVerificationError",
    "StealthAddressError",
    "ViewingKeyError",
    "ComplianceError",
    "ScannerError",
    "TransientLedgerError",
    # Config
    "PrivacyConfig",
    "setup_logging",
    # Types
    "Scalar",
    "Point",
    "Keypair",
    "Ciphertext",
    "Commitment",
    "EncryptedAmount",
    "EncryptedBalance",
    "StealthMetaAddress",
    "StealthAddress",
    "EphemeralKey",
    "StealthPaymentInfo",
    "ViewingKeyPermissions",
    "ViewingKey",
    # Amounts
    "elgamal",
    "pedersen",
    "ProofBackend",
    "ZKProof",
    # Stealth
    "generate_stealth_meta_address",
    "generate_stealth_address",
    "is_transaction_for_me",
    "derive_stealth_spending_key",
    "scan_transactions",
    "create_ephemeral_key_memo",
    "parse_ephemeral_key_memo",
    "PaymentScanner",
    # Viewing keys
    "ViewingKeyConfig",
    "ViewingKeyManager",
]
