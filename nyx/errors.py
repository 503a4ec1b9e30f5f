"""
Nyx Error Handling

All error kinds and exception classes.

Every error carries a machine-readable kind plus a context payload.
Context never holds private-key material, seeds or plaintext amounts.
"""

from enum import IntEnum
from typing import Any, Dict, Optional


class ErrorKind(IntEnum):
    """Privacy error kinds."""

    # 1xxx - General errors
    UNKNOWN_ERROR = 1000
    INVALID_PARAMETER = 1001
    INTERNAL_ERROR = 1002
    NOT_IMPLEMENTED = 1003
    INVALID_CONFIG = 1004

    # 2xxx - Encryption errors
    INVALID_AMOUNT = 2001
    INVALID_KEY = 2002
    INVALID_CIPHERTEXT = 2003
    DISCRETE_LOG_OUT_OF_RANGE = 2004
    CURVE_OPERATION_FAILED = 2005

    # 3xxx - Proof errors
    PROOF_GENERATION_FAILED = 3001
    PROOF_INVALID = 3002
    PROOF_MALFORMED = 3003

    # 4xxx - Stealth address errors
    INVALID_META_ADDRESS = 4001
    INVALID_EPHEMERAL_KEY = 4002
    INVALID_MEMO = 4003
    MISSING_PRIVATE_KEY = 4004

    # 5xxx - Viewing key errors
    MALFORMED_VIEWING_KEY = 5001
    INVALID_SIGNATURE = 5002
    AUDITOR_KEY_REQUIRED = 5003
    AUDITOR_KEY_MISMATCH = 5004
    KEY_MATERIAL_MISMATCH = 5005
    VIEWING_KEY_NOT_FOUND = 5006
    STORE_FAILURE = 5007
    OWNER_KEY_REQUIRED = 5008
    NOT_KEY_OWNER = 5009

    # 6xxx - Compliance errors
    VIEWING_KEY_EXPIRED = 6001
    PERMISSION_DENIED = 6002
    ACCOUNT_OUT_OF_SCOPE = 6003

    # 7xxx - Scanner errors
    LEDGER_UNAVAILABLE = 7001
    SCAN_RETRIES_EXHAUSTED = 7002


class PrivacyError(Exception):
    """Base exception for all privacy layer errors."""

    default_kind = ErrorKind.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind if kind is not None else self.default_kind
        self.message = message
        self.context = context or {}
        super().__init__(f"[{self.kind.value}] {message}")

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {
            "code": self.kind.value,
            "kind": self.kind.name,
            "message": self.message,
        }
        if self.context:
            result["context"] = self.context
        return result


class ConfigError(PrivacyError):
    """Invalid configuration."""
    default_kind = ErrorKind.INVALID_CONFIG


class EncryptionError(PrivacyError):
    """Malformed/undersized ciphertext or key, or undecryptable ciphertext."""
    default_kind = ErrorKind.INVALID_CIPHERTEXT


class ProofGenerationError(PrivacyError):
    """Range/validity proof cannot be produced."""
    default_kind = ErrorKind.PROOF_GENERATION_FAILED


class ProofVerificationError(PrivacyError):
    """Proof could not be verified."""
    default_kind = ErrorKind.PROOF_INVALID


class StealthAddressError(PrivacyError):
    """Malformed meta-address, ephemeral key or memo."""
    default_kind = ErrorKind.INVALID_META_ADDRESS


class ViewingKeyError(PrivacyError):
    """Malformed or unauthorized viewing key."""
    default_kind = ErrorKind.MALFORMED_VIEWING_KEY


class ComplianceError(PrivacyError):
    """Valid key that failed a permission, account or expiry check."""
    default_kind = ErrorKind.PERMISSION_DENIED


class ScannerError(PrivacyError):
    """Payment scan failed."""
    default_kind = ErrorKind.SCAN_RETRIES_EXHAUSTED


class TransientLedgerError(ScannerError):
    """Ledger read failed in a way that is safe to retry."""
    default_kind = ErrorKind.LEDGER_UNAVAILABLE
