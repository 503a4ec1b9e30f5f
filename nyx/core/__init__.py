"""
Nyx core: curve primitives and shared value types.
"""

from nyx.core.curve import Ed25519Point, ScalarField
from nyx.core.types import (
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

__all__ = [
    "Ed25519Point",
    "ScalarField",
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
]
