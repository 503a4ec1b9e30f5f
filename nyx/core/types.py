"""
Nyx Confidential Balance Types

Value types shared by ElGamal, Pedersen, stealth addresses and
viewing keys. Scalars and points are LITTLE-ENDIAN (Ed25519).
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple
import json
import struct
import time

import base58

from nyx.constants import (
    CURVE_ORDER,
    POINT_SIZE,
    SCALAR_SIZE,
    CIPHERTEXT_SIZE,
    COMMITMENT_SIZE,
    IDENTITY_POINT,
    DOMAIN_VIEWING_KEY_SIG,
)
from nyx.core.curve import Ed25519Point


@dataclass(frozen=True, slots=True)
class Scalar:
    """
    Integer mod the group order L.

    SIZE: 32 bytes
    SERIALIZATION: little-endian
    """
    value: int = 0

    def __post_init__(self):
        if not isinstance(self.value, int) or not 0 <= self.value < CURVE_ORDER:
            raise ValueError("Scalar must be an integer in [0, L)")

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __repr__(self) -> str:
        # Scalars are usually secrets
        return "Scalar(<redacted>)"

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(SCALAR_SIZE, 'little')

    def is_zero(self) -> bool:
        return self.value == 0

    @classmethod
    def from_bytes(cls, data: bytes) -> Scalar:
        """Parse 32 little-endian bytes, reducing mod L."""
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Scalar must be {SCALAR_SIZE} bytes, got {len(data)}")
        return cls(int.from_bytes(data, 'little') % CURVE_ORDER)


@dataclass(frozen=True, slots=True)
class Point:
    """
    Compressed Ed25519 point.

    SIZE: 32 bytes
    SERIALIZATION: raw bytes (canonical encoding)
    """
    data: bytes = IDENTITY_POINT

    def __post_init__(self):
        if not isinstance(self.data, bytes) or len(self.data) != POINT_SIZE:
            raise ValueError(f"Point must be {POINT_SIZE} bytes")

    def __bytes__(self) -> bytes:
        return self.data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Point):
            return self.data == other.data
        if isinstance(other, bytes):
            return self.data == other
        return False

    def __hash__(self) -> int:
        return hash(self.data)

    def __repr__(self) -> str:
        return f"Point({self.data.hex()[:16]}...)"

    def hex(self) -> str:
        return self.data.hex()

    def is_identity(self) -> bool:
        return self.data == IDENTITY_POINT

    def is_valid(self) -> bool:
        """On the prime-order subgroup (identity allowed)."""
        return Ed25519Point.is_valid_or_identity(self.data)

    @classmethod
    def from_hex(cls, hex_string: str) -> Point:
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def identity(cls) -> Point:
        return cls(IDENTITY_POINT)

    def serialize(self) -> bytes:
        return self.data

    @classmethod
    def deserialize(cls, data: bytes, offset: int = 0) -> tuple[Point, int]:
        """Deserialize from bytes, return (Point, bytes_consumed)."""
        return cls(bytes(data[offset:offset + POINT_SIZE])), POINT_SIZE


@dataclass(frozen=True, slots=True)
class Keypair:
    """
    Scalar/point keypair with public_key == private_key * G.
    """
    private_key: Scalar
    public_key: Point

    def __post_init__(self):
        expected = Ed25519Point.scalarmult_base(self.private_key.to_bytes())
        if expected != self.public_key.data:
            raise ValueError("Public key does not match private key")

    def __repr__(self) -> str:
        return f"Keypair(public={self.public_key!r}, private=<redacted>)"

    @classmethod
    def from_private(cls, private_key: Scalar) -> Keypair:
        public = Ed25519Point.scalarmult_base(private_key.to_bytes())
        return cls(private_key=private_key, public_key=Point(public))


@dataclass(frozen=True, slots=True)
class Ciphertext:
    """
    ElGamal ciphertext.

    SIZE: 64 bytes
    SERIALIZATION: c1 || c2
    """
    c1: Point
    c2: Point

    def __bytes__(self) -> bytes:
        return self.serialize()

    def __repr__(self) -> str:
        return f"Ciphertext(c1={self.c1.hex()[:16]}..., c2={self.c2.hex()[:16]}...)"

    def hex(self) -> str:
        return self.serialize().hex()

    @classmethod
    def from_hex(cls, hex_string: str) -> Ciphertext:
        return cls.from_bytes(bytes.fromhex(hex_string))

    def serialize(self) -> bytes:
        return self.c1.data + self.c2.data

    @classmethod
    def from_bytes(cls, data: bytes) -> Ciphertext:
        if len(data) != CIPHERTEXT_SIZE:
            raise ValueError(f"Ciphertext must be {CIPHERTEXT_SIZE} bytes, got {len(data)}")
        return cls(c1=Point(bytes(data[:POINT_SIZE])), c2=Point(bytes(data[POINT_SIZE:])))

    @classmethod
    def deserialize(cls, data: bytes, offset: int = 0) -> tuple[Ciphertext, int]:
        """Deserialize from bytes, return (Ciphertext, bytes_consumed)."""
        return cls.from_bytes(data[offset:offset + CIPHERTEXT_SIZE]), CIPHERTEXT_SIZE


@dataclass(frozen=True, slots=True)
class Commitment:
    """
    Pedersen commitment C = v*H + r*G.

    SIZE: 32 bytes
    """
    point: Point

    def __bytes__(self) -> bytes:
        return self.point.data

    def __repr__(self) -> str:
        return f"Commitment({self.point.hex()[:16]}...)"

    def hex(self) -> str:
        return self.point.hex()

    def serialize(self) -> bytes:
        return self.point.data

    @classmethod
    def from_bytes(cls, data: bytes) -> Commitment:
        if len(data) != COMMITMENT_SIZE:
            raise ValueError(f"Commitment must be {COMMITMENT_SIZE} bytes, got {len(data)}")
        return cls(Point(bytes(data)))

    @classmethod
    def deserialize(cls, data: bytes, offset: int = 0) -> tuple[Commitment, int]:
        """Deserialize from bytes, return (Commitment, bytes_consumed)."""
        return cls.from_bytes(data[offset:offset + COMMITMENT_SIZE]), COMMITMENT_SIZE


@dataclass(frozen=True, slots=True)
class EncryptedAmount:
    """
    Encrypted transfer amount.

    SERIALIZATION: ciphertext(64) || commitment(32) || proof_len(4) || range_proof
    The commitment blinding (randomness) is sender-side only, never serialized.
    """
    ciphertext: Ciphertext
    commitment: Commitment
    range_proof: bytes = b""
    randomness: Optional[Scalar] = None

    def __repr__(self) -> str:
        return (
            f"EncryptedAmount(ciphertext={self.ciphertext!r}, "
            f"commitment={self.commitment!r}, proof={len(self.range_proof)}B)"
        )

    def serialize(self) -> bytes:
        return (
            self.ciphertext.serialize()
            + self.commitment.serialize()
            + struct.pack('<I', len(self.range_proof))
            + self.range_proof
        )

    @classmethod
    def deserialize(cls, data: bytes) -> EncryptedAmount:
        header = CIPHERTEXT_SIZE + COMMITMENT_SIZE + 4
        if len(data) < header:
            raise ValueError("EncryptedAmount data too short")
        ciphertext, offset = Ciphertext.deserialize(data, 0)
        commitment, consumed = Commitment.deserialize(data, offset)
        offset += consumed
        proof_len = struct.unpack_from('<I', data, offset)[0]
        offset += 4
        if len(data) != offset + proof_len:
            raise ValueError("EncryptedAmount proof length mismatch")
        return cls(
            ciphertext=ciphertext,
            commitment=commitment,
            range_proof=bytes(data[offset:offset + proof_len]),
        )


@dataclass(frozen=True, slots=True)
class EncryptedBalance:
    """
    Encrypted balance as read from the ledger (raw bytes).
    """
    ciphertext: bytes
    commitment: bytes = b""
    account: Optional[bytes] = None
    last_updated: float = 0.0
    exists: bool = True

    def __repr__(self) -> str:
        account = base58.b58encode(self.account).decode() if self.account else None
        return f"EncryptedBalance(account={account}, exists={self.exists})"


# ==============================================================================
# STEALTH ADDRESSES
# ==============================================================================

@dataclass(frozen=True, slots=True)
class StealthMetaAddress:
    """
    Recipient's long-term stealth identity: viewing and spending keypairs.

    Only the public halves are shared; see public().
    """
    view_public: Point
    spend_public: Point
    view_private: Optional[Scalar] = None
    spend_private: Optional[Scalar] = None

    def __post_init__(self):
        for name in ("view_public", "spend_public"):
            if not Ed25519Point.is_valid_point(getattr(self, name).data):
                raise ValueError(f"{name} is not a valid curve point")

    def __repr__(self) -> str:
        return (
            f"StealthMetaAddress(view={self.view_public.hex()[:16]}..., "
            f"spend={self.spend_public.hex()[:16]}..., private={self.has_private_keys})"
        )

    @property
    def has_private_keys(self) -> bool:
        return self.view_private is not None and self.spend_private is not None

    def public(self) -> StealthMetaAddress:
        """Shareable half (no private keys)."""
        return StealthMetaAddress(view_public=self.view_public, spend_public=self.spend_public)


@dataclass(frozen=True, slots=True)
class StealthAddress:
    """
    One-time receiving address P = H(s)*G + spend_public.
    """
    address: Point
    ephemeral_public_key: Point
    shared_secret_hash: bytes
    created_at: float = field(default_factory=time.time)

    def __repr__(self) -> str:
        return f"StealthAddress({base58.b58encode(self.address.data).decode()})"

    def to_base58(self) -> str:
        return base58.b58encode(self.address.data).decode()


@dataclass(frozen=True, slots=True)
class EphemeralKey:
    """
    Sender's single-use ephemeral keypair (r, R = r*G).
    """
    public_key: Point
    private_key: Optional[Scalar] = None
    transaction_signature: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    def __repr__(self) -> str:
        return f"EphemeralKey({self.public_key.hex()[:16]}...)"


@dataclass(frozen=True, slots=True)
class StealthPaymentInfo:
    """
    Result of checking one candidate payment.

    On mismatch only is_for_me=False is populated.
    """
    is_for_me: bool
    stealth_address: Optional[Point] = None
    ephemeral_public_key: Optional[Point] = None
    shared_secret: Optional[bytes] = None
    transaction_signature: Optional[str] = None

    def __repr__(self) -> str:
        return f"StealthPaymentInfo(is_for_me={self.is_for_me}, tx={self.transaction_signature})"


# ==============================================================================
# VIEWING KEYS
# ==============================================================================

def _b58(data: bytes) -> str:
    return base58.b58encode(data).decode()


def _unb58(text: str) -> bytes:
    return base58.b58decode(text)


@dataclass(frozen=True, slots=True)
class ViewingKeyPermissions:
    """
    Capabilities granted by a viewing key.

    Empty allowed_accounts means every account of the owner.
    """
    can_view_balances: bool = True
    can_view_amounts: bool = True
    can_view_metadata: bool = False
    allowed_accounts: Tuple[bytes, ...] = ()

    def __post_init__(self):
        if not isinstance(self.allowed_accounts, tuple):
            object.__setattr__(self, "allowed_accounts", tuple(self.allowed_accounts))

    def grants_any(self) -> bool:
        return self.can_view_balances or self.can_view_amounts or self.can_view_metadata

    def covers(self, account: bytes) -> bool:
        if not self.allowed_accounts:
            return True
        return any(account == allowed for allowed in self.allowed_accounts)

    def to_dict(self) -> dict:
        return {
            "can_view_balances": self.can_view_balances,
            "can_view_amounts": self.can_view_amounts,
            "can_view_metadata": self.can_view_metadata,
            "allowed_accounts": [_b58(a) for a in self.allowed_accounts],
        }

    @classmethod
    def from_dict(cls, data: dict) -> ViewingKeyPermissions:
        return cls(
            can_view_balances=bool(data.get("can_view_balances", False)),
            can_view_amounts=bool(data.get("can_view_amounts", False)),
            can_view_metadata=bool(data.get("can_view_metadata", False)),
            allowed_accounts=tuple(_unb58(a) for a in data.get("allowed_accounts", [])),
        )


@dataclass(frozen=True, slots=True)
class ViewingKey:
    """
    Time-bounded, permissioned read access to one owner's encrypted data.

    encrypted_private_key holds the owner's ElGamal secret masked for
    (owner, account), sealed for auditor_public_key when one is bound.
    signature is the owner's Ed25519 signature over signing_payload().
    key_id names one issuance; stores and revocation are keyed by it.
    """
    public_key: Point
    encrypted_private_key: bytes
    derivation_path: str
    permissions: ViewingKeyPermissions
    owner_public_key: bytes
    owner_elgamal_public_key: Point
    account: bytes
    expires_at: Optional[float] = None
    auditor_public_key: Optional[Point] = None
    created_at: float = 0.0
    key_id: str = ""
    signature: bytes = b""

    def __repr__(self) -> str:
        return f"ViewingKey(path={self.derivation_path}, expires_at={self.expires_at})"

    @property
    def is_sealed(self) -> bool:
        return self.auditor_public_key is not None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def _unsigned_dict(self) -> dict:
        return {
            "public_key": self.public_key.hex(),
            "encrypted_private_key": self.encrypted_private_key.hex(),
            "derivation_path": self.derivation_path,
            "permissions": self.permissions.to_dict(),
            "owner_public_key": _b58(self.owner_public_key),
            "owner_elgamal_public_key": self.owner_elgamal_public_key.hex(),
            "account": _b58(self.account),
            "expires_at": self.expires_at,
            "auditor_public_key": self.auditor_public_key.hex() if self.auditor_public_key else None,
            "created_at": self.created_at,
            "key_id": self.key_id,
        }

    def signing_payload(self) -> bytes:
        """Canonical bytes covered by the owner signature."""
        body = json.dumps(self._unsigned_dict(), sort_keys=True, separators=(",", ":"))
        return DOMAIN_VIEWING_KEY_SIG + body.encode()

    def to_dict(self) -> dict:
        data = self._unsigned_dict()
        data["signature"] = self.signature.hex()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict) -> ViewingKey:
        auditor = data.get("auditor_public_key")
        return cls(
            public_key=Point.from_hex(data["public_key"]),
            encrypted_private_key=bytes.fromhex(data["encrypted_private_key"]),
            derivation_path=data["derivation_path"],
            permissions=ViewingKeyPermissions.from_dict(data["permissions"]),
            owner_public_key=_unb58(data["owner_public_key"]),
            owner_elgamal_public_key=Point.from_hex(data["owner_elgamal_public_key"]),
            account=_unb58(data["account"]),
            expires_at=data.get("expires_at"),
            auditor_public_key=Point.from_hex(auditor) if auditor else None,
            created_at=data.get("created_at", 0.0),
            key_id=data.get("key_id", ""),
            signature=bytes.fromhex(data.get("signature", "")),
        )

    @classmethod
    def from_json(cls, text: str) -> ViewingKey:
        return cls.from_dict(json.loads(text))

    def with_changes(self, **changes) -> ViewingKey:
        return replace(self, **changes)
