"""
Nyx - Stealth Addresses

Dual-key stealth addresses over Ed25519.

Protocol:
1. Recipient publishes meta-address (V, S) = (v*G, s*G)
2. Sender picks fresh r, publishes R = r*G
3. Shared secret: k = H(r*V) = H(v*R)
4. One-time address: P = Hs(k)*G + S
5. Recipient scans: rederives P from (v, R), compares
6. Recipient spends with: x = Hs(k) + s  (x*G == P)

Payment lifecycle:
MetaAddressCreated -> EphemeralKeyGenerated -> StealthAddressDerived
-> Published -> Detected | NotDetected -> SpendingKeyDerived
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from nyx.constants import (
    DOMAIN_STEALTH,
    DOMAIN_STEALTH_VIEW,
    DOMAIN_STEALTH_SPEND,
    STEALTH_META_ADDRESS_PREFIX,
    MEMO_SEPARATOR,
    POINT_SIZE,
)
from nyx.core.curve import Ed25519Point, ScalarField
from nyx.core.types import (
    EphemeralKey,
    Keypair,
    Point,
    Scalar,
    StealthAddress,
    StealthMetaAddress,
    StealthPaymentInfo,
)
from nyx.errors import ErrorKind, PrivacyError, StealthAddressError

logger = logging.getLogger("nyx.stealth")

NOT_FOR_ME = StealthPaymentInfo(is_for_me=False)


@dataclass(frozen=True)
class StealthCandidate:
    """Announced ephemeral key paired with a destination address."""
    ephemeral_public_key: Point
    address: Point
    transaction_signature: Optional[str] = None


# ============================================================================
# KEY DERIVATION
# ============================================================================

def _shared_secret(shared_point: bytes) -> bytes:
    """k = H(ECDH point)."""
    return hashlib.sha256(DOMAIN_STEALTH + shared_point).digest()


def _address_offset(shared_secret: bytes) -> bytes:
    """Hs(k): scalar offset applied to the spend key."""
    return Ed25519Point.hash_to_scalar(DOMAIN_STEALTH + b"offset" + shared_secret)


def _derive_address(shared_secret: bytes, spend_public: bytes) -> bytes:
    offset_G = Ed25519Point.scalarmult_base(_address_offset(shared_secret))
    return Ed25519Point.point_add(offset_G, spend_public)


def _keypair_from_secret(secret: bytes) -> Tuple[Scalar, Point]:
    return Scalar.from_bytes(secret), Point(Ed25519Point.scalarmult_base(secret))


def generate_stealth_meta_address(seed: Optional[bytes] = None) -> StealthMetaAddress:
    """
    Create a meta-address with independent viewing and spending keypairs.

    Args:
        seed: Optional seed for deterministic recovery (random otherwise)
    """
    if seed is None:
        view_secret = ScalarField.random()
        spend_secret = ScalarField.random()
    else:
        if len(seed) < 32:
            raise StealthAddressError("Seed must be at least 32 bytes", ErrorKind.INVALID_PARAMETER)
        view_secret = ScalarField.from_seed(seed, DOMAIN_STEALTH_VIEW)
        spend_secret = ScalarField.from_seed(seed, DOMAIN_STEALTH_SPEND)

    view_private, view_public = _keypair_from_secret(view_secret)
    spend_private, spend_public = _keypair_from_secret(spend_secret)

    return StealthMetaAddress(
        view_public=view_public,
        spend_public=spend_public,
        view_private=view_private,
        spend_private=spend_private,
    )


def generate_stealth_address(
    meta_address: StealthMetaAddress,
) -> Tuple[StealthAddress, EphemeralKey]:
    """
    Derive a fresh one-time address for the recipient.

    A new ephemeral key is drawn on every call; never reuse it.

    Returns:
        (StealthAddress, EphemeralKey) tuple
    """
    if not Ed25519Point.is_valid_point(meta_address.view_public.data):
        raise StealthAddressError("Invalid view public key", ErrorKind.INVALID_META_ADDRESS)
    if not Ed25519Point.is_valid_point(meta_address.spend_public.data):
        raise StealthAddressError("Invalid spend public key", ErrorKind.INVALID_META_ADDRESS)

    r = ScalarField.random()
    r_public = Ed25519Point.scalarmult_base(r)

    shared_secret = _shared_secret(Ed25519Point.scalarmult(r, meta_address.view_public.data))
    address = _derive_address(shared_secret, meta_address.spend_public.data)

    now = time.time()
    stealth = StealthAddress(
        address=Point(address),
        ephemeral_public_key=Point(r_public),
        shared_secret_hash=shared_secret,
        created_at=now,
    )
    ephemeral = EphemeralKey(
        public_key=Point(r_public),
        private_key=Scalar.from_bytes(r),
        created_at=now,
    )
    return stealth, ephemeral


# ============================================================================
# RECIPIENT SIDE
# ============================================================================

def _require_view_key(meta_address: StealthMetaAddress) -> Scalar:
    if meta_address.view_private is None:
        raise StealthAddressError(
            "Meta-address has no view private key", ErrorKind.MISSING_PRIVATE_KEY
        )
    return meta_address.view_private


def is_transaction_for_me(
    ephemeral_public_key: Point,
    candidate_address: Point,
    meta_address: StealthMetaAddress,
) -> StealthPaymentInfo:
    """
    Check whether candidate_address was derived for this meta-address.

    Returns:
        StealthPaymentInfo with the shared secret on match; on mismatch or
        malformed input only is_for_me=False.
    """
    view_private = _require_view_key(meta_address)
    try:
        eph = bytes(ephemeral_public_key)
        candidate = bytes(candidate_address)
        if not Ed25519Point.is_valid_point(eph) or len(candidate) != POINT_SIZE:
            return NOT_FOR_ME

        shared_secret = _shared_secret(Ed25519Point.scalarmult(view_private.to_bytes(), eph))
        expected = _derive_address(shared_secret, meta_address.spend_public.data)

        if not hmac.compare_digest(expected, candidate):
            return NOT_FOR_ME

    except (PrivacyError, TypeError, ValueError) as e:
        logger.debug(f"Stealth check failed: {e}")
        return NOT_FOR_ME

    return StealthPaymentInfo(
        is_for_me=True,
        stealth_address=Point(candidate),
        ephemeral_public_key=Point(eph),
        shared_secret=shared_secret,
    )


def derive_stealth_spending_key(
    meta_address: StealthMetaAddress,
    shared_secret: bytes,
) -> Keypair:
    """
    One-time spending keypair x = Hs(k) + s; x*G equals the stealth address.
    """
    if meta_address.spend_private is None:
        raise StealthAddressError(
            "Meta-address has no spend private key", ErrorKind.MISSING_PRIVATE_KEY
        )
    if not isinstance(shared_secret, (bytes, bytearray)) or len(shared_secret) != 32:
        raise StealthAddressError("Shared secret must be 32 bytes", ErrorKind.INVALID_PARAMETER)

    one_time = ScalarField.add(_address_offset(bytes(shared_secret)), meta_address.spend_private.to_bytes())
    return Keypair.from_private(Scalar.from_bytes(one_time))


def scan_transactions(
    candidates: Iterable[StealthCandidate],
    meta_address: StealthMetaAddress,
) -> List[StealthPaymentInfo]:
    """Batched is_transaction_for_me; returns matches only."""
    _require_view_key(meta_address)
    matches = []
    checked = 0
    for candidate in candidates:
        checked += 1
        info = is_transaction_for_me(candidate.ephemeral_public_key, candidate.address, meta_address)
        if info.is_for_me:
            matches.append(StealthPaymentInfo(
                is_for_me=True,
                stealth_address=info.stealth_address,
                ephemeral_public_key=info.ephemeral_public_key,
                shared_secret=info.shared_secret,
                transaction_signature=candidate.transaction_signature,
            ))
    logger.debug(f"Scanned {checked} candidates, {len(matches)} matches")
    return matches


# ============================================================================
# META-ADDRESS ENCODING
# ============================================================================

def encode_meta_address(meta_address: StealthMetaAddress) -> str:
    """stealth:<hex view public>:<hex spend public> (public halves only)."""
    return MEMO_SEPARATOR.join((
        STEALTH_META_ADDRESS_PREFIX,
        meta_address.view_public.hex(),
        meta_address.spend_public.hex(),
    ))


def decode_meta_address(encoded: str) -> StealthMetaAddress:
    """Parse encode_meta_address() output."""
    parts = encoded.split(MEMO_SEPARATOR) if isinstance(encoded, str) else []
    if len(parts) != 3 or parts[0] != STEALTH_META_ADDRESS_PREFIX:
        raise StealthAddressError("Invalid meta-address format", ErrorKind.INVALID_META_ADDRESS)
    try:
        return StealthMetaAddress(
            view_public=Point.from_hex(parts[1]),
            spend_public=Point.from_hex(parts[2]),
        )
    except ValueError as e:
        raise StealthAddressError("Invalid meta-address keys", ErrorKind.INVALID_META_ADDRESS) from e
