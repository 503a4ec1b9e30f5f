"""
Nyx - Ed25519 Curve Operations

Safe wrappers around libsodium (PyNaCl) for the prime-order subgroup:
- Scalar field arithmetic mod L
- Point validation, addition and subtraction
- Scalar multiplication (identity-aware)
- Hash to scalar / hash to point

libsodium refuses to produce or consume the neutral element in
scalar multiplication. Amounts and balances can be zero, so the
neutral element is handled here explicitly as IDENTITY_POINT.
"""

import hashlib
import hmac
import struct
import logging

import nacl.bindings
import nacl.utils
import nacl.exceptions

from nyx.constants import (
    CURVE_ORDER,
    POINT_SIZE,
    SCALAR_SIZE,
    IDENTITY_POINT,
    ZERO_SCALAR,
    DOMAIN_HASH_TO_POINT,
)
from nyx.errors import PrivacyError, ErrorKind

logger = logging.getLogger("nyx.curve")


class ScalarField:
    """
    Arithmetic on Ed25519 scalars.

    Scalars are 32-byte little-endian integers reduced mod L.
    """

    @staticmethod
    def from_int(value: int) -> bytes:
        return (value % CURVE_ORDER).to_bytes(SCALAR_SIZE, 'little')

    @staticmethod
    def to_int(scalar: bytes) -> int:
        return int.from_bytes(scalar, 'little')

    @staticmethod
    def is_zero(scalar: bytes) -> bool:
        return int.from_bytes(scalar, 'little') % CURVE_ORDER == 0

    @staticmethod
    def reduce(data: bytes) -> bytes:
        """Reduce arbitrary bytes to a scalar (64-byte wide reduction)."""
        if len(data) != 64:
            data = hashlib.sha512(data).digest()
        return nacl.bindings.crypto_core_ed25519_scalar_reduce(data)

    @staticmethod
    def random() -> bytes:
        """Uniform non-zero scalar in [1, L)."""
        while True:
            s = nacl.bindings.crypto_core_ed25519_scalar_reduce(nacl.utils.random(64))
            if not ScalarField.is_zero(s):
                return s

    @staticmethod
    def from_seed(seed: bytes, domain: bytes) -> bytes:
        """Deterministic non-zero scalar: SHA-512(domain || seed) mod L."""
        counter = 0
        while True:
            suffix = struct.pack('<I', counter) if counter else b""
            s = ScalarField.reduce(hashlib.sha512(domain + seed + suffix).digest())
            if not ScalarField.is_zero(s):
                return s
            counter += 1

    @staticmethod
    def add(a: bytes, b: bytes) -> bytes:
        """a + b mod L."""
        return nacl.bindings.crypto_core_ed25519_scalar_add(a, b)

    @staticmethod
    def sub(a: bytes, b: bytes) -> bytes:
        """a - b mod L."""
        return nacl.bindings.crypto_core_ed25519_scalar_sub(a, b)

    @staticmethod
    def mul(a: bytes, b: bytes) -> bytes:
        """a * b mod L."""
        return nacl.bindings.crypto_core_ed25519_scalar_mul(a, b)

    @staticmethod
    def negate(s: bytes) -> bytes:
        """-s mod L."""
        return nacl.bindings.crypto_core_ed25519_scalar_negate(s)


class Ed25519Point:
    """
    Ed25519 point operations using libsodium.
    """

    POINT_SIZE = POINT_SIZE
    SCALAR_SIZE = SCALAR_SIZE

    @staticmethod
    def is_identity(point: bytes) -> bool:
        return hmac.compare_digest(point, IDENTITY_POINT)

    @staticmethod
    def is_valid_point(point: bytes) -> bool:
        """Check bytes encode a point of the prime-order subgroup (not identity)."""
        if not isinstance(point, (bytes, bytearray)) or len(point) != POINT_SIZE:
            return False
        try:
            return bool(nacl.bindings.crypto_core_ed25519_is_valid_point(bytes(point)))
        except (nacl.exceptions.CryptoError, TypeError, ValueError):
            return False

    @staticmethod
    def is_valid_or_identity(point: bytes) -> bool:
        if isinstance(point, (bytes, bytearray)) and len(point) == POINT_SIZE:
            if Ed25519Point.is_identity(bytes(point)):
                return True
        return Ed25519Point.is_valid_point(point)

    @staticmethod
    def point_add(p: bytes, q: bytes) -> bytes:
        """P + Q."""
        try:
            return nacl.bindings.crypto_core_ed25519_add(p, q)
        except (nacl.exceptions.CryptoError, TypeError, ValueError) as e:
            raise PrivacyError(
                "Point addition failed", ErrorKind.CURVE_OPERATION_FAILED
            ) from e

    @staticmethod
    def point_sub(p: bytes, q: bytes) -> bytes:
        """P - Q."""
        try:
            return nacl.bindings.crypto_core_ed25519_sub(p, q)
        except (nacl.exceptions.CryptoError, TypeError, ValueError) as e:
            raise PrivacyError(
                "Point subtraction failed", ErrorKind.CURVE_OPERATION_FAILED
            ) from e

    @staticmethod
    def scalarmult_base(scalar: bytes) -> bytes:
        """s * G. Zero scalar yields the identity."""
        if ScalarField.is_zero(scalar):
            return IDENTITY_POINT
        reduced = ScalarField.from_int(ScalarField.to_int(scalar))
        try:
            return nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(reduced)
        except (nacl.exceptions.CryptoError, TypeError, ValueError) as e:
            raise PrivacyError(
                "Base point multiplication failed", ErrorKind.CURVE_OPERATION_FAILED
            ) from e

    @staticmethod
    def scalarmult(scalar: bytes, point: bytes) -> bytes:
        """s * P. Zero scalar or identity input yields the identity."""
        if ScalarField.is_zero(scalar) or Ed25519Point.is_identity(point):
            return IDENTITY_POINT
        reduced = ScalarField.from_int(ScalarField.to_int(scalar))
        try:
            return nacl.bindings.crypto_scalarmult_ed25519_noclamp(reduced, point)
        except (nacl.exceptions.CryptoError, TypeError, ValueError) as e:
            raise PrivacyError(
                "Scalar multiplication failed", ErrorKind.CURVE_OPERATION_FAILED
            ) from e

    @staticmethod
    def hash_to_scalar(data: bytes) -> bytes:
        """Hash data to scalar using SHA-512 and reduction."""
        return ScalarField.reduce(hashlib.sha512(data).digest())

    @staticmethod
    def hash_to_point(data: bytes) -> bytes:
        """
        Hash data to a point of the prime-order subgroup.

        Try-and-increment with domain separation; candidates are
        multiplied by the cofactor so the result never has small order.
        """
        cofactor = (8).to_bytes(SCALAR_SIZE, 'little')
        for counter in range(256):
            hash_input = DOMAIN_HASH_TO_POINT + data + struct.pack('<B', counter)
            candidate = bytearray(hashlib.sha256(hash_input).digest())
            extra = hashlib.sha256(hash_input + b'\xff').digest()[0]
            candidate[31] = (candidate[31] & 0x7F) | ((extra & 1) << 7)
            candidate = bytes(candidate)

            if not Ed25519Point.is_valid_point(candidate):
                continue
            result = Ed25519Point.scalarmult(cofactor, candidate)
            if Ed25519Point.is_valid_point(result):
                return result

        raise PrivacyError("Hash to point failed after 256 attempts", ErrorKind.INTERNAL_ERROR)

    @staticmethod
    def base_point() -> bytes:
        return Ed25519Point.scalarmult_base((1).to_bytes(SCALAR_SIZE, 'little'))


__all__ = ["ScalarField", "Ed25519Point", "IDENTITY_POINT", "ZERO_SCALAR"]
