"""
Nyx - Pedersen Commitments

C = v*H + r*G where:
- v is the committed amount
- r is the blinding factor
- G is the Ed25519 base point, H is hash-derived (nobody knows log_G H)

Properties:
- Perfectly hiding: C reveals nothing about v
- Computationally binding: cannot open C to a different (v', r')
- Homomorphic: C(v1, r1) + C(v2, r2) = C(v1+v2, r1+r2)
"""

import hmac
import logging
from typing import Optional, Sequence

from nyx.constants import H_GENERATOR_SEED, MAX_AMOUNT, SCALAR_SIZE, IDENTITY_POINT
from nyx.core.types import Commitment, Point, Scalar
from nyx.core.curve import Ed25519Point, ScalarField
from nyx.errors import EncryptionError, ErrorKind, PrivacyError

logger = logging.getLogger("nyx.pedersen")


class PedersenGenerators:
    """
    Pedersen commitment generators G and H.

    G is the standard Ed25519 base point.
    H is derived via hash-to-point with nothing-up-my-sleeve seed.
    """

    _H: Optional[bytes] = None
    _G: Optional[bytes] = None

    @classmethod
    def get_G(cls) -> bytes:
        """Get generator G (Ed25519 base point)."""
        if cls._G is None:
            cls._G = Ed25519Point.base_point()
        return cls._G

    @classmethod
    def get_H(cls) -> bytes:
        """Get generator H (hash-derived, independent of G)."""
        if cls._H is None:
            cls._H = Ed25519Point.hash_to_point(H_GENERATOR_SEED)
        return cls._H


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise EncryptionError("Amount must be an integer", ErrorKind.INVALID_AMOUNT)
    if amount < 0 or amount >= MAX_AMOUNT:
        raise EncryptionError("Amount must be in [0, 2^64)", ErrorKind.INVALID_AMOUNT)


def random_blinding() -> Scalar:
    """Fresh non-zero blinding factor."""
    return Scalar.from_bytes(ScalarField.random())


def amount_point(amount: int) -> bytes:
    """v*H."""
    return Ed25519Point.scalarmult(amount.to_bytes(SCALAR_SIZE, 'little'), PedersenGenerators.get_H())


def generate_commitment(amount: int, blinding: Scalar) -> Commitment:
    """
    Create commitment C = amount*H + blinding*G.

    Args:
        amount: Value to commit, 0 <= amount < 2^64
        blinding: Blinding factor r

    Returns:
        Commitment (32 bytes)
    """
    _check_amount(amount)
    v_H = amount_point(amount)
    r_G = Ed25519Point.scalarmult_base(blinding.to_bytes())
    return Commitment(Point(Ed25519Point.point_add(v_H, r_G)))


def verify_commitment(commitment: Commitment, amount: int, blinding: Scalar) -> bool:
    """Recompute and compare in constant time. Never raises."""
    try:
        expected = generate_commitment(amount, blinding)
    except (PrivacyError, ValueError, TypeError) as e:
        logger.debug(f"Commitment verification failed: {e}")
        return False
    return hmac.compare_digest(expected.point.data, commitment.point.data)


def add_commitments(c1: Commitment, c2: Commitment) -> Commitment:
    """Homomorphic addition: opens to (a1+a2, r1+r2)."""
    return Commitment(Point(Ed25519Point.point_add(c1.point.data, c2.point.data)))


def sub_commitments(c1: Commitment, c2: Commitment) -> Commitment:
    """C1 - C2: opens to (a1-a2, r1-r2)."""
    return Commitment(Point(Ed25519Point.point_sub(c1.point.data, c2.point.data)))


def sum_commitments(commitments: Sequence[Commitment]) -> Commitment:
    total = IDENTITY_POINT
    for c in commitments:
        total = Ed25519Point.point_add(total, c.point.data)
    return Commitment(Point(total))


def verify_sum(
    inputs: Sequence[Commitment],
    outputs: Sequence[Commitment],
    fee: int = 0,
) -> bool:
    """
    Verify that inputs = outputs + fee (values balance).

    Σ C_in == Σ C_out + fee*H holds when amounts balance and the
    blinding factors of inputs and outputs sum to the same value.
    """
    try:
        _check_amount(fee)
        input_sum = sum_commitments(inputs).point.data
        output_sum = Ed25519Point.point_add(sum_commitments(outputs).point.data, amount_point(fee))
    except PrivacyError as e:
        logger.debug(f"Sum verification failed: {e}")
        return False
    return hmac.compare_digest(input_sum, output_sum)
