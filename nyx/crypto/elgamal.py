"""
Nyx - ElGamal Encryption of Amounts

Additive ("exponential") ElGamal over Ed25519:

    encrypt:  c1 = r*G,  c2 = m*G + r*P      (fresh r per call)
    decrypt:  M = c2 - sk*c1 = m*G,  m = dlog(M) within a bound

Ciphertexts are additively homomorphic, so encrypted balances can be
updated without decryption. Decryption solves a bounded discrete
logarithm (see dlog.py) and fails with EncryptionError instead of
returning a wrong amount.
"""

import logging
from typing import Optional

from nyx.constants import (
    MAX_AMOUNT,
    SCALAR_SIZE,
    POINT_SIZE,
    CIPHERTEXT_SIZE,
    DOMAIN_ELGAMAL_KEY,
    DEFAULT_MAX_DECRYPTABLE_AMOUNT,
)
from nyx.core.types import (
    Ciphertext,
    Commitment,
    EncryptedAmount,
    Keypair,
    Point,
    Scalar,
)
from nyx.core.curve import Ed25519Point, ScalarField
from nyx.crypto.dlog import get_solver
from nyx.crypto.pedersen import generate_commitment
from nyx.crypto.proofs import DEFAULT_PROOF_BACKEND, ProofBackend, ZKProof, generate_amount_proof
from nyx.errors import (
    EncryptionError,
    ErrorKind,
    PrivacyError,
    ProofVerificationError,
)

logger = logging.getLogger("nyx.elgamal")


# ============================================================================
# KEYS
# ============================================================================

def derive_keypair(seed: bytes) -> Keypair:
    """
    Deterministic keypair from a signing identity.

    Args:
        seed: Ed25519 signing seed or secret key (first 32 bytes are used)

    Returns:
        Keypair; identical seeds always yield identical keypairs
    """
    if not isinstance(seed, (bytes, bytearray)) or len(seed) < 32:
        raise EncryptionError("Seed must be at least 32 bytes", ErrorKind.INVALID_KEY)
    secret = ScalarField.from_seed(bytes(seed[:32]), DOMAIN_ELGAMAL_KEY)
    return Keypair.from_private(Scalar.from_bytes(secret))


def generate_keypair() -> Keypair:
    """Random keypair."""
    return Keypair.from_private(Scalar.from_bytes(ScalarField.random()))


def serialize_public_key(public_key: Point) -> bytes:
    return public_key.serialize()


def deserialize_public_key(data: bytes) -> Point:
    """Parse and validate a 32-byte public key."""
    if len(data) != POINT_SIZE or not Ed25519Point.is_valid_point(bytes(data)):
        raise EncryptionError("Invalid ElGamal public key", ErrorKind.INVALID_KEY)
    return Point(bytes(data))


def _check_public_key(public_key: Point) -> None:
    if not isinstance(public_key, Point) or not Ed25519Point.is_valid_point(public_key.data):
        raise EncryptionError("Invalid ElGamal public key", ErrorKind.INVALID_KEY)


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise EncryptionError("Amount must be an integer", ErrorKind.INVALID_AMOUNT)
    if amount < 0 or amount >= MAX_AMOUNT:
        raise EncryptionError("Amount must be in [0, 2^64)", ErrorKind.INVALID_AMOUNT)


# ============================================================================
# ENCRYPT / DECRYPT
# ============================================================================

def _encrypt_with(amount: int, public_key: Point, r: bytes) -> Ciphertext:
    c1 = Ed25519Point.scalarmult_base(r)
    m_G = Ed25519Point.scalarmult_base(amount.to_bytes(SCALAR_SIZE, 'little'))
    r_P = Ed25519Point.scalarmult(r, public_key.data)
    c2 = Ed25519Point.point_add(m_G, r_P)
    return Ciphertext(c1=Point(c1), c2=Point(c2))


def encrypt(amount: int, public_key: Point) -> Ciphertext:
    """
    Encrypt amount under public_key with fresh randomness.

    Raises:
        EncryptionError: amount outside [0, 2^64) or invalid public key
    """
    _check_amount(amount)
    _check_public_key(public_key)
    return _encrypt_with(amount, public_key, ScalarField.random())


def decrypt(
    ciphertext: Ciphertext,
    private_key: Scalar,
    max_amount: int = DEFAULT_MAX_DECRYPTABLE_AMOUNT,
) -> int:
    """
    Decrypt to an amount in [0, max_amount).

    Raises:
        EncryptionError: malformed ciphertext, or no amount in range
            (including decryption under the wrong key)
    """
    if not isinstance(ciphertext, Ciphertext):
        raise EncryptionError("Expected Ciphertext", ErrorKind.INVALID_CIPHERTEXT)
    if not ciphertext.c1.is_valid() or not ciphertext.c2.is_valid():
        raise EncryptionError("Ciphertext contains invalid points", ErrorKind.INVALID_CIPHERTEXT)

    try:
        sk_c1 = Ed25519Point.scalarmult(private_key.to_bytes(), ciphertext.c1.data)
        m_G = Ed25519Point.point_sub(ciphertext.c2.data, sk_c1)
    except PrivacyError as e:
        raise EncryptionError("Ciphertext decryption failed", ErrorKind.INVALID_CIPHERTEXT) from e

    return get_solver(max_amount).solve(m_G)


def serialize_ciphertext(ciphertext: Ciphertext) -> bytes:
    return ciphertext.serialize()


def deserialize_ciphertext(data: bytes) -> Ciphertext:
    """Parse a 64-byte C1 || C2 ciphertext."""
    if len(data) != CIPHERTEXT_SIZE:
        raise EncryptionError(
            f"Ciphertext must be {CIPHERTEXT_SIZE} bytes",
            ErrorKind.INVALID_CIPHERTEXT,
            {"length": len(data)},
        )
    ciphertext = Ciphertext.from_bytes(bytes(data))
    if not ciphertext.c1.is_valid() or not ciphertext.c2.is_valid():
        raise EncryptionError("Ciphertext contains invalid points", ErrorKind.INVALID_CIPHERTEXT)
    return ciphertext


def add_ciphertexts(a: Ciphertext, b: Ciphertext) -> Ciphertext:
    """Homomorphic addition: decrypts to m_a + m_b."""
    return Ciphertext(
        c1=Point(Ed25519Point.point_add(a.c1.data, b.c1.data)),
        c2=Point(Ed25519Point.point_add(a.c2.data, b.c2.data)),
    )


def sub_ciphertexts(a: Ciphertext, b: Ciphertext) -> Ciphertext:
    """Homomorphic subtraction: decrypts to m_a - m_b."""
    return Ciphertext(
        c1=Point(Ed25519Point.point_sub(a.c1.data, b.c1.data)),
        c2=Point(Ed25519Point.point_sub(a.c2.data, b.c2.data)),
    )


# ============================================================================
# ENCRYPTED AMOUNTS
# ============================================================================

def encrypt_amount(
    amount: int,
    public_key: Point,
    proof_backend: Optional[ProofBackend] = None,
) -> EncryptedAmount:
    """
    Encrypt amount and commit to it with the same randomness.

    C = amount*H + r*G shares r with the ciphertext, so the sender can
    open the commitment with EncryptedAmount.randomness. A range proof
    is attached only when a proof backend is given.
    """
    _check_amount(amount)
    _check_public_key(public_key)

    r = ScalarField.random()
    blinding = Scalar.from_bytes(r)
    ciphertext = _encrypt_with(amount, public_key, r)
    commitment = generate_commitment(amount, blinding)

    range_proof = b""
    if proof_backend is not None:
        range_proof = generate_amount_proof(amount, commitment, blinding, proof_backend).serialize()

    return EncryptedAmount(
        ciphertext=ciphertext,
        commitment=commitment,
        range_proof=range_proof,
        randomness=blinding,
    )


def verify(
    encrypted_amount: EncryptedAmount,
    proof_backend: ProofBackend = DEFAULT_PROOF_BACKEND,
) -> bool:
    """
    Check an encrypted amount.

    Without a range proof only structure is checked (valid points).
    With a proof, it must be bound to the commitment and accepted by
    the backend.

    Returns:
        False on any tampered or malformed input (never raises for that)

    Raises:
        ProofVerificationError(NOT_IMPLEMENTED): a proof is present but
            the backend cannot verify it
    """
    try:
        ciphertext = encrypted_amount.ciphertext
        if not Ed25519Point.is_valid_point(ciphertext.c1.data):
            return False
        if not ciphertext.c2.is_valid():
            return False
        commitment = encrypted_amount.commitment
        if not commitment.point.is_valid():
            return False
        if not encrypted_amount.range_proof:
            return True

        proof = ZKProof.deserialize(encrypted_amount.range_proof)
        if commitment.serialize() not in proof.public_inputs:
            logger.debug("Range proof not bound to commitment")
            return False
        return bool(proof_backend.verify_proof(proof, (commitment.serialize(),)))

    except ProofVerificationError as e:
        if e.kind == ErrorKind.NOT_IMPLEMENTED:
            raise
        logger.debug(f"Encrypted amount verification failed: {e}")
        return False
    except (PrivacyError, AttributeError, ValueError, TypeError) as e:
        logger.debug(f"Encrypted amount verification failed: {e}")
        return False


def decrypt_amount(
    encrypted_amount: EncryptedAmount,
    private_key: Scalar,
    max_amount: int = DEFAULT_MAX_DECRYPTABLE_AMOUNT,
) -> int:
    return decrypt(encrypted_amount.ciphertext, private_key, max_amount)


def open_commitment(encrypted_amount: EncryptedAmount, amount: int) -> Commitment:
    """Recompute the commitment from sender-side randomness."""
    if encrypted_amount.randomness is None:
        raise EncryptionError("Commitment randomness not available", ErrorKind.INVALID_PARAMETER)
    return generate_commitment(amount, encrypted_amount.randomness)
