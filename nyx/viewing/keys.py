"""
Nyx - Viewing Keys

Viewing keys give an auditor time-bounded, permissioned read access
to an owner's encrypted balances and transfer amounts without any
spending authority.

Derivation (per owner O and account A):
- derivation path:  m/nyx'/view'/<base58 O>/<base58 A>
- public component: hash_to_point(domain || O || A)
- key material:     elgamal_secret XOR SHA-512(domain || O || A)[:32]
- auditor binding:  key material sealed with ECIES
                    (ephemeral ECDH on Ed25519 + AES-256-GCM, aad = path)

The owner signs every key with its Ed25519 identity, so expiry and
permissions can be checked locally. Every issuance gets a fresh key_id;
several keys for one account (e.g. one per auditor) stay valid side by
side. Revocation re-signs a copy of that one key whose expiry lies in
the past and records it under the same key_id.
"""

import hashlib
import hmac
import logging
import secrets
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import base58
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from nyx.config import PrivacyConfig
from nyx.constants import (
    AES_NONCE_SIZE,
    AES_TAG_SIZE,
    DOMAIN_VIEWING_KEY,
    DOMAIN_VIEWING_KEY_MASK,
    DOMAIN_VIEWING_KEY_SEAL,
    POINT_SIZE,
    SCALAR_SIZE,
    SECONDS_PER_DAY,
    VIEWING_KEY_PATH_PREFIX,
)
from nyx.core.curve import Ed25519Point, ScalarField
from nyx.core.types import (
    EncryptedAmount,
    EncryptedBalance,
    Point,
    Scalar,
    ViewingKey,
    ViewingKeyPermissions,
)
from nyx.crypto import elgamal
from nyx.errors import (
    ComplianceError,
    EncryptionError,
    ErrorKind,
    PrivacyError,
    ViewingKeyError,
)
from nyx.viewing.store import ViewingKeyStore, create_store

logger = logging.getLogger("nyx.viewing")

SEALED_SIZE = POINT_SIZE + AES_NONCE_SIZE + SCALAR_SIZE + AES_TAG_SIZE


@dataclass(frozen=True)
class ViewingKeyConfig:
    """
    Options for generate_viewing_key().

    permissions None uses the configured defaults (balances + amounts,
    all accounts). expiration_days None means no expiry; zero or
    negative values produce a key that is already expired.
    """
    permissions: Optional[ViewingKeyPermissions] = None
    expiration_days: Optional[float] = None
    auditor_public_key: Optional[Point] = None


# ============================================================================
# DERIVATION
# ============================================================================

def derivation_path(owner_public_key: bytes, account: bytes) -> str:
    """Injective in (owner, account): base58 never contains '/'."""
    return "/".join((
        VIEWING_KEY_PATH_PREFIX,
        base58.b58encode(owner_public_key).decode(),
        base58.b58encode(account).decode(),
    ))


def _binding(owner_public_key: bytes, account: bytes) -> bytes:
    return len(owner_public_key).to_bytes(1, 'little') + owner_public_key + account


def viewing_public_key(owner_public_key: bytes, account: bytes) -> Point:
    return Point(Ed25519Point.hash_to_point(DOMAIN_VIEWING_KEY + _binding(owner_public_key, account)))


def _mask(owner_public_key: bytes, account: bytes) -> bytes:
    digest = hashlib.sha512(DOMAIN_VIEWING_KEY_MASK + _binding(owner_public_key, account)).digest()
    return digest[:SCALAR_SIZE]


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


# ============================================================================
# AUDITOR SEALING (ECIES)
# ============================================================================

def _seal_key(shared_point: bytes, ephemeral_public: bytes) -> bytes:
    return hashlib.sha256(DOMAIN_VIEWING_KEY_SEAL + shared_point + ephemeral_public).digest()


def seal_for_auditor(material: bytes, auditor_public_key: Point, aad: bytes) -> bytes:
    """ephemeral_pub(32) || nonce(12) || AES-GCM(material) || tag(16)."""
    if not Ed25519Point.is_valid_point(auditor_public_key.data):
        raise ViewingKeyError("Invalid auditor public key", ErrorKind.MALFORMED_VIEWING_KEY)

    e = ScalarField.random()
    ephemeral_public = Ed25519Point.scalarmult_base(e)
    shared = Ed25519Point.scalarmult(e, auditor_public_key.data)
    nonce = secrets.token_bytes(AES_NONCE_SIZE)
    sealed = AESGCM(_seal_key(shared, ephemeral_public)).encrypt(nonce, material, aad)
    return ephemeral_public + nonce + sealed


def unseal_for_auditor(blob: bytes, auditor_private_key: Scalar, aad: bytes) -> bytes:
    if len(blob) != SEALED_SIZE:
        raise ViewingKeyError("Sealed key material has wrong size", ErrorKind.MALFORMED_VIEWING_KEY)

    ephemeral_public = blob[:POINT_SIZE]
    nonce = blob[POINT_SIZE:POINT_SIZE + AES_NONCE_SIZE]
    sealed = blob[POINT_SIZE + AES_NONCE_SIZE:]
    if not Ed25519Point.is_valid_point(ephemeral_public):
        raise ViewingKeyError("Sealed key material is malformed", ErrorKind.MALFORMED_VIEWING_KEY)

    shared = Ed25519Point.scalarmult(auditor_private_key.to_bytes(), ephemeral_public)
    try:
        return AESGCM(_seal_key(shared, ephemeral_public)).decrypt(nonce, sealed, aad)
    except InvalidTag as e:
        raise ViewingKeyError(
            "Sealed key material cannot be opened with this auditor key",
            ErrorKind.AUDITOR_KEY_MISMATCH,
        ) from e


# ============================================================================
# MANAGER
# ============================================================================

class ViewingKeyManager:
    """
    Generates, validates, revokes and uses viewing keys.

    Constructed with the owner's signing seed to issue keys; without a
    seed it can still validate keys and decrypt with them (auditor side).
    """

    def __init__(
        self,
        owner_seed: Optional[bytes] = None,
        store: Optional[ViewingKeyStore] = None,
        config: Optional[PrivacyConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = (config or PrivacyConfig()).ensure_valid()
        self.store = store if store is not None else create_store(self.config.store)
        self._clock = clock

        self._signing_key: Optional[SigningKey] = None
        self.owner_public_key: Optional[bytes] = None
        self._elgamal = None
        if owner_seed is not None:
            if len(owner_seed) < 32:
                raise ViewingKeyError("Owner seed must be at least 32 bytes", ErrorKind.INVALID_PARAMETER)
            self._signing_key = SigningKey(bytes(owner_seed[:32]))
            self.owner_public_key = bytes(self._signing_key.verify_key)
            self._elgamal = elgamal.derive_keypair(owner_seed)

        # Entries vanish once no caller holds the lock
        self._locks: "weakref.WeakValueDictionary[Tuple[bytes, bytes], threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    @property
    def elgamal_public_key(self) -> Optional[Point]:
        """Owner's ElGamal public key (balances are encrypted to it)."""
        return self._elgamal.public_key if self._elgamal else None

    def _account_lock(self, account: bytes) -> threading.Lock:
        with self._locks_guard:
            key = (self.owner_public_key, account)
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def _require_owner(self) -> SigningKey:
        if self._signing_key is None:
            raise ViewingKeyError(
                "Owner signing key required to issue or revoke viewing keys",
                ErrorKind.OWNER_KEY_REQUIRED,
            )
        return self._signing_key

    def _sign(self, key: ViewingKey) -> ViewingKey:
        signed = self._require_owner().sign(key.signing_payload())
        return key.with_changes(signature=signed.signature)

    # -------------------------------------------------------------------------
    # Issue / revoke
    # -------------------------------------------------------------------------

    def generate_viewing_key(
        self,
        account: bytes,
        config: Optional[ViewingKeyConfig] = None,
    ) -> ViewingKey:
        """
        Issue a viewing key bound to (owner, account).

        Args:
            account: Account address (raw bytes)
            config: Permissions, expiry and optional auditor binding

        Returns:
            Signed ViewingKey (also written to the store)
        """
        self._require_owner()
        if not isinstance(account, bytes) or not account:
            raise ViewingKeyError("Account must be non-empty bytes", ErrorKind.INVALID_PARAMETER)

        defaults = self.config.viewing_keys
        if config is None:
            config = ViewingKeyConfig(expiration_days=defaults.expiration_days)
        permissions = config.permissions or ViewingKeyPermissions(
            can_view_balances=defaults.can_view_balances,
            can_view_amounts=defaults.can_view_amounts,
            can_view_metadata=defaults.can_view_metadata,
        )

        owner = self.owner_public_key
        path = derivation_path(owner, account)
        material = _xor(self._elgamal.private_key.to_bytes(), _mask(owner, account))
        if config.auditor_public_key is not None:
            material = seal_for_auditor(material, config.auditor_public_key, path.encode())

        with self._account_lock(account):
            now = self._clock()
            expires_at = None
            if config.expiration_days is not None:
                expires_at = now + config.expiration_days * SECONDS_PER_DAY

            key = self._sign(ViewingKey(
                public_key=viewing_public_key(owner, account),
                encrypted_private_key=material,
                derivation_path=path,
                permissions=permissions,
                owner_public_key=owner,
                owner_elgamal_public_key=self._elgamal.public_key,
                account=account,
                expires_at=expires_at,
                auditor_public_key=config.auditor_public_key,
                created_at=now,
                key_id=secrets.token_hex(16),
            ))
            self.store.put(key)

        logger.info(
            f"Viewing key issued: {path} (expires_at={expires_at}, "
            f"auditor_bound={key.is_sealed})"
        )
        return key

    def revoke_viewing_key(self, key: ViewingKey) -> ViewingKey:
        """
        Return a re-signed copy expiring in the past, and record it.

        Only this key is affected; other keys for the same account,
        earlier or later, keep their own validity.
        """
        self._require_owner()
        if key.owner_public_key != self.owner_public_key:
            raise ViewingKeyError("Viewing key belongs to another owner", ErrorKind.NOT_KEY_OWNER)
        if not self.verify_signature(key):
            raise ViewingKeyError("Viewing key signature is invalid", ErrorKind.INVALID_SIGNATURE)

        with self._account_lock(key.account):
            now = self._clock()
            revoked = self._sign(key.with_changes(expires_at=now - 1))
            self.store.put(revoked)

        logger.info(f"Viewing key revoked: {key.derivation_path} ({key.key_id})")
        return revoked

    def list_viewing_keys(self, account: Optional[bytes] = None) -> List[ViewingKey]:
        self._require_owner()
        return self.store.list_keys(self.owner_public_key, account)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    @staticmethod
    def verify_signature(key: ViewingKey) -> bool:
        try:
            VerifyKey(key.owner_public_key).verify(key.signing_payload(), key.signature)
            return True
        except (BadSignatureError, ValueError, TypeError) as e:
            logger.debug(f"Viewing key signature check failed: {e}")
            return False

    def _is_revoked(self, key: ViewingKey, now: float) -> bool:
        """A signed, expired record stored under the same key_id."""
        stored = self.store.get(key.key_id)
        if stored is None or stored.owner_public_key != key.owner_public_key:
            return False
        return stored.is_expired(now) and self.verify_signature(stored)

    def is_viewing_key_valid(self, key: ViewingKey) -> bool:
        """False if expired, revoked, tampered, or granting nothing."""
        now = self._clock()
        if not key.key_id or not self.verify_signature(key):
            return False
        if key.is_expired(now) or self._is_revoked(key, now):
            return False
        return key.permissions.grants_any()

    @staticmethod
    def can_access_account(key: ViewingKey, account: bytes) -> bool:
        """Empty allowed_accounts grants every account of the owner."""
        return key.permissions.covers(account)

    def _authorize(self, key: ViewingKey, capability: str, account: bytes) -> None:
        if not key.key_id:
            raise ViewingKeyError("Viewing key has no key_id", ErrorKind.MALFORMED_VIEWING_KEY)
        if not self.verify_signature(key):
            raise ViewingKeyError("Viewing key signature is invalid", ErrorKind.INVALID_SIGNATURE)

        now = self._clock()
        if key.is_expired(now) or self._is_revoked(key, now):
            raise ComplianceError(
                "Viewing key is expired or revoked",
                ErrorKind.VIEWING_KEY_EXPIRED,
                {"derivation_path": key.derivation_path, "expires_at": key.expires_at},
            )
        if not key.permissions.grants_any():
            raise ComplianceError("Viewing key grants no permissions", ErrorKind.PERMISSION_DENIED)

        allowed = {
            "balances": key.permissions.can_view_balances,
            "amounts": key.permissions.can_view_amounts,
        }[capability]
        if not allowed:
            raise ComplianceError(
                f"Viewing key does not permit viewing {capability}",
                ErrorKind.PERMISSION_DENIED,
                {"derivation_path": key.derivation_path, "capability": capability},
            )
        if not self.can_access_account(key, account):
            raise ComplianceError(
                "Account is outside the viewing key scope",
                ErrorKind.ACCOUNT_OUT_OF_SCOPE,
                {
                    "derivation_path": key.derivation_path,
                    "account": base58.b58encode(account).decode(),
                },
            )

    def _recover_secret(self, key: ViewingKey, auditor_private_key: Optional[Scalar]) -> Scalar:
        material = key.encrypted_private_key
        if key.is_sealed:
            if auditor_private_key is None:
                raise ViewingKeyError(
                    "Viewing key is sealed for an auditor", ErrorKind.AUDITOR_KEY_REQUIRED
                )
            auditor_public = Ed25519Point.scalarmult_base(auditor_private_key.to_bytes())
            if not hmac.compare_digest(auditor_public, key.auditor_public_key.data):
                raise ViewingKeyError(
                    "Auditor key does not match the viewing key", ErrorKind.AUDITOR_KEY_MISMATCH
                )
            material = unseal_for_auditor(material, auditor_private_key, key.derivation_path.encode())

        if len(material) != SCALAR_SIZE:
            raise ViewingKeyError("Viewing key material has wrong size", ErrorKind.MALFORMED_VIEWING_KEY)

        secret = Scalar.from_bytes(_xor(material, _mask(key.owner_public_key, key.account)))
        derived_public = Ed25519Point.scalarmult_base(secret.to_bytes())
        if not hmac.compare_digest(derived_public, key.owner_elgamal_public_key.data):
            raise ViewingKeyError(
                "Viewing key material does not match the owner key",
                ErrorKind.KEY_MATERIAL_MISMATCH,
            )
        return secret

    # -------------------------------------------------------------------------
    # Decryption
    # -------------------------------------------------------------------------

    def decrypt_balance(
        self,
        encrypted_balance: EncryptedBalance,
        key: ViewingKey,
        auditor_private_key: Optional[Scalar] = None,
    ) -> int:
        """
        Decrypt an encrypted balance with a viewing key.

        Raises:
            ComplianceError: expired/revoked, no balance permission, or
                account outside scope
            ViewingKeyError: tampered key, or auditor key missing/wrong
            EncryptionError: malformed ciphertext or not decryptable
        """
        account = encrypted_balance.account or key.account
        self._authorize(key, "balances", account)

        if not encrypted_balance.exists:
            raise EncryptionError("Encrypted balance does not exist", ErrorKind.INVALID_CIPHERTEXT)
        ciphertext = elgamal.deserialize_ciphertext(encrypted_balance.ciphertext)
        secret = self._recover_secret(key, auditor_private_key)
        amount = elgamal.decrypt(ciphertext, secret, self.config.elgamal.max_decryptable_amount)
        logger.debug(f"Balance decrypted with viewing key {key.derivation_path}")
        return amount

    def decrypt_transaction_amount(
        self,
        encrypted_amount: EncryptedAmount,
        key: ViewingKey,
        account: Optional[bytes] = None,
        auditor_private_key: Optional[Scalar] = None,
    ) -> int:
        """Decrypt a transfer amount; requires can_view_amounts."""
        self._authorize(key, "amounts", account or key.account)
        secret = self._recover_secret(key, auditor_private_key)
        try:
            return elgamal.decrypt(
                encrypted_amount.ciphertext, secret, self.config.elgamal.max_decryptable_amount
            )
        except PrivacyError:
            logger.debug(f"Amount decryption failed for {key.derivation_path}")
            raise
