"""
Nyx Confidential Balances Constants

All protocol constants defined here for single source of truth.
Scalars and points are LITTLE-ENDIAN (Ed25519 convention).
"""

from typing import Final

# ==============================================================================
# CURVE CONSTANTS (Ed25519 prime-order subgroup)
# ==============================================================================

CURVE_ORDER: Final[int] = 2**252 + 27742317777372353535851937790883648493
FIELD_PRIME: Final[int] = 2**255 - 19

POINT_SIZE: Final[int] = 32                    # Compressed point
SCALAR_SIZE: Final[int] = 32                   # Little-endian scalar
CIPHERTEXT_SIZE: Final[int] = 2 * POINT_SIZE   # C1 || C2
COMMITMENT_SIZE: Final[int] = POINT_SIZE

# Neutral element (0, 1) in compressed form
IDENTITY_POINT: Final[bytes] = (1).to_bytes(32, 'little')
ZERO_SCALAR: Final[bytes] = bytes(32)

# ==============================================================================
# AMOUNT CONSTANTS
# ==============================================================================

MAX_AMOUNT: Final[int] = 2**64                 # Exclusive upper bound for uint64
DEFAULT_MAX_DECRYPTABLE_AMOUNT: Final[int] = 2**32
MAX_DECRYPTABLE_AMOUNT_LIMIT: Final[int] = 2**40   # Baby-step table memory bound

# ==============================================================================
# DOMAIN SEPARATION TAGS
# ==============================================================================

DOMAIN_HASH_TO_POINT: Final[bytes] = b"Nyx_HashToPoint_v1"
DOMAIN_ELGAMAL_KEY: Final[bytes] = b"Nyx_ElGamal_Key_v1"
DOMAIN_STEALTH: Final[bytes] = b"Nyx_Stealth_v1"
DOMAIN_STEALTH_VIEW: Final[bytes] = b"Nyx_Stealth_View_v1"
DOMAIN_STEALTH_SPEND: Final[bytes] = b"Nyx_Stealth_Spend_v1"
DOMAIN_VIEWING_KEY: Final[bytes] = b"Nyx_ViewingKey_v1"
DOMAIN_VIEWING_KEY_MASK: Final[bytes] = b"Nyx_ViewingKey_Mask_v1"
DOMAIN_VIEWING_KEY_SEAL: Final[bytes] = b"Nyx_ViewingKey_Seal_v1"
DOMAIN_VIEWING_KEY_SIG: Final[bytes] = b"Nyx_ViewingKey_Sig_v1"

# Pedersen generator H (hash-derived, nothing-up-my-sleeve)
H_GENERATOR_SEED: Final[bytes] = b"Nyx Pedersen H Generator v1"

# ==============================================================================
# STEALTH ANNOUNCEMENTS
# ==============================================================================

STEALTH_MEMO_PREFIX: Final[str] = "STEALTH"
STEALTH_META_ADDRESS_PREFIX: Final[str] = "stealth"
MEMO_SEPARATOR: Final[str] = ":"
MAX_MEMO_LENGTH: Final[int] = 566              # Ledger memo field limit

# ==============================================================================
# VIEWING KEYS
# ==============================================================================

VIEWING_KEY_PATH_PREFIX: Final[str] = "m/nyx'/view'"
SECONDS_PER_DAY: Final[int] = 24 * 60 * 60
AES_KEY_SIZE: Final[int] = 32
AES_NONCE_SIZE: Final[int] = 12
AES_TAG_SIZE: Final[int] = 16

# ==============================================================================
# SCANNER
# ==============================================================================

DEFAULT_SCAN_BATCH_SIZE: Final[int] = 100
DEFAULT_SCAN_MAX_TRANSACTIONS: Final[int] = 10_000
DEFAULT_SCAN_CACHE_TTL_SEC: Final[float] = 300.0
DEFAULT_SCAN_CACHE_MAX_ENTRIES: Final[int] = 1024
DEFAULT_SCAN_RETRY_COUNT: Final[int] = 3
DEFAULT_SCAN_RETRY_DELAY_SEC: Final[float] = 0.5
DEFAULT_SCAN_BACKOFF_FACTOR: Final[float] = 2.0
