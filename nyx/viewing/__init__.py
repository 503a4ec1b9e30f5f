"""
Nyx viewing keys: issuance, validation, auditor decryption, disclosure.
"""

from nyx.viewing.keys import (
    ViewingKeyConfig,
    ViewingKeyManager,
    derivation_path,
    viewing_public_key,
    seal_for_auditor,
    unseal_for_auditor,
)
from nyx.viewing.store import (
    ViewingKeyStore,
    MemoryViewingKeyStore,
    SQLiteViewingKeyStore,
    create_store,
)
from nyx.viewing.disclosure import (
    DisclosureCategory,
    DisclosurePolicy,
    DisclosedBalance,
    DisclosedAmount,
    disclose_encrypted_balance,
    disclose_encrypted_amount,
    can_disclose,
)

__all__ = [
    "ViewingKeyConfig",
    "ViewingKeyManager",
    "derivation_path",
    "viewing_public_key",
    "seal_for_auditor",
    "unseal_for_auditor",
    "ViewingKeyStore",
    "MemoryViewingKeyStore",
    "SQLiteViewingKeyStore",
    "create_store",
    "DisclosureCategory",
    "DisclosurePolicy",
    "DisclosedBalance",
    "DisclosedAmount",
    "disclose_encrypted_balance",
    "disclose_encrypted_amount",
    "can_disclose",
]
