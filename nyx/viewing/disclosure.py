"""
Nyx - Selective Disclosure

Share non-secret parts of encrypted records with a third party, gated
by viewing-key permissions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from nyx.core.types import EncryptedAmount, EncryptedBalance, ViewingKeyPermissions


class DisclosureCategory(str, Enum):
    BALANCES = "balances"
    AMOUNTS = "amounts"
    METADATA = "metadata"


@dataclass(frozen=True)
class DisclosurePolicy:
    disclose_commitment: bool = True
    disclose_timestamps: bool = True
    disclose_exists_flag: bool = True


@dataclass(frozen=True)
class DisclosedBalance:
    commitment: Optional[bytes] = None
    last_updated: Optional[float] = None
    exists: Optional[bool] = None


@dataclass(frozen=True)
class DisclosedAmount:
    commitment: Optional[bytes] = None
    range_proof: Optional[bytes] = None


def disclose_encrypted_balance(
    balance: EncryptedBalance,
    policy: DisclosurePolicy = DisclosurePolicy(),
) -> DisclosedBalance:
    """Project a balance onto the fields the policy allows. Never the ciphertext."""
    return DisclosedBalance(
        commitment=balance.commitment if policy.disclose_commitment else None,
        last_updated=balance.last_updated if policy.disclose_timestamps else None,
        exists=balance.exists if policy.disclose_exists_flag else None,
    )


def disclose_encrypted_amount(
    amount: EncryptedAmount,
    include_commitment: bool = True,
    include_range_proof: bool = False,
) -> DisclosedAmount:
    return DisclosedAmount(
        commitment=amount.commitment.serialize() if include_commitment else None,
        range_proof=amount.range_proof if include_range_proof else None,
    )


def can_disclose(permissions: ViewingKeyPermissions, category: DisclosureCategory) -> bool:
    category = DisclosureCategory(category)
    if category is DisclosureCategory.BALANCES:
        return permissions.can_view_balances
    if category is DisclosureCategory.AMOUNTS:
        return permissions.can_view_amounts
    return permissions.can_view_metadata
