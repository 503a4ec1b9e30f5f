"""
Nyx - Stealth Announcement Memos

Senders publish the ephemeral public key in the transaction memo:

    STEALTH:<base58 ephemeral public key>[:<metadata>]

Parsing is total: anything malformed yields None.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import base58

from nyx.constants import (
    STEALTH_MEMO_PREFIX,
    MEMO_SEPARATOR,
    MAX_MEMO_LENGTH,
    POINT_SIZE,
)
from nyx.core.curve import Ed25519Point
from nyx.core.types import Point
from nyx.errors import ErrorKind, StealthAddressError

logger = logging.getLogger("nyx.memo")


@dataclass(frozen=True)
class MemoAnnouncement:
    ephemeral_public_key: Point
    metadata: Optional[str] = None


def create_ephemeral_key_memo(ephemeral_public_key: Point, metadata: Optional[str] = None) -> str:
    """Format the announcement memo for an ephemeral key."""
    if not Ed25519Point.is_valid_point(bytes(ephemeral_public_key)):
        raise StealthAddressError("Invalid ephemeral public key", ErrorKind.INVALID_EPHEMERAL_KEY)

    fields = [STEALTH_MEMO_PREFIX, base58.b58encode(bytes(ephemeral_public_key)).decode()]
    if metadata:
        if MEMO_SEPARATOR in metadata:
            raise StealthAddressError("Memo metadata cannot contain ':'", ErrorKind.INVALID_MEMO)
        fields.append(metadata)

    memo = MEMO_SEPARATOR.join(fields)
    if len(memo.encode("utf-8")) > MAX_MEMO_LENGTH:
        raise StealthAddressError("Memo too long", ErrorKind.INVALID_MEMO)
    return memo


def parse_memo(memo: str) -> Optional[MemoAnnouncement]:
    """Parse a 2- or 3-field announcement memo; None if malformed."""
    if not isinstance(memo, str) or len(memo.encode("utf-8")) > MAX_MEMO_LENGTH:
        return None

    parts = memo.split(MEMO_SEPARATOR)
    if len(parts) not in (2, 3) or parts[0] != STEALTH_MEMO_PREFIX or not parts[1]:
        return None

    try:
        key = base58.b58decode(parts[1])
    except ValueError:
        return None

    if len(key) != POINT_SIZE or not Ed25519Point.is_valid_point(key):
        return None

    metadata = parts[2] if len(parts) == 3 and parts[2] else None
    return MemoAnnouncement(ephemeral_public_key=Point(key), metadata=metadata)


def parse_ephemeral_key_memo(memo: str) -> Optional[Point]:
    """Ephemeral public key from a memo, or None."""
    announcement = parse_memo(memo)
    return announcement.ephemeral_public_key if announcement else None
