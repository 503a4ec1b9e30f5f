"""
Nyx Stealth Address Tests
"""

import pytest

from nyx.core.curve import Ed25519Point
from nyx.core.types import Point
from nyx.errors import ErrorKind, StealthAddressError
from nyx.stealth import (
    StealthCandidate,
    decode_meta_address,
    derive_stealth_spending_key,
    encode_meta_address,
    generate_stealth_address,
    generate_stealth_meta_address,
    is_transaction_for_me,
    scan_transactions,
)


class TestMetaAddress:
    """Tests for meta-address generation and encoding."""

    def test_independent_keys(self, meta_address):
        """Test view and spend keys differ."""
        assert meta_address.view_public != meta_address.spend_public
        assert meta_address.has_private_keys

    def test_seeded(self):
        """Test seeded meta-addresses are reproducible."""
        seed = b"\x11" * 32
        a = generate_stealth_meta_address(seed)
        b = generate_stealth_meta_address(seed)
        assert a.view_public == b.view_public
        assert a.spend_public == b.spend_public

    def test_short_seed(self):
        """Test short seeds are rejected."""
        with pytest.raises(StealthAddressError):
            generate_stealth_meta_address(b"\x11" * 8)

    def test_encode_decode(self, meta_address):
        """Test the shareable encoding carries public keys only."""
        encoded = encode_meta_address(meta_address)
        assert encoded.startswith("stealth:")
        decoded = decode_meta_address(encoded)
        assert decoded.view_public == meta_address.view_public
        assert decoded.spend_public == meta_address.spend_public
        assert not decoded.has_private_keys

    @pytest.mark.parametrize("encoded", ["", "stealth:ab", "other:00:00", "stealth:zz:zz"])
    def test_decode_invalid(self, encoded):
        """Test malformed encodings raise INVALID_META_ADDRESS."""
        with pytest.raises(StealthAddressError) as exc:
            decode_meta_address(encoded)
        assert exc.value.kind == ErrorKind.INVALID_META_ADDRESS


class TestStealthAddress:
    """Tests for sender and recipient derivation."""

    def test_recipient_detects(self, meta_address):
        """Test the recipient recognises its own payment."""
        stealth, ephemeral = generate_stealth_address(meta_address.public())
        info = is_transaction_for_me(ephemeral.public_key, stealth.address, meta_address)
        assert info.is_for_me
        assert info.stealth_address == stealth.address
        assert info.shared_secret == stealth.shared_secret_hash

    def test_other_recipient_rejects(self, meta_address, other_meta_address):
        """Test another meta-address does not match."""
        stealth, ephemeral = generate_stealth_address(meta_address.public())
        info = is_transaction_for_me(ephemeral.public_key, stealth.address, other_meta_address)
        assert not info.is_for_me
        assert info.shared_secret is None

    def test_unlinkable(self, meta_address):
        """Test two payments to the same recipient use different addresses."""
        a, ea = generate_stealth_address(meta_address)
        b, eb = generate_stealth_address(meta_address)
        assert a.address != b.address
        assert ea.public_key != eb.public_key

    def test_address_valid_point(self, meta_address):
        """Test the one-time address is a subgroup point."""
        stealth, _ = generate_stealth_address(meta_address)
        assert Ed25519Point.is_valid_point(stealth.address.data)
        assert stealth.to_base58()

    def test_malformed_ephemeral(self, meta_address):
        """Test malformed ephemeral keys yield not-for-me."""
        stealth, _ = generate_stealth_address(meta_address)
        info = is_transaction_for_me(Point(b"\xff" * 32), stealth.address, meta_address)
        assert not info.is_for_me

    def test_requires_view_key(self, meta_address):
        """Test checking without the view private key raises."""
        stealth, ephemeral = generate_stealth_address(meta_address)
        with pytest.raises(StealthAddressError) as exc:
            is_transaction_for_me(ephemeral.public_key, stealth.address, meta_address.public())
        assert exc.value.kind == ErrorKind.MISSING_PRIVATE_KEY


class TestSpendingKey:
    """Tests for one-time spending key derivation."""

    def test_spending_key_controls_address(self, meta_address):
        """Test x*G equals the stealth address."""
        stealth, ephemeral = generate_stealth_address(meta_address.public())
        info = is_transaction_for_me(ephemeral.public_key, stealth.address, meta_address)
        keypair = derive_stealth_spending_key(meta_address, info.shared_secret)
        assert keypair.public_key == stealth.address

    def test_requires_spend_key(self, meta_address):
        """Test derivation without the spend private key raises."""
        with pytest.raises(StealthAddressError) as exc:
            derive_stealth_spending_key(meta_address.public(), b"\x00" * 32)
        assert exc.value.kind == ErrorKind.MISSING_PRIVATE_KEY

    def test_bad_secret_length(self, meta_address):
        """Test shared secrets must be 32 bytes."""
        with pytest.raises(StealthAddressError):
            derive_stealth_spending_key(meta_address, b"\x00" * 16)


class TestScanTransactions:
    """Tests for batched candidate scanning."""

    def test_finds_only_mine(self, meta_address, other_meta_address):
        """Test matches are returned with their transaction signature."""
        mine, eph_mine = generate_stealth_address(meta_address)
        theirs, eph_theirs = generate_stealth_address(other_meta_address)
        candidates = [
            StealthCandidate(eph_theirs.public_key, theirs.address, "tx-theirs"),
            StealthCandidate(eph_mine.public_key, mine.address, "tx-mine"),
        ]
        matches = scan_transactions(candidates, meta_address)
        assert len(matches) == 1
        assert matches[0].transaction_signature == "tx-mine"
        assert matches[0].stealth_address == mine.address

    def test_empty(self, meta_address):
        """Test no candidates yields no matches."""
        assert scan_transactions([], meta_address) == []
