"""
Nyx Proof Interface Tests
"""

import pytest

from nyx.crypto import pedersen
from nyx.crypto.proofs import (
    ProofBackend,
    UnavailableProofBackend,
    ZKProof,
    generate_amount_proof,
)
from nyx.errors import ErrorKind, ProofGenerationError, ProofVerificationError


class UnboundBackend:
    def prove_range(self, amount, commitment, blinding):
        return ZKProof(proof=b"x", public_inputs=(b"other",))

    def verify_proof(self, proof, public_inputs):
        return True


class TestZKProof:
    """Tests for proof serialization."""

    def test_roundtrip(self):
        """Test serialize/deserialize preserves all fields."""
        proof = ZKProof(proof=b"\x01" * 40, public_inputs=(b"a", b"bc"), proof_system="groth16")
        parsed = ZKProof.deserialize(proof.serialize())
        assert parsed == proof

    @pytest.mark.parametrize("data", [b"", b"\x01", b"\x02\x00\x00\x00", b"\x01\x00\x00\x00\x00\x00\x00\x05"])
    def test_malformed(self, data):
        """Test malformed bytes raise PROOF_MALFORMED."""
        with pytest.raises(ProofVerificationError) as exc:
            ZKProof.deserialize(data)
        assert exc.value.kind == ErrorKind.PROOF_MALFORMED

    def test_trailing_bytes(self):
        """Test trailing data is rejected."""
        data = ZKProof(proof=b"p").serialize() + b"\x00"
        with pytest.raises(ProofVerificationError):
            ZKProof.deserialize(data)


class TestBackends:
    """Tests for proof backends."""

    def test_protocol(self):
        """Test the default backend satisfies ProofBackend."""
        assert isinstance(UnavailableProofBackend(), ProofBackend)

    def test_unavailable_prove(self):
        """Test the default backend refuses to prove."""
        r = pedersen.random_blinding()
        c = pedersen.generate_commitment(1, r)
        with pytest.raises(ProofGenerationError) as exc:
            generate_amount_proof(1, c, r)
        assert exc.value.kind == ErrorKind.NOT_IMPLEMENTED

    def test_unavailable_verify(self):
        """Test the default backend refuses to verify."""
        with pytest.raises(ProofVerificationError) as exc:
            UnavailableProofBackend().verify_proof(ZKProof(proof=b"p"), ())
        assert exc.value.kind == ErrorKind.NOT_IMPLEMENTED

    def test_unbound_proof_rejected(self):
        """Test a proof not bound to the commitment is refused."""
        r = pedersen.random_blinding()
        c = pedersen.generate_commitment(1, r)
        with pytest.raises(ProofGenerationError):
            generate_amount_proof(1, c, r, UnboundBackend())
