"""
Nyx - Zero-Knowledge Proof Interface

Range/validity proofs are produced by a pluggable backend. No
cryptographically sound backend ships with this package: the default
UnavailableProofBackend refuses to prove and refuses to verify, so an
unverifiable proof is never reported as either valid or invalid.

To use real proofs, implement ProofBackend with an audited library
and pass it to encrypt_amount()/verify().
"""

import struct
import logging
from dataclasses import dataclass, field
from typing import List, Protocol, Tuple, runtime_checkable

from nyx.core.types import Commitment, Scalar
from nyx.errors import (
    ErrorKind,
    ProofGenerationError,
    ProofVerificationError,
)

logger = logging.getLogger("nyx.proofs")

PROOF_VERSION = 1


@dataclass(frozen=True)
class ZKProof:
    """
    Opaque proof with its public inputs.

    SERIALIZATION:
        version(1) || system_len(1) || system || circuit_len(1) || circuit
        || n_inputs(1) || [len(2) || input]* || proof_len(4) || proof
    """
    proof: bytes
    public_inputs: Tuple[bytes, ...] = field(default_factory=tuple)
    proof_system: str = "unspecified"
    circuit_id: str = "range_v1"

    def serialize(self) -> bytes:
        system = self.proof_system.encode()
        circuit = self.circuit_id.encode()
        if len(system) > 255 or len(circuit) > 255 or len(self.public_inputs) > 255:
            raise ProofGenerationError("Proof metadata too large", ErrorKind.PROOF_MALFORMED)

        data = bytearray()
        data.append(PROOF_VERSION)
        data.append(len(system))
        data.extend(system)
        data.append(len(circuit))
        data.extend(circuit)
        data.append(len(self.public_inputs))
        for item in self.public_inputs:
            data.extend(struct.pack('<H', len(item)))
            data.extend(item)
        data.extend(struct.pack('<I', len(self.proof)))
        data.extend(self.proof)
        return bytes(data)

    @classmethod
    def deserialize(cls, data: bytes) -> "ZKProof":
        """Parse proof bytes; ProofVerificationError(PROOF_MALFORMED) on bad input."""
        try:
            offset = 0
            version = data[offset]
            offset += 1
            if version != PROOF_VERSION:
                raise ValueError(f"unsupported proof version {version}")

            system_len = data[offset]
            offset += 1
            system = data[offset:offset + system_len].decode()
            offset += system_len

            circuit_len = data[offset]
            offset += 1
            circuit = data[offset:offset + circuit_len].decode()
            offset += circuit_len

            n_inputs = data[offset]
            offset += 1
            inputs: List[bytes] = []
            for _ in range(n_inputs):
                item_len = struct.unpack_from('<H', data, offset)[0]
                offset += 2
                inputs.append(bytes(data[offset:offset + item_len]))
                offset += item_len

            proof_len = struct.unpack_from('<I', data, offset)[0]
            offset += 4
            proof = bytes(data[offset:offset + proof_len])
            if len(proof) != proof_len or offset + proof_len != len(data):
                raise ValueError("proof length mismatch")
        except (IndexError, struct.error, UnicodeDecodeError, ValueError) as e:
            raise ProofVerificationError(
                f"Malformed proof: {e}", ErrorKind.PROOF_MALFORMED
            ) from e

        return cls(proof=proof, public_inputs=tuple(inputs), proof_system=system, circuit_id=circuit)


@runtime_checkable
class ProofBackend(Protocol):
    """Range/validity proof capability."""

    def prove_range(self, amount: int, commitment: Commitment, blinding: Scalar) -> ZKProof:
        ...

    def verify_proof(self, proof: ZKProof, public_inputs: Tuple[bytes, ...]) -> bool:
        ...


class UnavailableProofBackend:
    """Default backend: no proof system is available."""

    name = "unavailable"

    def prove_range(self, amount: int, commitment: Commitment, blinding: Scalar) -> ZKProof:
        raise ProofGenerationError(
            "Range proof generation is not implemented: configure a proof backend",
            ErrorKind.NOT_IMPLEMENTED,
            {"backend": self.name},
        )

    def verify_proof(self, proof: ZKProof, public_inputs: Tuple[bytes, ...]) -> bool:
        raise ProofVerificationError(
            "Proof verification is not implemented: configure a proof backend",
            ErrorKind.NOT_IMPLEMENTED,
            {"backend": self.name, "proof_system": proof.proof_system},
        )


DEFAULT_PROOF_BACKEND = UnavailableProofBackend()


def generate_amount_proof(
    amount: int,
    commitment: Commitment,
    blinding: Scalar,
    backend: ProofBackend = DEFAULT_PROOF_BACKEND,
) -> ZKProof:
    """Ask the backend for a range proof bound to commitment."""
    proof = backend.prove_range(amount, commitment, blinding)
    if commitment.serialize() not in proof.public_inputs:
        raise ProofGenerationError(
            "Backend returned a proof not bound to the commitment",
            ErrorKind.PROOF_GENERATION_FAILED,
        )
    return proof
