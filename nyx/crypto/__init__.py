"""
Nyx amount cryptography: ElGamal, Pedersen commitments, proofs.
"""

from nyx.crypto import elgamal, pedersen
from nyx.crypto.dlog import DiscreteLogSolver, get_solver
from nyx.crypto.pedersen import (
    PedersenGenerators,
    generate_commitment,
    verify_commitment,
    add_commitments,
    sub_commitments,
    verify_sum,
    random_blinding,
)
from nyx.crypto.proofs import (
    ZKProof,
    ProofBackend,
    UnavailableProofBackend,
    generate_amount_proof,
)

__all__ = [
    "elgamal",
    "pedersen",
    "DiscreteLogSolver",
    "get_solver",
    "PedersenGenerators",
    "generate_commitment",
    "verify_commitment",
    "add_commitments",
    "sub_commitments",
    "verify_sum",
    "random_blinding",
    "ZKProof",
    "ProofBackend",
    "UnavailableProofBackend",
    "generate_amount_proof",
]
