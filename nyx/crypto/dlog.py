"""
Nyx - Bounded Discrete Logarithm

Recovers m from M = m*G for m in [0, bound) with baby-step giant-step.

    m = i*s + j,  s = ceil(sqrt(bound))
    baby steps:  j*G        for j in [0, s)      (table, built once)
    giant steps: M - i*(s*G) for i in [0, ceil(bound/s))

Worst case is ~2*sqrt(bound) point operations; a point outside the
range is reported after exhausting the giant steps, never by hanging.
"""

import math
import logging
import threading
from typing import Dict, Optional

from nyx.constants import (
    IDENTITY_POINT,
    SCALAR_SIZE,
    DEFAULT_MAX_DECRYPTABLE_AMOUNT,
    MAX_DECRYPTABLE_AMOUNT_LIMIT,
)
from nyx.core.curve import Ed25519Point
from nyx.errors import EncryptionError, ErrorKind

logger = logging.getLogger("nyx.dlog")


class DiscreteLogSolver:
    """Baby-step giant-step solver for one fixed bound."""

    def __init__(self, bound: int = DEFAULT_MAX_DECRYPTABLE_AMOUNT):
        if bound < 1 or bound > MAX_DECRYPTABLE_AMOUNT_LIMIT:
            raise EncryptionError(
                "Decryption bound out of supported range",
                ErrorKind.INVALID_PARAMETER,
                {"bound_bits": bound.bit_length()},
            )
        self.bound = bound
        self.step = math.isqrt(bound - 1) + 1
        self.giant_steps = -(-bound // self.step)
        self._table: Optional[Dict[bytes, int]] = None
        self._giant: Optional[bytes] = None
        self._lock = threading.Lock()

    def _ensure_table(self) -> None:
        if self._table is not None:
            return
        with self._lock:
            if self._table is not None:
                return
            generator = Ed25519Point.base_point()
            table: Dict[bytes, int] = {}
            current = IDENTITY_POINT
            for j in range(self.step):
                table[current] = j
                current = Ed25519Point.point_add(current, generator)
            self._giant = Ed25519Point.scalarmult_base(
                self.step.to_bytes(SCALAR_SIZE, 'little')
            )
            self._table = table
            logger.debug(f"Baby-step table built: {self.step} entries")

    def solve(self, point: bytes) -> int:
        """
        Return m with m*G == point and 0 <= m < bound.

        Raises:
            EncryptionError: no such m (wrong key or out-of-range amount)
        """
        self._ensure_table()
        table = self._table
        gamma = point
        for i in range(self.giant_steps):
            j = table.get(gamma)
            if j is not None:
                m = i * self.step + j
                if m < self.bound:
                    return m
                break
            gamma = Ed25519Point.point_sub(gamma, self._giant)

        raise EncryptionError(
            "Ciphertext does not decrypt to an amount in range",
            ErrorKind.DISCRETE_LOG_OUT_OF_RANGE,
            {"bound_bits": (self.bound - 1).bit_length()},
        )


_solvers: Dict[int, DiscreteLogSolver] = {}
_solvers_lock = threading.Lock()


def get_solver(bound: int = DEFAULT_MAX_DECRYPTABLE_AMOUNT) -> DiscreteLogSolver:
    """Shared solver per bound; tables are read-only once built."""
    with _solvers_lock:
        solver = _solvers.get(bound)
        if solver is None:
            solver = DiscreteLogSolver(bound)
            _solvers[bound] = solver
        return solver
