"""
Fiat-Shamir transcript using BLAKE2b.

The transcript absorbs field elements and raw bytes and produces field
challenges, query indices and grinding seeds in a deterministic,
pseudorandom manner. Prover and verifier drive identical transcripts, so
every absorb and squeeze must happen in the same order on both sides.

Each operation chains the 64-byte state: absorbing sets
``state = H(state || round_tag || payload)`` and squeezing sets
``state = H(state || round_tag)`` and returns the new state.
"""

import hashlib
from typing import List

from stir.primitives.field import as_ints, byte_length, from_ints

# --- Constants ---

STATE_SIZE = 64
"""BLAKE2b digest size in bytes."""

_ABSORB = b"\x00"
_SQUEEZE = b"\x01"


class Transcript:
    """
    Fiat-Shamir transcript over a BLAKE2b chained state.

    Attributes:
        state: Current 64-byte chaining value
        n_rounds: Number of absorb/squeeze operations so far
    """

    def __init__(self, label: bytes = b"stir"):
        """
        Initialize transcript from a domain-separation label.

        Args:
            label: Up to 64 bytes identifying the protocol instance
        """
        label = label.encode() if isinstance(label, str) else bytes(label)
        if len(label) > STATE_SIZE:
            raise ValueError(f"label must be <= {STATE_SIZE} bytes, got {len(label)}")
        self.state = hashlib.blake2b(label, digest_size=STATE_SIZE).digest()
        self.n_rounds = 0

    def copy(self) -> "Transcript":
        """Return an independent transcript with the same state."""
        t = object.__new__(type(self))
        t.state = self.state
        t.n_rounds = self.n_rounds
        return t

    # --- Absorbing ---

    def put(self, elements) -> None:
        """
        Absorb field elements (a FieldArray or a single field element).

        The element count is bound into the payload, so absorbing [a, b] differs
        from absorbing [a] then [b].
        """
        ints = as_ints(elements)
        width = byte_length(type(elements))
        payload = len(ints).to_bytes(8, "big") + b"".join(v.to_bytes(width, "big") for v in ints)
        self._absorb(payload)

    def put_bytes(self, data: bytes) -> None:
        """Absorb raw bytes (commitment roots, grinding witnesses)."""
        data = bytes(data)
        self._absorb(len(data).to_bytes(8, "big") + data)

    def put_u64(self, value: int) -> None:
        self._absorb(int(value).to_bytes(8, "big"))

    # --- Squeezing ---

    def get_field(self, field):
        """Squeeze one field element, reduced from 64 bytes of output."""
        return field(int.from_bytes(self._squeeze(), "big") % field.characteristic)

    def get_fields(self, field, n: int):
        """Squeeze n field elements as a FieldArray."""
        p = field.characteristic
        return from_ints(field, [int.from_bytes(self._squeeze(), "big") % p for _ in range(n)])

    def get_state(self) -> bytes:
        """Return the current chaining value, used as the grinding seed."""
        return self.state

    def get_permutations(self, n: int, n_bits: int) -> List[int]:
        """
        Generate n query indices, each using n_bits bits.

        Args:
            n: Number of values to generate
            n_bits: Number of bits per value

        Returns:
            List of n values, each in range [0, 2^n_bits)
        """
        if n_bits == 0:
            return [0] * n

        # Concatenate enough squeezed blocks to cover n * n_bits bits
        total_bits = n * n_bits
        n_blocks = (total_bits + 8 * STATE_SIZE - 1) // (8 * STATE_SIZE)
        pool = int.from_bytes(b"".join(self._squeeze() for _ in range(n_blocks)), "little")

        mask = (1 << n_bits) - 1
        result = []
        for i in range(n):
            result.append((pool >> (i * n_bits)) & mask)
        return result

    # --- Internal ---

    def _round_tag(self) -> bytes:
        return int(self.n_rounds).to_bytes(8, "big")

    def _absorb(self, payload: bytes) -> None:
        h = hashlib.blake2b(digest_size=STATE_SIZE)
        h.update(self.state)
        h.update(_ABSORB + self._round_tag())
        h.update(payload)
        self.state = h.digest()
        self.n_rounds += 1

    def _squeeze(self) -> bytes:
        h = hashlib.blake2b(digest_size=STATE_SIZE)
        h.update(self.state)
        h.update(_SQUEEZE + self._round_tag())
        self.state = h.digest()
        self.n_rounds += 1
        return self.state
