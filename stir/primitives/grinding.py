"""Proof-of-work grinding over the transcript state.

A nonce is valid for (seed, pow_bits) when BLAKE2b(seed || nonce) starts with at
least pow_bits zero bits. Zero bits always accept nonce 0.
"""

import hashlib
import threading
from typing import Optional

# --- Constants ---

NONCE_BYTES = 8
GRINDING_CHECK_INTERVAL = 1 << 12
"""Attempts between checks of the cancellation event."""


class GrindingCancelled(RuntimeError):
    """Grinding was cancelled or ran out of attempts before finding a nonce."""


def _pow_digest(seed: bytes, nonce: int) -> int:
    h = hashlib.blake2b(digest_size=32)
    h.update(seed)
    h.update(nonce.to_bytes(NONCE_BYTES, "big"))
    return int.from_bytes(h.digest(), "big")


def leading_zeros(seed: bytes, nonce: int) -> int:
    """Return the number of leading zero bits of the grinding hash."""
    return 256 - _pow_digest(seed, nonce).bit_length()


def grinding(
    seed: bytes,
    pow_bits: int,
    cancel: Optional[threading.Event] = None,
    max_attempts: Optional[int] = None,
) -> int:
    """
    Find a proof-of-work nonce.

    Args:
        seed: Transcript state the nonce is bound to
        pow_bits: Number of leading zero bits required
        cancel: Event checked every GRINDING_CHECK_INTERVAL attempts
        max_attempts: Upper bound on the number of nonces tried

    Returns:
        Smallest nonce that satisfies the PoW requirement

    Raises:
        GrindingCancelled: If cancel is set or max_attempts is exhausted
    """
    if pow_bits < 0 or pow_bits > 256:
        raise ValueError(f"pow_bits must be in [0, 256], got {pow_bits}")
    if pow_bits == 0:
        return 0

    threshold = 1 << (256 - pow_bits)
    nonce = 0
    while max_attempts is None or nonce < max_attempts:
        if nonce % GRINDING_CHECK_INTERVAL == 0 and cancel is not None and cancel.is_set():
            raise GrindingCancelled(f"grinding cancelled after {nonce} attempts")
        if _pow_digest(seed, nonce) < threshold:
            return nonce
        nonce += 1
    raise GrindingCancelled(f"no {pow_bits}-bit nonce found in {max_attempts} attempts")


def verify_grinding(seed: bytes, pow_bits: int, nonce: int) -> bool:
    """
    Verify a proof-of-work nonce.

    Returns:
        True if the nonce is valid, False otherwise (including malformed nonces)
    """
    if pow_bits == 0:
        return True
    if not isinstance(nonce, int) or nonce < 0 or nonce >= 1 << (8 * NONCE_BYTES):
        return False
    return _pow_digest(seed, nonce) < 1 << (256 - pow_bits)
