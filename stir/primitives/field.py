"""Prime fields with two-adic multiplicative structure.

Uses galois for all field arithmetic. A field is any ``galois.GF(p)`` class whose
multiplicative group contains a large subgroup of power-of-two order: that
subgroup provides the evaluation domains, the NTT used by polynomial
multiplication and the folding maps of the protocol.

FF is the default protocol field (BN254 scalar field). GL (Goldilocks) is a
smaller two-adic field, handy for arithmetic tests.

Both fields are built with an explicit primitive element and ``verify=False``
so galois does not factor ``p - 1`` at import time.
"""

from typing import List

import galois
import numpy as np

# --- Field Construction ---

BN254_SCALAR_PRIME = 0x30644E72E131A029B85045B68181585D2833E84879B9709143E1F593F0000001
BN254_GENERATOR = 5

FF = galois.GF(BN254_SCALAR_PRIME, primitive_element=BN254_GENERATOR, verify=False)
"""Default field GF(p) - BN254 scalar field, two-adicity 28."""

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001
GOLDILOCKS_GENERATOR = 7

GL = galois.GF(GOLDILOCKS_PRIME, primitive_element=GOLDILOCKS_GENERATOR, verify=False)
"""Goldilocks field GF(2^64 - 2^32 + 1), two-adicity 32."""


# --- Field Properties ---

def require_prime_field(field) -> None:
    """Raise ValueError unless field is a prime field GF(p)."""
    if field.degree != 1:
        raise ValueError(f"Only prime fields are supported, got {field.name}")


def field_bits(field) -> int:
    """Return floor(log2(|F|)), the bit size used in soundness bounds."""
    return field.order.bit_length() - 1


def byte_length(field) -> int:
    """Return the number of bytes needed to encode one element canonically."""
    return (field.characteristic.bit_length() + 7) // 8


def two_adicity(field) -> int:
    """Return the largest n such that 2^n divides |F| - 1."""
    order_minus_one = field.order - 1
    return (order_minus_one & -order_minus_one).bit_length() - 1


def multiplicative_generator(field):
    """Return the generator of F* used as the coset shift."""
    return field.primitive_element


_ROOTS_OF_UNITY: dict = {}


def two_adic_generator(field, n_bits: int):
    """Return a primitive 2^n_bits-th root of unity.

    Roots are derived from the same generator, so for m <= n the 2^m-th root
    equals the 2^n-th root raised to 2^(n - m).
    """
    if n_bits < 0 or n_bits > two_adicity(field):
        raise ValueError(f"n_bits must be in [0, {two_adicity(field)}], got {n_bits}")
    key = (id(field), n_bits)
    if key not in _ROOTS_OF_UNITY:
        _ROOTS_OF_UNITY[key] = multiplicative_generator(field) ** ((field.order - 1) >> n_bits)
    return _ROOTS_OF_UNITY[key]


# --- Conversions ---

def as_ints(values) -> List[int]:
    """Return the canonical integer representatives of a field array or scalar."""
    return np.asarray(values).reshape(-1).tolist()


def from_ints(field, values: List[int]):
    """Build a 1-D field array from integers, allowing an empty list."""
    if len(values) == 0:
        return field.Zeros(0)
    return field(values)


def to_bytes(values) -> bytes:
    """Encode field elements as fixed-width big-endian integers."""
    width = byte_length(type(values))
    return b"".join(v.to_bytes(width, "big") for v in as_ints(values))


# --- Montgomery Batch Inversion ---

def batch_inverse(values):
    """Montgomery batch inversion for any galois array.

    Converts N field inversions into 3N-3 multiplications + 1 inversion.

    Args:
        values: Galois FieldArray to invert (must all be non-zero)

    Returns:
        Galois FieldArray where result[i] = values[i]^(-1)

    Raises:
        ZeroDivisionError: If any element is zero
    """
    n = len(values)
    if n == 0:
        return values
    if n == 1:
        return values ** -1

    field = type(values)

    # Forward pass: compute prefix products
    cumprods = field.Zeros(n)
    cumprods[0] = values[0]
    for i in range(1, n):
        cumprods[i] = cumprods[i - 1] * values[i]

    if int(cumprods[n - 1]) == 0:
        raise ZeroDivisionError("cannot invert zero element")
    inv_total = cumprods[n - 1] ** -1

    # Backward pass: extract individual inverses
    results = field.Zeros(n)
    z = inv_total
    for i in range(n - 1, 0, -1):
        results[i] = z * cumprods[i - 1]
        z = z * values[i]
    results[0] = z

    return results
