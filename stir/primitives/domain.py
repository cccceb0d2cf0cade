"""Evaluation domains: multiplicative cosets of power-of-two subgroups.

A Domain is the coset ``shift * <omega>`` where omega is the primitive
``2^log_size``-th root of unity of the field. Element i is ``shift * omega^i``;
that order is the one used by commitments, queries and the coset NTT.

Raising every element to the k-th power maps the domain k-to-1 onto
``shift^k * <omega^k>``. The preimage of element j of that folded domain is
the fold class ``{j + l * size/k : l < k}``.
"""

from typing import List

from stir.primitives.field import (
    from_ints,
    multiplicative_generator,
    require_prime_field,
    two_adic_generator,
    two_adicity,
)
from stir.primitives.ntt import powers


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


class Domain:
    """Coset of the 2^log_size-th roots of unity."""

    def __init__(self, field, log_size: int, shift=None) -> None:
        require_prime_field(field)
        if log_size < 0 or log_size > two_adicity(field):
            raise ValueError(
                f"Domain of size 2^{log_size} exceeds the two-adic subgroup of the field "
                f"(two-adicity {two_adicity(field)})"
            )
        self.field = field
        self.log_size = log_size
        self.size = 1 << log_size
        self.generator = two_adic_generator(field, log_size)
        self.shift = field(1) if shift is None else field(int(shift))
        if int(self.shift) == 0:
            raise ValueError("Domain shift must be non-zero")

    @classmethod
    def with_generator_shift(cls, field, log_size: int) -> "Domain":
        """Return the coset g * <omega> for the field's multiplicative generator g."""
        return cls(field, log_size, multiplicative_generator(field))

    # --- Elements ---

    def element(self, index: int):
        """Return shift * omega^index."""
        return self.shift * self.generator ** (index % self.size)

    def elements(self):
        """Return all elements in index order as a FieldArray."""
        return powers(self.generator, self.size) * self.shift

    def elements_at(self, indices: List[int]):
        """Return shift * omega^i for each index as a FieldArray."""
        exponents = [i % self.size for i in indices]
        return self.shift * from_ints(self.field, [int(self.generator ** e) for e in exponents])

    # --- Derived domains ---

    def fold_domain(self, folding_factor: int) -> "Domain":
        """Return L^k = shift^k * <omega^k>, the image of x -> x^k."""
        self._check_factor(folding_factor)
        log_k = folding_factor.bit_length() - 1
        return Domain(self.field, self.log_size - log_k, self.shift ** folding_factor)

    pow_map = fold_domain

    def fold_class(self, index: int, folding_factor: int) -> List[int]:
        """Indices of the k points whose k-th power is element index of L^k."""
        self._check_factor(folding_factor)
        stride = self.size // folding_factor
        if not 0 <= index < stride:
            raise ValueError(f"Fold class index {index} out of range [0, {stride})")
        return [index + l * stride for l in range(folding_factor)]

    def shrink_subgroup(self, factor: int) -> "Domain":
        """Return shift * <omega^factor>, a domain factor times smaller with the same shift."""
        self._check_factor(factor)
        log_factor = factor.bit_length() - 1
        return Domain(self.field, self.log_size - log_factor, self.shift)

    def with_shift(self, shift) -> "Domain":
        return Domain(self.field, self.log_size, shift)

    def next_evaluation_domain(self) -> "Domain":
        """Return g * <omega^2>: half the size, shifted by the field generator g."""
        return self.shrink_subgroup(2).with_shift(multiplicative_generator(self.field))

    # --- Internal ---

    def _check_factor(self, factor: int) -> None:
        if not _is_power_of_two(factor):
            raise ValueError(f"Factor must be a power of two, got {factor}")
        if factor > self.size:
            raise ValueError(f"Factor {factor} exceeds domain size {self.size}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Domain):
            return NotImplemented
        return (
            self.field is other.field
            and self.log_size == other.log_size
            and int(self.shift) == int(other.shift)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"Domain(size=2^{self.log_size}, shift={int(self.shift)})"
