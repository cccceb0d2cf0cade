"""Univariate polynomials in coefficient form.

Coefficients live in a galois FieldArray; the coefficient of x^i is stored at
index i. Every constructor truncates trailing zeros, so the zero polynomial is
the empty array and a non-zero polynomial always has a non-zero leading
coefficient.

The zero polynomial has no degree: ``degree`` is None for it and callers gate
degree-sensitive logic on ``is_zero()``.

Multiplication goes through the NTT, which requires a prime field with
two-adic multiplicative structure (see stir.primitives.field).
"""

from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np

from stir.primitives.field import as_ints, from_ints, require_prime_field
from stir.primitives.ntt import get_ntt, powers

if TYPE_CHECKING:
    from stir.primitives.domain import Domain


class InexactDivisionError(ArithmeticError):
    """Exact polynomial division left a non-zero remainder."""


# --- Polynomial ---

class Polynomial:
    """Polynomial over a galois prime field, stored by ascending coefficients."""

    __slots__ = ("coeffs",)

    def __init__(self, coeffs) -> None:
        require_prime_field(type(coeffs))
        self.coeffs = _truncate(coeffs)

    # --- Constructors ---

    @classmethod
    def zero(cls, field) -> "Polynomial":
        return cls(field.Zeros(0))

    @classmethod
    def one(cls, field) -> "Polynomial":
        return cls(field.Ones(1))

    @classmethod
    def monomial(cls, coeff) -> "Polynomial":
        """Return the polynomial coeff + x."""
        coeffs = type(coeff).Ones(2)
        coeffs[0] = coeff
        return cls(coeffs)

    @classmethod
    def from_coeffs(cls, coeffs, field=None) -> "Polynomial":
        """Build from a FieldArray, or from integers when field is given."""
        if field is not None:
            coeffs = from_ints(field, [int(c) for c in coeffs])
        return cls(coeffs)

    @classmethod
    def random(cls, field, degree: int, seed=None) -> "Polynomial":
        """Return a random polynomial of exactly the given degree."""
        rng = np.random.default_rng(seed)
        coeffs = field.Random(degree + 1, seed=rng)
        coeffs[-1] = field.Random(low=1, seed=rng)
        return cls(coeffs)

    # --- Properties ---

    @property
    def field(self):
        return type(self.coeffs)

    @property
    def degree(self) -> Optional[int]:
        """Degree of the polynomial, None for the zero polynomial."""
        if self.is_zero():
            return None
        return len(self.coeffs) - 1

    def is_zero(self) -> bool:
        return len(self.coeffs) == 0

    def __len__(self) -> int:
        return len(self.coeffs)

    # --- Evaluation ---

    def evaluate(self, point):
        """Evaluate at a single point using Horner's method."""
        field = self.field
        if self.is_zero():
            return field(0)

        # Horner on canonical integers; galois scalar dispatch dominates otherwise
        p = field.characteristic
        x = int(point)
        acc = 0
        for c in reversed(as_ints(self.coeffs)):
            acc = (acc * x + c) % p
        return field(acc)

    def evaluate_many(self, points):
        """Evaluate at every point of a FieldArray (Horner, vectorized over points)."""
        field = self.field
        result = field.Zeros(np.shape(points))
        for c in self.coeffs[::-1]:
            result = result * points + c
        return result

    def evaluate_over_domain(self, domain: "Domain"):
        """Evaluate over every element of a domain, in domain index order."""
        if len(self) > domain.size:
            raise ValueError(
                f"Polynomial with {len(self)} coefficients does not fit domain of size {domain.size}"
            )
        return get_ntt(self.field, domain.size).coset_ntt(self.coeffs, domain.shift)

    # --- Arithmetic ---

    def __add__(self, other) -> "Polynomial":
        other = self._coerce(other)
        if self.is_zero():
            return other
        if other.is_zero():
            return self

        high, low = (self, other) if len(self) >= len(other) else (other, self)
        result = high.coeffs.copy()
        result[:len(low)] = result[:len(low)] + low.coeffs
        return Polynomial(result)

    __radd__ = __add__

    def __neg__(self) -> "Polynomial":
        return Polynomial(-self.coeffs)

    def __sub__(self, other) -> "Polynomial":
        return self + (-self._coerce(other))

    def __rsub__(self, other) -> "Polynomial":
        return self._coerce(other) - self

    def __mul__(self, other) -> "Polynomial":
        if not isinstance(other, Polynomial):
            return Polynomial(self.coeffs * self.field(other))
        if self.is_zero() or other.is_zero():
            return Polynomial.zero(self.field)

        # Pointwise product on a domain large enough for the full product
        n = len(self) + len(other) - 1
        size = 1 << (n - 1).bit_length()
        engine = get_ntt(self.field, size)
        evals = engine.ntt(self.coeffs) * engine.ntt(other.coeffs)
        return Polynomial(engine.intt(evals))

    __rmul__ = __mul__

    def __truediv__(self, divisor: "Polynomial") -> "Polynomial":
        """Exact division; raises InexactDivisionError on a non-zero remainder."""
        quotient, remainder = self.divide_with_q_and_r(divisor)
        if not remainder.is_zero():
            raise InexactDivisionError("Polynomial division failed, remainder is not zero")
        return quotient

    def divide_with_q_and_r(self, divisor: "Polynomial") -> Tuple["Polynomial", "Polynomial"]:
        """Schoolbook long division.

        Returns:
            (quotient, remainder) with remainder zero or of degree below the divisor's

        Raises:
            ZeroDivisionError: If divisor is the zero polynomial
        """
        if divisor.is_zero():
            raise ZeroDivisionError("Polynomial division by the zero polynomial")

        field = self.field
        if self.is_zero():
            return Polynomial.zero(field), Polynomial.zero(field)
        if self.degree < divisor.degree:
            return Polynomial.zero(field), self

        d = divisor.degree
        q_len = self.degree - d + 1
        quotient = field.Zeros(q_len)
        remainder = self.coeffs.copy()
        lead_inv = divisor.coeffs[-1] ** -1

        for shift in range(q_len - 1, -1, -1):
            coeff = remainder[shift + d] * lead_inv
            quotient[shift] = coeff
            remainder[shift:shift + d + 1] = remainder[shift:shift + d + 1] - divisor.coeffs * coeff

        return Polynomial(quotient), Polynomial(remainder[:d])

    # --- STIR operations ---

    def fold(self, randomness, folding_factor: int) -> "Polynomial":
        """Fold(f, k, r) = sum_l r^l f_l, where f(x) = sum_l x^l f_l(x^k)."""
        if self.is_zero():
            return self
        field = self.field
        n_rows = -(-len(self) // folding_factor)
        padded = field.Zeros(n_rows * folding_factor)
        padded[:len(self)] = self.coeffs
        matrix = padded.reshape(n_rows, folding_factor)

        weights = powers(randomness, folding_factor)
        folded = field.Zeros(n_rows)
        for l in range(folding_factor):
            folded = folded + matrix[:, l] * weights[l]
        return Polynomial(folded)

    @classmethod
    def vanishing_polynomial(cls, points) -> "Polynomial":
        """Return prod (x - p) over the points of a FieldArray.

        Multiplies pairwise up a product tree so each level is a batch of
        NTT multiplications of equal size.
        """
        field = type(points)
        layer: List[Polynomial] = [cls.monomial(-point) for point in points]
        if not layer:
            return cls.one(field)
        while len(layer) > 1:
            paired = [layer[i] * layer[i + 1] for i in range(0, len(layer) - 1, 2)]
            if len(layer) % 2:
                paired.append(layer[-1])
            layer = paired
        return layer[0]

    @classmethod
    def naive_interpolate(cls, point_to_evals: Sequence[Tuple[object, object]], field=None) -> "Polynomial":
        """Lagrange interpolation through (point, value) pairs.

        Quadratic in the number of points: one exact division of the vanishing
        polynomial per point. Points must be distinct.
        """
        if not point_to_evals:
            if field is None:
                raise ValueError("Cannot infer field for an empty interpolation")
            return cls.zero(field)

        field = type(point_to_evals[0][0])
        points = field([int(p) for p, _ in point_to_evals])
        vanishing = cls.vanishing_polynomial(points)

        result = cls.zero(field)
        for point, value in point_to_evals:
            term = vanishing / cls.monomial(-point)
            scale = value / term.evaluate(point)
            result = result + term * scale
        return result

    # --- Comparison & display ---

    def __eq__(self, other) -> bool:
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.field is other.field and as_ints(self.coeffs) == as_ints(other.coeffs)

    __hash__ = None

    def __repr__(self) -> str:
        if self.is_zero():
            return "Polynomial(0)"
        terms = [f"{c}*x^{i}" for i, c in enumerate(as_ints(self.coeffs)) if c]
        return f"Polynomial({' + '.join(terms)})"

    # --- Internal ---

    def _coerce(self, other) -> "Polynomial":
        """Lift a scalar to a constant polynomial."""
        if isinstance(other, Polynomial):
            return other
        coeffs = self.field.Zeros(1)
        coeffs[0] = other
        return Polynomial(coeffs)


def _truncate(coeffs):
    """Drop trailing zero coefficients."""
    nonzero = np.flatnonzero(np.asarray(coeffs))
    if len(nonzero) == 0:
        return coeffs[:0]
    return coeffs[:nonzero[-1] + 1]
