"""Number Theoretic Transform over two-adic prime fields.

The transforms are galois's FieldArray FFT (``np.fft.fft``/``np.fft.ifft`` on a
FieldArray, which is what ``galois.ntt`` runs). galois picks the size-n root as
``primitive_element ** ((order - 1) / n)``, the same root two_adic_generator
returns, so evaluation i is at omega^i of the matching Domain.
"""

import numpy as np

from stir.primitives.field import two_adic_generator

# --- NTT Engine ---

class NTT:
    """NTT engine for one power-of-two domain size over a galois prime field.

    Evaluation point i is omega^i, where omega is the field's primitive
    domain_size-th root of unity from two_adic_generator.
    """

    def __init__(self, field, domain_size: int) -> None:
        """Initialize NTT engine for given field and domain size."""
        assert domain_size > 0, "Domain size must be positive"
        assert (domain_size & (domain_size - 1)) == 0, "Domain size must be power of 2"

        self.field = field
        self.n = domain_size
        self.n_bits = _log2(domain_size)
        self.omega = two_adic_generator(field, self.n_bits)

    def ntt(self, coeffs):
        """Forward NTT: coefficients -> evaluations at omega^i."""
        padded = self._pad(coeffs)
        if self.n == 1:
            return padded
        return np.fft.fft(padded)

    def intt(self, evals):
        """Inverse NTT: evaluations at omega^i -> coefficients."""
        padded = self._pad(evals)
        if self.n == 1:
            return padded
        return np.fft.ifft(padded)

    def coset_ntt(self, coeffs, shift):
        """Forward NTT on a coset: coefficients -> evaluations at shift * omega^i."""
        return self.ntt(self._pad(coeffs) * powers(shift, self.n))

    def coset_intt(self, evals, shift):
        """Inverse NTT on a coset: evaluations at shift * omega^i -> coefficients."""
        return self.intt(evals) * powers(shift ** -1, self.n)

    # --- Internal ---

    def _pad(self, values):
        """Zero-pad input to the domain size."""
        if len(values) > self.n:
            raise ValueError(f"Input of length {len(values)} exceeds domain size {self.n}")
        padded = self.field.Zeros(self.n)
        padded[:len(values)] = values
        return padded


_ENGINES: dict = {}


def get_ntt(field, domain_size: int) -> NTT:
    """Return a cached NTT engine for (field, domain_size)."""
    key = (id(field), domain_size)
    if key not in _ENGINES:
        _ENGINES[key] = NTT(field, domain_size)
    return _ENGINES[key]


# --- Helpers ---

def powers(base, n: int):
    """Return [1, base, base^2, ..., base^(n-1)] as a field array."""
    field = type(base)
    result = field.Ones(n)
    length = 1
    step = base
    while length < n:
        take = min(length, n - length)
        result[length:length + take] = result[:take] * step
        step = step * step
        length += take
    return result


def _log2(size: int) -> int:
    """Compute log2 of size (must be power of 2)."""
    assert size != 0
    res = 0
    while size != 1:
        size >>= 1
        res += 1
    return res
