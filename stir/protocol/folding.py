"""STIR folding: stacking committed evaluations and folding them at query points."""

from typing import List

import numpy as np

from stir.primitives.domain import Domain
from stir.primitives.ntt import get_ntt, powers


# --- Leaf Layout ---

def stack_evaluations(evals, folding_factor: int):
    """Group domain evaluations into fold classes, one class per row.

    Row j holds the values at indices j + l * N/k (l < k), which are exactly
    the points whose k-th power is element j of the folded domain.
    """
    n = len(evals)
    if n % folding_factor != 0:
        raise ValueError(f"Cannot stack {n} evaluations by folding factor {folding_factor}")
    return evals.reshape(folding_factor, n // folding_factor).T.copy()


# --- Folding ---

def fold_evaluations(values, x, randomness, folding_factor: int):
    """Fold one fold class given f at x * zeta^l (l < k).

    With c = INTT_k(values), c_m = x^m f_m(x^k), so the fold
    sum_m r^m f_m(x^k) is sum_m c_m (r / x)^m.

    Args:
        values: FieldArray of k evaluations in fold-class order
        x: Domain element of the class's first index
        randomness: Folding challenge r
        folding_factor: k

    Returns:
        Fold(f, k, r) evaluated at x^k
    """
    coeffs = get_ntt(type(values), folding_factor).intt(values)
    weights = powers(randomness * x ** -1, folding_factor)
    return np.sum(coeffs * weights)


def fold_queries(domain: Domain, indices: List[int], rows, randomness, folding_factor: int):
    """Fold every opened fold class of a domain.

    Args:
        domain: Domain of the committed oracle
        indices: Indices into domain.fold_domain(folding_factor)
        rows: 2-D FieldArray, row q holds the class values of indices[q]
        randomness: Folding challenge r
        folding_factor: k

    Returns:
        FieldArray of folded values, one per index
    """
    field = domain.field
    if len(indices) == 0:
        return field.Zeros(0)
    xs = domain.elements_at(indices)
    folded = field.Zeros(len(indices))
    for q in range(len(indices)):
        folded[q] = fold_evaluations(rows[q], xs[q], randomness, folding_factor)
    return folded


def fold_class_points(domain: Domain, indices: List[int], folding_factor: int):
    """Return the 2-D FieldArray of class points, row q for indices[q]."""
    flat = []
    for idx in indices:
        flat.extend(domain.fold_class(idx, folding_factor))
    return domain.elements_at(flat).reshape(len(indices), folding_factor)


# --- Queries ---

def query_indices(transcript, num_queries: int, folded_domain: Domain) -> List[int]:
    """Squeeze num_queries indices into folded_domain, deduplicated and sorted."""
    return sorted(set(transcript.get_permutations(num_queries, folded_domain.log_size)))
