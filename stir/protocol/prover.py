"""STIR proof generation.

The prover keeps one oracle f_i over domain L_i at a time. Each full round
folds it into g_{i+1}, commits g_{i+1} over the next domain, answers
out-of-domain samples and fold-class queries, and builds f_{i+1} from g_{i+1}
by quotienting out the answered points and correcting the degree. The last
fold is sent in the clear as the final polynomial.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

from stir.primitives.domain import Domain
from stir.primitives.field import from_ints
from stir.primitives.grinding import grinding
from stir.primitives.merkle_tree import MerkleRoot, MerkleTree
from stir.primitives.ntt import powers
from stir.primitives.polynomial import Polynomial
from stir.primitives.transcript import Transcript
from stir.protocol.config import RoundConfig, StirConfig
from stir.protocol.folding import query_indices, stack_evaluations
from stir.protocol.proof import RoundProof, StirProof

logger = logging.getLogger(__name__)


@dataclass
class StirWitness:
    """Prover-side state of one committed oracle."""
    domain: Domain
    polynomial: Polynomial
    tree: MerkleTree


# --- Commitment ---

def commit(config: StirConfig, polynomial: Polynomial) -> Tuple[MerkleRoot, StirWitness]:
    """Commit to polynomial over the starting domain.

    Does not check the degree bound, so a commitment to any polynomial that
    fits the starting domain can be produced.

    Raises:
        ValueError: If polynomial is over another field or does not fit the domain
    """
    if polynomial.field is not config.field:
        raise ValueError("Polynomial field does not match the configured field")
    domain = config.starting_domain()
    return _commit_oracle(config, polynomial, domain, config.folding_factor(0))


def _commit_oracle(config: StirConfig, polynomial: Polynomial, domain: Domain, folding_factor: int):
    evals = polynomial.evaluate_over_domain(domain)
    root, tree = config.mmcs.commit(stack_evaluations(evals, folding_factor))
    return root, StirWitness(domain=domain, polynomial=polynomial, tree=tree)


# --- Proving ---

def prove(
    config: StirConfig,
    polynomial: Polynomial,
    transcript: Transcript,
    cancel: Optional[threading.Event] = None,
) -> Tuple[MerkleRoot, StirProof]:
    """Commit to polynomial and prove it has degree below the starting bound.

    Raises:
        ValueError: If polynomial is at or above the degree bound
        GrindingCancelled: If cancel is set during proof-of-work
    """
    if not polynomial.is_zero() and polynomial.degree >= config.starting_degree:
        raise ValueError(
            f"Polynomial of degree {polynomial.degree} exceeds the bound {config.starting_degree - 1}"
        )
    commitment, witness = commit(config, polynomial)
    return commitment, prove_on_commitment(config, transcript, commitment, witness, cancel)


def prove_on_commitment(
    config: StirConfig,
    transcript: Transcript,
    commitment: MerkleRoot,
    witness: StirWitness,
    cancel: Optional[threading.Event] = None,
) -> StirProof:
    """Run all rounds on an existing commitment."""
    field = config.field

    transcript.put_bytes(commitment)
    r_fold = transcript.get_field(field)
    starting_pow_witness = _grind(transcript, config.starting_folding_pow_bits, cancel)

    round_proofs = []
    for i, round_config in enumerate(config.round_parameters, start=1):
        round_proof, witness, r_fold = _prove_round(config, round_config, transcript, witness, r_fold, cancel)
        logger.debug(
            "Round %d: committed g_%d over 2^%d points, %d queries, %d OOD samples",
            i, i, round_config.log_evaluation_domain_size,
            len(round_proof.query_proofs), round_config.num_ood_samples,
        )
        round_proofs.append(round_proof)

    # Final round
    final_folding_factor = config.folding_factor(config.num_rounds - 1)
    final_polynomial = witness.polynomial.fold(r_fold, final_folding_factor)
    transcript.put(final_polynomial.coeffs)
    pow_witness = _grind(transcript, config.final_pow_bits, cancel)

    folded_domain = witness.domain.fold_domain(final_folding_factor)
    indices = query_indices(transcript, config.final_queries, folded_domain)
    final_round_queries = [witness.tree.get_query_proof(idx) for idx in indices]
    logger.debug("Final round: %d coefficients, %d queries", len(final_polynomial), len(indices))

    return StirProof(
        round_proofs=round_proofs,
        final_polynomial=final_polynomial,
        pow_witness=pow_witness,
        final_round_queries=final_round_queries,
        starting_pow_witness=starting_pow_witness,
    )


def _prove_round(
    config: StirConfig,
    round_config: RoundConfig,
    transcript: Transcript,
    witness: StirWitness,
    r_fold,
    cancel: Optional[threading.Event],
):
    """One full round: returns (RoundProof, next witness, next folding randomness)."""
    field = config.field
    k = round_config.folding_factor

    # Fold and commit to g over L' = g * <omega^2>
    g_poly = witness.polynomial.fold(r_fold, k)
    next_domain = witness.domain.next_evaluation_domain()
    g_root, g_witness = _commit_oracle(config, g_poly, next_domain, round_config.next_folding_factor)
    transcript.put_bytes(g_root)

    # Out-of-domain samples
    ood_points = transcript.get_fields(field, round_config.num_ood_samples)
    betas = g_poly.evaluate_many(ood_points)
    transcript.put(betas)

    r_comb = transcript.get_field(field)
    r_fold_next = transcript.get_field(field)
    pow_witness = _grind(transcript, round_config.pow_bits, cancel)

    # Shift queries: fold classes of the previous oracle
    folded_domain = witness.domain.fold_domain(k)
    indices = query_indices(transcript, round_config.num_queries, folded_domain)
    query_proofs = [witness.tree.get_query_proof(idx) for idx in indices]
    shift_points = folded_domain.elements_at(indices)
    shift_values = g_poly.evaluate_many(shift_points)

    # Answer polynomial over G = OOD points and shift points
    quotient_points = list(ood_points) + list(shift_points)
    quotient_values = list(betas) + list(shift_values)
    point_to_evals = list(zip(quotient_points, quotient_values))
    ans_polynomial = Polynomial.naive_interpolate(point_to_evals, field=field)
    shake_polynomial = _shake_polynomial(ans_polynomial, point_to_evals, field)

    transcript.put(ans_polynomial.coeffs)
    transcript.put(shake_polynomial.coeffs)
    # Shake randomness, only used by the verifier
    transcript.get_field(field)

    # f' = (g - ans) / V_G * DegCor
    vanishing = Polynomial.vanishing_polynomial(from_ints(field, [int(p) for p in quotient_points]))
    quotient = (g_poly - ans_polynomial) / vanishing
    degree_correction = Polynomial(powers(r_comb, len(quotient_points) + 1))
    next_polynomial = quotient * degree_correction

    round_proof = RoundProof(
        g_root=g_root,
        betas=betas,
        ans_polynomial=ans_polynomial,
        query_proofs=query_proofs,
        shake_polynomial=shake_polynomial,
        pow_witness=pow_witness,
    )
    next_witness = StirWitness(domain=next_domain, polynomial=next_polynomial, tree=g_witness.tree)
    return round_proof, next_witness, r_fold_next


# --- Internal ---

def _shake_polynomial(ans_polynomial: Polynomial, point_to_evals, field) -> Polynomial:
    """sum_j (ans - y_j) / (x - x_j); exact because ans interpolates every (x_j, y_j)."""
    shake = Polynomial.zero(field)
    for point, value in point_to_evals:
        shake = shake + (ans_polynomial - value) / Polynomial.monomial(-point)
    return shake


def _grind(transcript: Transcript, pow_bits: int, cancel: Optional[threading.Event]) -> int:
    nonce = grinding(transcript.get_state(), pow_bits, cancel)
    transcript.put_u64(nonce)
    return nonce


__all__ = [
    "StirWitness",
    "commit",
    "prove",
    "prove_on_commitment",
]
