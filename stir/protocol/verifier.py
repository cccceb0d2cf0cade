"""STIR proof verification.

The verifier replays the prover's Fiat-Shamir transcript from the proof
messages and checks, round by round:
1. Proof-of-work - each nonce meets its round's bit requirement
2. Merkle openings - every queried fold class opens against the previous commitment
3. Folding consistency - the opened values of f_{i-1} fold to the values the
   answer polynomial must interpolate
4. Answer and shake polynomials - degrees, OOD answers and the shake identity
5. Final polynomial - degree below the stopping bound and agreement with the
   final openings

Proof data is untrusted: every check validates shapes before doing arithmetic
and reports failure as a Rejection instead of raising.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from stir.primitives.domain import Domain
from stir.primitives.field import as_ints, batch_inverse, from_ints
from stir.primitives.grinding import NONCE_BYTES, verify_grinding
from stir.primitives.merkle_tree import HASH_SIZE, MerkleRoot, QueryProof
from stir.primitives.ntt import powers
from stir.primitives.polynomial import Polynomial
from stir.primitives.transcript import Transcript
from stir.protocol.config import StirConfig
from stir.protocol.folding import fold_class_points, fold_queries, query_indices
from stir.protocol.proof import RoundProof, StirProof

logger = logging.getLogger(__name__)


# --- Results ---

class VerificationCheck(Enum):
    """Which verifier check rejected a proof."""
    DEGREE_BOUND = "degree_bound"
    PROOF_SHAPE = "proof_shape"
    STARTING_POW = "starting_pow"
    ROUND_POW = "round_pow"
    MERKLE_PATH = "merkle_path"
    VIRTUAL_ORACLE = "virtual_oracle"
    ANS_DEGREE = "ans_degree"
    SHAKE_DEGREE = "shake_degree"
    OOD_ANSWERS = "ood_answers"
    SHAKE_IDENTITY = "shake_identity"
    FINAL_DEGREE = "final_degree"
    FINAL_POW = "final_pow"
    FINAL_QUERIES = "final_queries"


@dataclass(frozen=True)
class Rejection:
    """Reason a proof was rejected.

    round is 0 before the first full round, i for full round i and
    num_full_rounds + 1 for the final round.
    """
    round: int
    check: VerificationCheck
    detail: str


@dataclass(frozen=True)
class VerificationResult:
    rejection: Optional[Rejection] = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None

    def __bool__(self) -> bool:
        return self.accepted


class _Rejected(Exception):
    def __init__(self, rejection: Rejection):
        super().__init__(rejection.detail)
        self.rejection = rejection


def _reject(round_index: int, check: VerificationCheck, detail: str):
    raise _Rejected(Rejection(round_index, check, detail))


# --- Main Entry Point ---

def verify(
    config: StirConfig,
    commitment: MerkleRoot,
    proof: StirProof,
    transcript: Transcript,
    degree_bound: Optional[int] = None,
) -> bool:
    """Verify a STIR proof.

    Args:
        config: Configuration the proof was generated with
        commitment: Merkle root of the starting oracle
        proof: Proof to check
        transcript: Fresh transcript in the same initial state as the prover's
        degree_bound: Claimed bound d (degree < d); defaults to the configured bound

    Returns:
        True if proof is valid, False otherwise
    """
    return verify_with_reason(config, commitment, proof, transcript, degree_bound).accepted


def verify_with_reason(
    config: StirConfig,
    commitment: MerkleRoot,
    proof: StirProof,
    transcript: Transcript,
    degree_bound: Optional[int] = None,
) -> VerificationResult:
    """Verify a STIR proof, reporting the first failed check."""
    try:
        _verify(config, commitment, proof, transcript, degree_bound)
    except _Rejected as e:
        r = e.rejection
        logger.info("ERROR: STIR proof rejected in round %d: %s (%s)", r.round, r.check.value, r.detail)
        return VerificationResult(r)
    return VerificationResult()


# --- Verification ---

@dataclass
class _VirtualOracle:
    """f_i = (g_i - ans_i) / V_{G_i} * DegCor_i, known only through g_i's openings."""
    ans: Polynomial
    quotient_points: object
    r_comb: object

    def evaluate(self, points, g_values):
        field = type(points)
        x = points.reshape(-1)
        vanishing = field.Ones(len(x))
        for p in self.quotient_points:
            vanishing = vanishing * (x - p)
        if 0 in as_ints(vanishing):
            return None
        degree_correction = Polynomial(powers(self.r_comb, len(self.quotient_points) + 1))
        quotient = (g_values.reshape(-1) - self.ans.evaluate_many(x)) * batch_inverse(vanishing)
        return (quotient * degree_correction.evaluate_many(x)).reshape(points.shape)


def _verify(config: StirConfig, commitment, proof, transcript: Transcript, degree_bound) -> None:
    field = config.field
    num_full_rounds = config.num_full_rounds
    final_round = num_full_rounds + 1

    if degree_bound is not None and degree_bound < config.starting_degree:
        _reject(0, VerificationCheck.DEGREE_BOUND,
                f"claimed bound {degree_bound} is below the configured bound {config.starting_degree}")
    if not isinstance(proof, StirProof) or not isinstance(proof.round_proofs, list):
        _reject(0, VerificationCheck.PROOF_SHAPE, "not a StirProof")
    if len(proof.round_proofs) != num_full_rounds:
        _reject(0, VerificationCheck.PROOF_SHAPE,
                f"expected {num_full_rounds} round proofs, got {len(proof.round_proofs)}")
    if not _is_root(commitment):
        _reject(0, VerificationCheck.PROOF_SHAPE, "malformed commitment")

    transcript.put_bytes(commitment)
    r_fold = transcript.get_field(field)
    _check_pow(transcript, config.starting_folding_pow_bits, proof.starting_pow_witness,
               0, VerificationCheck.STARTING_POW)

    root = commitment
    domain = config.starting_domain()
    oracle: Optional[_VirtualOracle] = None

    for i, (round_config, round_proof) in enumerate(zip(config.round_parameters, proof.round_proofs), start=1):
        k = round_config.folding_factor
        s = round_config.num_ood_samples
        _check_round_shape(field, round_proof, s, i)

        transcript.put_bytes(round_proof.g_root)
        ood_points = transcript.get_fields(field, s)
        transcript.put(round_proof.betas)
        r_comb = transcript.get_field(field)
        r_fold_next = transcript.get_field(field)
        _check_pow(transcript, round_config.pow_bits, round_proof.pow_witness, i, VerificationCheck.ROUND_POW)

        folded_domain = domain.fold_domain(k)
        indices = query_indices(transcript, round_config.num_queries, folded_domain)
        folded = _check_and_fold_queries(
            config, i, root, domain, oracle, indices, round_proof.query_proofs, r_fold, k,
        )

        ans = round_proof.ans_polynomial
        shake = round_proof.shake_polynomial
        transcript.put(ans.coeffs)
        transcript.put(shake.coeffs)
        shake_randomness = transcript.get_field(field)

        shift_points = folded_domain.elements_at(indices)
        quotient_points = from_ints(field, as_ints(ood_points) + as_ints(shift_points))
        quotient_values = from_ints(field, as_ints(round_proof.betas) + as_ints(folded))
        num_points = len(quotient_points)
        # ans interpolates g_i, so it is also bounded by g_i's degree bound
        ans_bound = min(num_points, 1 << round_config.log_degree)

        if not ans.is_zero() and ans.degree >= ans_bound:
            _reject(i, VerificationCheck.ANS_DEGREE,
                    f"ans has degree {ans.degree}, expected below {ans_bound}")
        if not shake.is_zero() and shake.degree >= num_points - 1:
            _reject(i, VerificationCheck.SHAKE_DEGREE,
                    f"shake has degree {shake.degree}, expected below {num_points - 1}")
        if as_ints(ans.evaluate_many(ood_points)) != as_ints(round_proof.betas):
            _reject(i, VerificationCheck.OOD_ANSWERS, "ans does not match the OOD answers")
        _check_shake(ans, shake, quotient_points, quotient_values, shake_randomness, i)

        root = round_proof.g_root
        domain = domain.next_evaluation_domain()
        oracle = _VirtualOracle(ans=ans, quotient_points=quotient_points, r_comb=r_comb)
        r_fold = r_fold_next

    # Final round
    final_polynomial = proof.final_polynomial
    if not isinstance(final_polynomial, Polynomial) or final_polynomial.field is not field:
        _reject(final_round, VerificationCheck.PROOF_SHAPE, "malformed final polynomial")
    if not final_polynomial.is_zero() and final_polynomial.degree >= config.stopping_degree:
        _reject(final_round, VerificationCheck.FINAL_DEGREE,
                f"final polynomial has degree {final_polynomial.degree}, "
                f"expected below {config.stopping_degree}")

    transcript.put(final_polynomial.coeffs)
    _check_pow(transcript, config.final_pow_bits, proof.pow_witness, final_round, VerificationCheck.FINAL_POW)

    k = config.folding_factor(config.num_rounds - 1)
    folded_domain = domain.fold_domain(k)
    indices = query_indices(transcript, config.final_queries, folded_domain)
    folded = _check_and_fold_queries(
        config, final_round, root, domain, oracle, indices, proof.final_round_queries, r_fold, k,
    )
    expected = final_polynomial.evaluate_many(folded_domain.elements_at(indices))
    if as_ints(folded) != as_ints(expected):
        _reject(final_round, VerificationCheck.FINAL_QUERIES,
                "final openings do not fold to the final polynomial")


# --- Checks ---

def _check_pow(transcript: Transcript, pow_bits: int, witness, round_index: int, check: VerificationCheck) -> None:
    if not _is_nonce(witness):
        _reject(round_index, VerificationCheck.PROOF_SHAPE, "malformed proof-of-work witness")
    if not verify_grinding(transcript.get_state(), pow_bits, witness):
        _reject(round_index, check, f"nonce {witness} does not meet {pow_bits} bits")
    transcript.put_u64(witness)


def _check_round_shape(field, round_proof, num_ood_samples: int, round_index: int) -> None:
    """Reject round messages that cannot be absorbed or evaluated."""
    def bad(detail):
        _reject(round_index, VerificationCheck.PROOF_SHAPE, detail)

    if not isinstance(round_proof, RoundProof):
        bad("not a RoundProof")
    if not _is_root(round_proof.g_root):
        bad("malformed g_root")
    betas = round_proof.betas
    if type(betas) is not field or betas.shape != (num_ood_samples,):
        bad(f"expected {num_ood_samples} OOD answers")
    for name in ("ans_polynomial", "shake_polynomial"):
        poly = getattr(round_proof, name)
        if not isinstance(poly, Polynomial) or poly.field is not field or poly.coeffs.ndim != 1:
            bad(f"malformed {name}")
    if not isinstance(round_proof.query_proofs, list):
        bad("malformed query proofs")


def _check_and_fold_queries(
    config: StirConfig,
    round_index: int,
    root: MerkleRoot,
    domain: Domain,
    oracle: Optional[_VirtualOracle],
    indices: List[int],
    query_proofs,
    r_fold,
    folding_factor: int,
):
    """Open fold classes of the oracle over domain and fold them with r_fold."""
    field = config.field
    height = domain.size // folding_factor
    if not isinstance(query_proofs, list) or len(query_proofs) != len(indices):
        _reject(round_index, VerificationCheck.PROOF_SHAPE,
                f"expected {len(indices)} query proofs")

    for idx, query_proof in zip(indices, query_proofs):
        if not isinstance(query_proof, QueryProof) or not isinstance(query_proof.mp, list):
            _reject(round_index, VerificationCheck.PROOF_SHAPE, f"malformed opening of index {idx}")
        values = query_proof.v
        if type(values) is not field or values.shape != (folding_factor,):
            _reject(round_index, VerificationCheck.PROOF_SHAPE, f"malformed leaf of index {idx}")
        if not config.mmcs.verify(root, idx, values, query_proof.mp, height, width=folding_factor):
            _reject(round_index, VerificationCheck.MERKLE_PATH, f"opening of index {idx} does not verify")

    if not indices:
        return field.Zeros(0)

    rows = field(np.stack([np.asarray(qp.v) for qp in query_proofs]))
    if oracle is not None:
        points = fold_class_points(domain, indices, folding_factor)
        rows = oracle.evaluate(points, rows)
        if rows is None:
            _reject(round_index, VerificationCheck.VIRTUAL_ORACLE,
                    "query point lies in the previous answer set")
    return fold_queries(domain, indices, rows, r_fold, folding_factor)


def _check_shake(ans, shake, quotient_points, quotient_values, randomness, round_index: int) -> None:
    """shake(rho) == sum_j (ans(rho) - y_j) / (rho - x_j)."""
    denominators = randomness - quotient_points
    if 0 in as_ints(denominators):
        _reject(round_index, VerificationCheck.SHAKE_IDENTITY, "shake randomness hits an answer point")
    if len(quotient_points) == 0:
        expected = 0
    else:
        terms = (ans.evaluate(randomness) - quotient_values) * batch_inverse(denominators)
        expected = sum(as_ints(terms)) % type(quotient_points).characteristic
    if int(shake.evaluate(randomness)) != expected:
        _reject(round_index, VerificationCheck.SHAKE_IDENTITY, "shake identity does not hold")


def _is_root(value) -> bool:
    return isinstance(value, bytes) and len(value) == HASH_SIZE


def _is_nonce(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 1 << (8 * NONCE_BYTES)
