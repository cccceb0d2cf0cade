"""End-to-end STIR tests: honest proofs verify, malformed or dishonest ones do not."""

import dataclasses
import logging
import threading

import pytest

from stir import (
    FF,
    GL,
    GrindingCancelled,
    MerkleCommitmentScheme,
    Polynomial,
    SecurityAssumption,
    StirConfig,
    StirParameters,
    Transcript,
    VerificationCheck,
    commit,
    prove,
    prove_on_commitment,
    verify,
    verify_with_reason,
)
from stir.primitives.grinding import verify_grinding
from stir.primitives.merkle_tree import QueryProof
from stir.protocol import verifier

from tests.conftest import make_config


def prove_and_verify(config: StirConfig, polynomial: Polynomial) -> bool:
    commitment, proof = prove(config, polynomial, Transcript())
    return verify(config, commitment, proof, Transcript())


def x_pow(n: int) -> Polynomial:
    coeffs = FF.Zeros(n + 1)
    coeffs[n] = 1
    return Polynomial(coeffs)


def bump(query_proof: QueryProof) -> QueryProof:
    """Return a copy of an opening with its first leaf value changed."""
    values = query_proof.v.copy()
    values[0] = values[0] + FF(1)
    return QueryProof(v=values, mp=query_proof.mp)


def record_grinding_checks(monkeypatch):
    """Record the (seed, pow_bits, nonce) of every proof-of-work check the verifier makes."""
    calls = []

    def recording(seed, pow_bits, nonce):
        calls.append((seed, pow_bits, nonce))
        return verify_grinding(seed, pow_bits, nonce)

    monkeypatch.setattr(verifier, "verify_grinding", recording)
    return calls


def invalid_nonce(seed: bytes, pow_bits: int, nonce: int) -> int:
    """Return the first nonce above nonce that fails the proof-of-work check."""
    candidate = nonce + 1
    while verify_grinding(seed, pow_bits, candidate):
        candidate += 1
    return candidate


def replace_round(proof, index: int, **changes):
    rounds = list(proof.round_proofs)
    rounds[index] = dataclasses.replace(rounds[index], **changes)
    return dataclasses.replace(proof, round_proofs=rounds)


class TestCompleteness:
    """Honest proofs are accepted."""

    def test_small_config(self, small_config: StirConfig, small_proof) -> None:
        """A maximal-degree polynomial verifies."""
        commitment, proof = small_proof
        result = verify_with_reason(small_config, commitment, proof, Transcript())
        assert result.accepted, result.rejection
        assert bool(result)

    def test_proof_shape(self, small_config: StirConfig, small_proof) -> None:
        """The proof carries one round proof per full round and the final polynomial."""
        _, proof = small_proof
        assert proof.num_rounds == small_config.num_full_rounds == 1
        assert proof.final_polynomial.degree < small_config.stopping_degree
        assert len(proof.round_proofs[0].betas) == small_config.round_parameters[0].num_ood_samples
        assert 0 < proof.query_count() <= (
            small_config.round_parameters[0].num_queries + small_config.final_queries
        )

    @pytest.mark.parametrize("degree", [0, 1, 100])
    def test_low_degree_polynomials(self, small_config: StirConfig, degree: int) -> None:
        """Polynomials well below the bound verify."""
        assert prove_and_verify(small_config, Polynomial.random(FF, degree, seed=degree))

    def test_zero_polynomial(self, small_config: StirConfig) -> None:
        """The zero polynomial verifies."""
        assert prove_and_verify(small_config, Polynomial.zero(FF))

    def test_single_fold(self) -> None:
        """With one fold the proof is only the final polynomial and its openings."""
        config = make_config(num_rounds=1)
        commitment, proof = prove(config, Polynomial.random(FF, 255, seed=2), Transcript())
        assert proof.round_proofs == []
        assert verify(config, commitment, proof, Transcript())

    @pytest.mark.parametrize(
        "assumption",
        [SecurityAssumption.UNIQUE_DECODING, SecurityAssumption.JOHNSON_BOUND],
    )
    def test_other_assumptions(self, assumption: SecurityAssumption) -> None:
        config = make_config(security_assumption=assumption)
        assert prove_and_verify(config, Polynomial.random(FF, 255, seed=3))

    def test_folding_factor_eight(self) -> None:
        config = make_config(log_starting_degree=9, log_folding_factor=3, num_rounds=2)
        assert prove_and_verify(config, Polynomial.random(FF, 511, seed=4))

    def test_mixed_folding_factors(self) -> None:
        params = StirParameters.from_folding_factors(
            9, 1, [3, 1, 2], SecurityAssumption.CAPACITY_BOUND, 32, 0
        )
        config = StirConfig.from_parameters(params)
        assert prove_and_verify(config, Polynomial.random(FF, 511, seed=5))

    def test_arity_four_tree(self) -> None:
        params = StirParameters.fixed_domain_shift(
            8, 2, 2, 2, SecurityAssumption.CAPACITY_BOUND, 32, 0,
            mmcs_config=MerkleCommitmentScheme(4),
        )
        config = StirConfig.from_parameters(params)
        assert prove_and_verify(config, Polynomial.random(FF, 255, seed=6))

    def test_with_proof_of_work(self) -> None:
        """Grinding nonces are produced and checked."""
        config = make_config(pow_bits=10)
        commitment, proof = prove(config, Polynomial.random(FF, 255, seed=7), Transcript())
        assert verify(config, commitment, proof, Transcript())

    def test_larger_degree_bound_accepted(self, small_config: StirConfig, small_proof) -> None:
        """A proof for degree < d also proves degree < d' for d' >= d."""
        commitment, proof = small_proof
        assert verify(small_config, commitment, proof, Transcript(), degree_bound=512)

    def test_deterministic(self, small_config: StirConfig) -> None:
        """Equal inputs give equal proofs."""
        polynomial = Polynomial.random(FF, 200, seed=8)
        c1, p1 = prove(small_config, polynomial, Transcript())
        c2, p2 = prove(small_config, polynomial, Transcript())
        assert c1 == c2
        assert p1.round_proofs[0].g_root == p2.round_proofs[0].g_root
        assert p1.final_polynomial == p2.final_polynomial

    @pytest.mark.slow
    def test_scenario(self, scenario_config: StirConfig) -> None:
        """Degree 2^10, three folds, 100 bits."""
        polynomial = Polynomial.random(FF, scenario_config.starting_degree - 1, seed=9)
        commitment, proof = prove(scenario_config, polynomial, Transcript())
        assert proof.num_rounds == 2
        assert verify(scenario_config, commitment, proof, Transcript())


class TestSoundness:
    """Dishonest provers are rejected."""

    @pytest.mark.parametrize("seed", [10, 11, 12])
    def test_degree_at_bound_rejected(self, small_config: StirConfig, seed: int) -> None:
        """Running the honest prover on a degree-d polynomial ends in an over-degree final polynomial."""
        polynomial = Polynomial.random(FF, small_config.starting_degree, seed=seed)
        commitment, witness = commit(small_config, polynomial)
        proof = prove_on_commitment(small_config, Transcript(), commitment, witness)

        result = verify_with_reason(small_config, commitment, proof, Transcript())
        assert not result.accepted
        assert result.rejection.check is VerificationCheck.FINAL_DEGREE
        assert result.rejection.round == small_config.num_full_rounds + 1

    @pytest.mark.slow
    def test_scenario_degree_at_bound_rejected(self, scenario_config: StirConfig) -> None:
        """A degree-1024 polynomial committed under the 3-fold config fails the final degree check, deterministically."""
        polynomial = Polynomial.random(FF, scenario_config.starting_degree, seed=18)
        commitment, witness = commit(scenario_config, polynomial)
        proof = prove_on_commitment(scenario_config, Transcript(), commitment, witness)

        first = verify_with_reason(scenario_config, commitment, proof, Transcript())
        second = verify_with_reason(scenario_config, commitment, proof, Transcript())
        assert not first.accepted
        assert first.rejection.check is VerificationCheck.FINAL_DEGREE
        assert first.rejection.round == 3
        assert first.rejection == second.rejection

    def test_prove_refuses_over_degree(self, small_config: StirConfig) -> None:
        with pytest.raises(ValueError):
            prove(small_config, Polynomial.random(FF, small_config.starting_degree, seed=13), Transcript())

    def test_commit_refuses_other_field(self, small_config: StirConfig) -> None:
        with pytest.raises(ValueError):
            commit(small_config, Polynomial.random(GL, 10, seed=14))

    def test_smaller_degree_bound_rejected(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        result = verify_with_reason(small_config, commitment, proof, Transcript(), degree_bound=128)
        assert result.rejection.check is VerificationCheck.DEGREE_BOUND
        assert result.rejection.round == 0

    def test_wrong_commitment(self, small_config: StirConfig, small_proof) -> None:
        """A proof does not verify against another polynomial's commitment."""
        _, proof = small_proof
        other, _ = commit(small_config, Polynomial.random(FF, 255, seed=15))
        assert not verify(small_config, other, proof, Transcript())

    def test_wrong_transcript(self, small_config: StirConfig, small_proof) -> None:
        """The verifier must start from the prover's transcript state."""
        commitment, proof = small_proof
        assert not verify(small_config, commitment, proof, Transcript(b"other"))

    def test_tampered_round_opening(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        query_proofs = list(proof.round_proofs[0].query_proofs)
        query_proofs[0] = bump(query_proofs[0])
        tampered = replace_round(proof, 0, query_proofs=query_proofs)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.MERKLE_PATH
        assert result.rejection.round == 1

    def test_tampered_final_opening(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        final_queries = list(proof.final_round_queries)
        final_queries[-1] = bump(final_queries[-1])
        tampered = dataclasses.replace(proof, final_round_queries=final_queries)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.MERKLE_PATH
        assert result.rejection.round == 2

    def test_non_list_path_levels(self, small_config: StirConfig, small_proof) -> None:
        """A Merkle path whose levels are not sibling lists is rejected, not raised."""
        commitment, proof = small_proof
        final_queries = list(proof.final_round_queries)
        qp = final_queries[0]
        final_queries[0] = QueryProof(v=qp.v, mp=[7] * len(qp.mp))
        tampered = dataclasses.replace(proof, final_round_queries=final_queries)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check in (VerificationCheck.MERKLE_PATH, VerificationCheck.PROOF_SHAPE)
        assert result.rejection.round == small_config.num_full_rounds + 1

    def test_missing_opening(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        tampered = dataclasses.replace(proof, final_round_queries=proof.final_round_queries[1:])
        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.PROOF_SHAPE

    def test_tampered_ans(self, small_config: StirConfig, small_proof) -> None:
        """Changing the answer polynomial breaks the OOD answers."""
        commitment, proof = small_proof
        ans = proof.round_proofs[0].ans_polynomial + FF(1)
        tampered = replace_round(proof, 0, ans_polynomial=ans)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.OOD_ANSWERS

    def test_high_degree_ans(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        ans = proof.round_proofs[0].ans_polynomial + x_pow(200)
        tampered = replace_round(proof, 0, ans_polynomial=ans)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.ANS_DEGREE

    def test_tampered_shake(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        shake = proof.round_proofs[0].shake_polynomial + FF(1)
        tampered = replace_round(proof, 0, shake_polynomial=shake)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.SHAKE_IDENTITY

    def test_high_degree_shake(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        shake = proof.round_proofs[0].shake_polynomial + x_pow(200)
        tampered = replace_round(proof, 0, shake_polynomial=shake)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.SHAKE_DEGREE

    def test_tampered_final_polynomial(self, small_config: StirConfig, small_proof) -> None:
        """A different final polynomial of the same degree is caught by the final queries."""
        commitment, proof = small_proof
        tampered = dataclasses.replace(proof, final_polynomial=proof.final_polynomial + FF(1))

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert not result.accepted
        assert result.rejection.round == 2

    def test_truncated_final_polynomial(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        coeffs = proof.final_polynomial.coeffs[:-1]
        tampered = dataclasses.replace(proof, final_polynomial=Polynomial(coeffs))
        assert not verify(small_config, commitment, tampered, Transcript())

    def test_over_degree_final_polynomial(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        final_polynomial = proof.final_polynomial + x_pow(small_config.stopping_degree)
        tampered = dataclasses.replace(proof, final_polynomial=final_polynomial)

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.FINAL_DEGREE

    def test_missing_round(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        tampered = dataclasses.replace(proof, round_proofs=[])

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.PROOF_SHAPE
        assert result.rejection.round == 0

    def test_malformed_betas(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        tampered = replace_round(proof, 0, betas=FF.Zeros(5))

        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.PROOF_SHAPE
        assert result.rejection.round == 1

    def test_malformed_nonce(self, small_config: StirConfig, small_proof) -> None:
        commitment, proof = small_proof
        tampered = dataclasses.replace(proof, pow_witness=-1)
        result = verify_with_reason(small_config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.PROOF_SHAPE

    def test_invalid_final_nonce(self, monkeypatch) -> None:
        """A nonce that fails the final proof-of-work is rejected as FINAL_POW."""
        config = make_config(pow_bits=10)
        assert config.final_pow_bits > 0
        commitment, proof = prove(config, Polynomial.random(FF, 255, seed=16), Transcript())
        calls = record_grinding_checks(monkeypatch)
        assert verify(config, commitment, proof, Transcript())

        seed, pow_bits, nonce = calls[-1]
        assert nonce == proof.pow_witness
        tampered = dataclasses.replace(proof, pow_witness=invalid_nonce(seed, pow_bits, nonce))
        result = verify_with_reason(config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.FINAL_POW
        assert result.rejection.round == config.num_full_rounds + 1

    def test_invalid_round_nonce(self, monkeypatch) -> None:
        config = make_config(pow_bits=10)
        assert config.round_parameters[0].pow_bits > 0
        commitment, proof = prove(config, Polynomial.random(FF, 255, seed=17), Transcript())
        calls = record_grinding_checks(monkeypatch)
        assert verify(config, commitment, proof, Transcript())

        # calls[0] is the starting folding check
        seed, pow_bits, nonce = calls[1]
        assert nonce == proof.round_proofs[0].pow_witness
        tampered = replace_round(proof, 0, pow_witness=invalid_nonce(seed, pow_bits, nonce))
        result = verify_with_reason(config, commitment, tampered, Transcript())
        assert result.rejection.check is VerificationCheck.ROUND_POW
        assert result.rejection.round == 1

    def test_rejection_is_logged(self, small_config: StirConfig, small_proof, caplog) -> None:
        commitment, proof = small_proof
        tampered = dataclasses.replace(proof, round_proofs=[])
        with caplog.at_level(logging.INFO, logger="stir.protocol.verifier"):
            assert not verify(small_config, commitment, tampered, Transcript())
        assert "rejected" in caplog.text


class TestCancellation:
    """Proof generation can be cancelled during grinding."""

    def test_cancelled_prove(self) -> None:
        config = make_config(pow_bits=10)
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(GrindingCancelled):
            prove(config, Polynomial.random(FF, 255, seed=18), Transcript(), cancel=cancel)
