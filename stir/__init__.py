"""STIR - Shift To Improve Rate, a Reed-Solomon low-degree test.

Typical use::

    from stir import FF, Polynomial, SecurityAssumption, StirConfig, StirParameters, Transcript
    import stir

    params = StirParameters.fixed_domain_shift(
        log_starting_degree=10, log_starting_inv_rate=2, log_folding_factor=2, num_rounds=3,
        security_assumption=SecurityAssumption.CAPACITY_BOUND, security_level=100, pow_bits=10,
    )
    config = StirConfig.from_parameters(params)
    commitment, proof = stir.prove(config, Polynomial.random(FF, 1023), Transcript())
    assert stir.verify(config, commitment, proof, Transcript())
"""

from stir.primitives import (
    FF,
    GL,
    Domain,
    GrindingCancelled,
    InexactDivisionError,
    MerkleCommitmentScheme,
    Polynomial,
    Transcript,
)
from stir.protocol import (
    Rejection,
    RoundConfig,
    RoundProof,
    SecurityAssumption,
    StirConfig,
    StirConfigError,
    StirParameters,
    StirProof,
    StirWitness,
    VerificationCheck,
    VerificationResult,
    commit,
    prove,
    prove_on_commitment,
    verify,
    verify_with_reason,
)

__all__ = [
    "FF",
    "GL",
    "Domain",
    "Polynomial",
    "Transcript",
    "MerkleCommitmentScheme",
    "InexactDivisionError",
    "GrindingCancelled",
    "SecurityAssumption",
    "StirParameters",
    "StirConfig",
    "RoundConfig",
    "StirConfigError",
    "StirProof",
    "RoundProof",
    "StirWitness",
    "commit",
    "prove",
    "prove_on_commitment",
    "verify",
    "verify_with_reason",
    "VerificationResult",
    "VerificationCheck",
    "Rejection",
]
