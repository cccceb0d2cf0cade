"""Protocol - STIR configuration, prover and verifier."""

from stir.protocol.config import (
    MAX_POW_BITS,
    RoundConfig,
    StirConfig,
    StirConfigError,
    StirParameters,
)
from stir.protocol.proof import RoundProof, StirProof
from stir.protocol.prover import StirWitness, commit, prove, prove_on_commitment
from stir.protocol.proximity_gaps import SecurityAssumption
from stir.protocol.verifier import (
    Rejection,
    VerificationCheck,
    VerificationResult,
    verify,
    verify_with_reason,
)

__all__ = [
    # Configuration
    "SecurityAssumption",
    "StirParameters",
    "StirConfig",
    "RoundConfig",
    "StirConfigError",
    "MAX_POW_BITS",
    # Proof
    "StirProof",
    "RoundProof",
    # Prover
    "StirWitness",
    "commit",
    "prove",
    "prove_on_commitment",
    # Verifier
    "verify",
    "verify_with_reason",
    "VerificationResult",
    "VerificationCheck",
    "Rejection",
]
