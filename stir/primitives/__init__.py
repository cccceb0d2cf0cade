"""Primitives - Field arithmetic, polynomials, domains and hashing building blocks."""

from stir.primitives.domain import Domain
from stir.primitives.field import (
    FF,
    GL,
    BN254_SCALAR_PRIME,
    GOLDILOCKS_PRIME,
    batch_inverse,
    field_bits,
    multiplicative_generator,
    two_adic_generator,
    two_adicity,
)
from stir.primitives.grinding import GrindingCancelled, grinding, verify_grinding
from stir.primitives.merkle_tree import (
    HASH_SIZE,
    MerkleCommitmentScheme,
    MerkleRoot,
    MerkleTree,
    QueryProof,
    VectorCommitmentScheme,
)
from stir.primitives.ntt import NTT, get_ntt
from stir.primitives.polynomial import InexactDivisionError, Polynomial
from stir.primitives.transcript import Transcript

__all__ = [
    # Field
    "FF",
    "GL",
    "BN254_SCALAR_PRIME",
    "GOLDILOCKS_PRIME",
    "batch_inverse",
    "field_bits",
    "multiplicative_generator",
    "two_adic_generator",
    "two_adicity",
    # NTT
    "NTT",
    "get_ntt",
    # Polynomial
    "Polynomial",
    "InexactDivisionError",
    # Domain
    "Domain",
    # Merkle Tree
    "MerkleTree",
    "MerkleRoot",
    "MerkleCommitmentScheme",
    "VectorCommitmentScheme",
    "QueryProof",
    "HASH_SIZE",
    # Transcript
    "Transcript",
    # Grinding
    "grinding",
    "verify_grinding",
    "GrindingCancelled",
]
