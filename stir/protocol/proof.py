"""STIR proof data structures."""

from dataclasses import dataclass, field
from typing import List

from stir.primitives.merkle_tree import MerkleRoot, QueryProof
from stir.primitives.polynomial import Polynomial


# --- Proof Data Structures ---

@dataclass(frozen=True)
class RoundProof:
    """Messages of one full round i, which commits to g_i.

    Attributes:
        g_root: Merkle root of g_i over L_i, stacked by the next folding factor
        betas: g_i at the out-of-domain points (FieldArray)
        ans_polynomial: Interpolant of g_i over the OOD and shift points
        query_proofs: Openings of the fold classes of the previous oracle,
                      in ascending query-index order
        shake_polynomial: sum_j (ans - y_j) / (x - x_j) over the same points
        pow_witness: Proof-of-work nonce of the round
    """
    g_root: MerkleRoot
    betas: object
    ans_polynomial: Polynomial
    query_proofs: List[QueryProof]
    shake_polynomial: Polynomial
    pow_witness: int


@dataclass(frozen=True)
class StirProof:
    """Complete STIR proof.

    Attributes:
        round_proofs: One RoundProof per full round
        final_polynomial: Last fold of the last oracle, sent in the clear
        pow_witness: Proof-of-work nonce of the final round
        final_round_queries: Openings of the last oracle checked against final_polynomial
        starting_pow_witness: Proof-of-work nonce before the first folding challenge is used
    """
    round_proofs: List[RoundProof]
    final_polynomial: Polynomial
    pow_witness: int
    final_round_queries: List[QueryProof] = field(default_factory=list)
    starting_pow_witness: int = 0

    @property
    def num_rounds(self) -> int:
        """Number of full rounds."""
        return len(self.round_proofs)

    def query_count(self) -> int:
        """Total number of fold-class openings in the proof."""
        return sum(len(rp.query_proofs) for rp in self.round_proofs) + len(self.final_round_queries)
