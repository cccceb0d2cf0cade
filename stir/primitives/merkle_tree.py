"""Merkle tree vector commitment using BLAKE2b."""

import hashlib
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

from stir.primitives.field import to_bytes

# --- Constants ---

HASH_SIZE = 32

_LEAF_PREFIX = b"\x00"
_NODE_PREFIX = b"\x01"

# --- Type Aliases ---

MerkleRoot = bytes
MerklePath = List[List[bytes]]


# --- Data Classes ---

@dataclass
class QueryProof:
    """Query proof containing leaf values and Merkle authentication path.

    Attributes:
        v: Leaf values at the query index (one row of the committed matrix, a FieldArray)
        mp: Merkle path - one list of (arity - 1) sibling hashes per level,
            from leaf to root
    """
    v: object = None
    mp: MerklePath = field(default_factory=list)


# --- Hashing ---

def hash_leaf(values) -> bytes:
    """Hash one row of field elements."""
    return hashlib.blake2b(_LEAF_PREFIX + to_bytes(values), digest_size=HASH_SIZE).digest()


def hash_node(children: List[bytes]) -> bytes:
    return hashlib.blake2b(_NODE_PREFIX + b"".join(children), digest_size=HASH_SIZE).digest()


_ZERO_HASH = b"\x00" * HASH_SIZE


# --- Merkle Tree ---

class MerkleTree:
    """Variable-arity Merkle tree over the rows of a field matrix."""

    def __init__(self, arity: int = 2):
        if arity not in [2, 4]:
            raise ValueError(f"arity must be 2 or 4, got {arity}")

        self.arity = arity
        self.height = 0
        self.width = 0
        # levels[0] holds leaf hashes, levels[-1] == [root]
        self.levels: List[List[bytes]] = []
        self.source = None

    # --- Core Operations ---

    def merkelize(self, rows) -> None:
        """Build Merkle tree from a 2-D FieldArray, one leaf per row.

        Each level is padded with zero hashes to a multiple of the arity
        before hashing the next level.
        """
        if rows.ndim != 2:
            raise ValueError(f"rows must be a 2-D field array, got shape {rows.shape}")
        self.height, self.width = rows.shape
        self.source = rows

        if self.height == 0:
            self.levels = [[_ZERO_HASH]]
            return

        level = [hash_leaf(rows[i]) for i in range(self.height)]
        self.levels = [level]
        while len(level) > 1:
            extra_zeros = (self.arity - (len(level) % self.arity)) % self.arity
            padded = level + [_ZERO_HASH] * extra_zeros
            level = [hash_node(padded[i:i + self.arity]) for i in range(0, len(padded), self.arity)]
            self.levels.append(level)

    def get_root(self) -> MerkleRoot:
        """Return the Merkle root commitment."""
        if not self.levels:
            return _ZERO_HASH
        return self.levels[-1][0]

    def get_group_proof(self, idx: int) -> MerklePath:
        """Generate Merkle proof (siblings only) for leaf at index."""
        proof: MerklePath = []
        for level in self.levels[:-1]:
            group = idx - idx % self.arity
            siblings = []
            for i in range(group, group + self.arity):
                if i != idx:
                    siblings.append(level[i] if i < len(level) else _ZERO_HASH)
            proof.append(siblings)
            idx //= self.arity
        return proof

    def get_query_proof(self, idx: int) -> QueryProof:
        """Extract leaf values and Merkle path for a query index.

        Raises:
            ValueError: If the tree is empty or idx out of range
        """
        if self.source is None:
            raise ValueError("Tree not built - cannot extract leaf values")
        if idx < 0 or idx >= self.height:
            raise ValueError(f"Query index {idx} out of range [0, {self.height})")
        return QueryProof(v=self.source[idx].copy(), mp=self.get_group_proof(idx))

    def verify_group_proof(self, root: MerkleRoot, proof: MerklePath, idx: int, leaf_values) -> bool:
        """Verify Merkle proof for a leaf. Malformed proofs verify as False."""
        computed = hash_leaf(leaf_values)

        for level_siblings in proof:
            if not isinstance(level_siblings, (list, tuple)) or len(level_siblings) != self.arity - 1:
                return False
            if any(not isinstance(s, bytes) or len(s) != HASH_SIZE for s in level_siblings):
                return False
            curr_idx = idx % self.arity
            idx //= self.arity
            children = list(level_siblings)
            children.insert(curr_idx, computed)
            computed = hash_node(children)

        return computed == root

    # --- Proof Size Utilities ---

    def get_merkle_proof_length(self) -> int:
        """Number of levels in a Merkle proof."""
        return merkle_proof_length(self.height, self.arity)


def merkle_proof_length(height: int, arity: int) -> int:
    """Number of levels in a Merkle proof for a tree of the given height."""
    length = 0
    while height > 1:
        height = (height + arity - 1) // arity
        length += 1
    return length


# --- Vector Commitment Interface ---

class VectorCommitmentScheme(Protocol):
    """Commitment to a matrix of field elements with per-row openings."""

    def commit(self, rows) -> Tuple[MerkleRoot, MerkleTree]:
        ...

    def open(self, tree: MerkleTree, index: int) -> Tuple[object, MerklePath]:
        ...

    def verify(self, root: MerkleRoot, index: int, values, path: MerklePath, height: int) -> bool:
        ...


@dataclass(frozen=True)
class MerkleCommitmentScheme:
    """VectorCommitmentScheme backed by MerkleTree."""

    arity: int = 2

    def __post_init__(self):
        if self.arity not in [2, 4]:
            raise ValueError(f"arity must be 2 or 4, got {self.arity}")

    def commit(self, rows) -> Tuple[MerkleRoot, MerkleTree]:
        tree = MerkleTree(self.arity)
        tree.merkelize(rows)
        return tree.get_root(), tree

    def open(self, tree: MerkleTree, index: int) -> Tuple[object, MerklePath]:
        proof = tree.get_query_proof(index)
        return proof.v, proof.mp

    def verify(
        self,
        root: MerkleRoot,
        index: int,
        values,
        path: MerklePath,
        height: int,
        width: Optional[int] = None,
    ) -> bool:
        """Check an opening of row index in a tree of the given height."""
        if not 0 <= index < height:
            return False
        if width is not None and len(values) != width:
            return False
        if len(path) != merkle_proof_length(height, self.arity):
            return False
        tree = MerkleTree(self.arity)
        return tree.verify_group_proof(root, path, index, values)
