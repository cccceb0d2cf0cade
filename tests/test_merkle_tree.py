"""Tests for the BLAKE2b Merkle tree and vector commitment."""

import pytest

from stir.primitives.field import FF
from stir.primitives.merkle_tree import (
    HASH_SIZE,
    MerkleCommitmentScheme,
    MerkleTree,
    merkle_proof_length,
)


def random_rows(height: int, width: int = 4):
    return FF.Random((height, width))


class TestMerkleTree:
    """Tests for tree construction and proofs."""

    @pytest.mark.parametrize("arity", [2, 4])
    @pytest.mark.parametrize("height", [1, 2, 5, 16, 33])
    def test_every_leaf_verifies(self, arity: int, height: int) -> None:
        """Each leaf's query proof verifies against the root."""
        rows = random_rows(height)
        tree = MerkleTree(arity)
        tree.merkelize(rows)
        root = tree.get_root()
        assert len(root) == HASH_SIZE

        for idx in range(height):
            proof = tree.get_query_proof(idx)
            assert len(proof.mp) == tree.get_merkle_proof_length()
            assert tree.verify_group_proof(root, proof.mp, idx, proof.v)

    def test_root_depends_on_every_leaf(self) -> None:
        """Changing one value changes the root."""
        rows = random_rows(8)
        tree = MerkleTree(2)
        tree.merkelize(rows)

        modified = rows.copy()
        modified[5, 2] = modified[5, 2] + FF(1)
        other = MerkleTree(2)
        other.merkelize(modified)
        assert tree.get_root() != other.get_root()

    def test_wrong_leaf_rejected(self) -> None:
        """A proof does not verify for altered leaf values."""
        rows = random_rows(8)
        tree = MerkleTree(4)
        tree.merkelize(rows)
        proof = tree.get_query_proof(3)
        assert not tree.verify_group_proof(tree.get_root(), proof.mp, 3, rows[4])

    def test_wrong_index_rejected(self) -> None:
        """A proof does not verify at another index."""
        rows = random_rows(8)
        tree = MerkleTree(2)
        tree.merkelize(rows)
        proof = tree.get_query_proof(3)
        assert not tree.verify_group_proof(tree.get_root(), proof.mp, 2, proof.v)

    def test_malformed_siblings_rejected(self) -> None:
        """Sibling lists of the wrong length or type do not verify."""
        rows = random_rows(4)
        tree = MerkleTree(2)
        tree.merkelize(rows)
        proof = tree.get_query_proof(0)
        assert not tree.verify_group_proof(tree.get_root(), [[]] + proof.mp[1:], 0, proof.v)
        assert not tree.verify_group_proof(tree.get_root(), [[b"short"]] + proof.mp[1:], 0, proof.v)

    @pytest.mark.parametrize("level", [7, None, b"\x00" * 32])
    def test_non_list_level_rejected(self, level) -> None:
        """A path level that is not a sibling list verifies as False instead of raising."""
        rows = random_rows(4)
        tree = MerkleTree(2)
        tree.merkelize(rows)
        proof = tree.get_query_proof(1)
        malformed = [level] * len(proof.mp)
        assert not tree.verify_group_proof(tree.get_root(), malformed, 1, proof.v)

    def test_query_out_of_range(self) -> None:
        """Query indices must lie in the tree."""
        tree = MerkleTree(2)
        tree.merkelize(random_rows(4))
        with pytest.raises(ValueError):
            tree.get_query_proof(4)

    def test_invalid_arity(self) -> None:
        """Only arities 2 and 4 are supported."""
        with pytest.raises(ValueError):
            MerkleTree(3)

    @pytest.mark.parametrize("height, arity, expected", [(1, 2, 0), (2, 2, 1), (5, 2, 3), (16, 4, 2), (17, 4, 3)])
    def test_proof_length(self, height: int, arity: int, expected: int) -> None:
        """Proof length is ceil(log_arity(height))."""
        assert merkle_proof_length(height, arity) == expected


class TestMerkleCommitmentScheme:
    """Tests for the vector commitment interface."""

    @pytest.mark.parametrize("arity", [2, 4])
    def test_commit_open_verify(self, arity: int) -> None:
        """Openings verify with the committed height and width."""
        scheme = MerkleCommitmentScheme(arity)
        rows = random_rows(16)
        root, tree = scheme.commit(rows)
        for idx in [0, 7, 15]:
            values, path = scheme.open(tree, idx)
            assert scheme.verify(root, idx, values, path, 16, width=4)

    def test_verify_rejects_wrong_height(self) -> None:
        """A path of the wrong length for the claimed height is rejected."""
        scheme = MerkleCommitmentScheme(2)
        root, tree = scheme.commit(random_rows(16))
        values, path = scheme.open(tree, 1)
        assert not scheme.verify(root, 1, values, path, 32)
        assert not scheme.verify(root, 16, values, path, 16)

    def test_verify_rejects_wrong_width(self) -> None:
        """Leaves of the wrong width are rejected."""
        scheme = MerkleCommitmentScheme(2)
        root, tree = scheme.commit(random_rows(8))
        values, path = scheme.open(tree, 2)
        assert not scheme.verify(root, 2, values[:3], path, 8, width=4)
