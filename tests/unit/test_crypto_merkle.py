"""
Unit tests for Merkle paths, the local tree and root reconciliation.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from zkshield.crypto.hashing import ShieldHasher
from zkshield.crypto.merkle import (
    MerklePath,
    MerkleTree,
    PathReconciler,
    check_root,
    compute_root,
    hash_nodes,
)
from zkshield.errors import StaleRootError, ValidationError


@pytest.fixture
def hasher():
    return ShieldHasher()


def leaf(n: int) -> str:
    return "0x" + format(n, "064x")


class TestMerklePath:
    """Test the MerklePath value type."""

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError, match="cannot be empty") as exc_info:
            MerklePath(siblings=(), positions=0)
        assert exc_info.value.field == "siblings"

    def test_positions_must_fit_depth(self):
        with pytest.raises(ValidationError, match="do not fit a path of depth 2") as exc_info:
            MerklePath(siblings=(leaf(1), leaf(2)), positions=4)
        assert exc_info.value.field == "positions"
        with pytest.raises(ValidationError):
            MerklePath(siblings=(leaf(1),), positions=-1)

    def test_malformed_path_is_not_a_value_error(self):
        with pytest.raises(ValidationError) as exc_info:
            MerklePath(siblings=(leaf(1),), positions=2)
        assert not isinstance(exc_info.value, ValueError)

    def test_is_right(self):
        path = MerklePath(siblings=(leaf(1), leaf(2), leaf(3)), positions=0b101)
        assert path.is_right(0)
        assert not path.is_right(1)
        assert path.is_right(2)
        assert len(path) == 3

    def test_positions_hex(self):
        path = MerklePath(siblings=(leaf(1),) * 4, positions=5)
        assert path.positions_hex() == "0x" + "0" * 31 + "5"
        assert path.positions_hex(8) == "0x05"


class TestComputeRoot:
    """Test folding a leaf through a path."""

    def test_left_and_right_children(self, hasher):
        a, b = hasher.normalize(leaf(1)), hasher.normalize(leaf(2))
        parent = hash_nodes(a, b, hasher)

        assert compute_root(a, MerklePath(siblings=(b,), positions=0), hasher) == parent
        assert compute_root(b, MerklePath(siblings=(a,), positions=1), hasher) == parent

    def test_hash_nodes_is_normalized(self, hasher):
        parent = hash_nodes(leaf(1), leaf(2), hasher)
        assert parent == hasher.normalize(parent)

    def test_check_root(self, hasher):
        tree = MerkleTree(hasher, depth=3)
        for n in range(5):
            tree.append(leaf(n + 1))

        for index in range(5):
            assert check_root(tree.leaf(index), tree.path(index), tree.root(), hasher)
        assert not check_root(leaf(99), tree.path(0), tree.root(), hasher)


class TestMerkleTree:
    """Test the append-only tree."""

    def test_invalid_depth(self, hasher):
        with pytest.raises(ValueError, match="depth must be positive"):
            MerkleTree(hasher, depth=0)

    def test_empty_root_is_zero_subtree(self, hasher):
        tree = MerkleTree(hasher, depth=2)
        zero = hasher.normalize("0x00")
        level1 = hash_nodes(zero, zero, hasher)
        assert tree.root() == hash_nodes(level1, level1, hasher)
        assert len(tree) == 0

    def test_append_returns_index(self, hasher):
        tree = MerkleTree(hasher, depth=4)
        assert tree.append(leaf(7)) == 0
        assert tree.append(leaf(8)) == 1
        assert len(tree) == 2
        assert tree.capacity == 16

    def test_root_changes_on_append(self, hasher):
        tree = MerkleTree(hasher, depth=4)
        before = tree.root()
        tree.append(leaf(1))
        assert tree.root() != before

    def test_full_tree(self, hasher):
        tree = MerkleTree(hasher, depth=1)
        tree.append(leaf(1))
        tree.append(leaf(2))
        with pytest.raises(ValueError, match="full"):
            tree.append(leaf(3))

    def test_leaf_lookup(self, hasher):
        tree = MerkleTree(hasher, depth=2)
        tree.append(leaf(5))
        assert tree.leaf(0) == hasher.normalize(leaf(5))
        assert tree.leaf(1) is None
        assert tree.leaf(-1) is None

    def test_path_out_of_range(self, hasher):
        tree = MerkleTree(hasher, depth=2)
        with pytest.raises(IndexError):
            tree.path(0)

    def test_path_positions_equal_index(self, hasher):
        tree = MerkleTree(hasher, depth=3)
        for n in range(6):
            tree.append(leaf(n + 1))
        assert tree.path(5).positions == 5
        assert len(tree.path(5)) == 3


class TestPathReconciler:
    """Test fetching and checking paths against a ledger."""

    @pytest.fixture
    def tree(self, hasher):
        tree = MerkleTree(hasher, depth=4)
        for n in range(3):
            tree.append(leaf(n + 10))
        return tree

    @pytest.fixture
    def ledger(self, tree):
        ledger = Mock()
        ledger.get_path = AsyncMock(side_effect=lambda _leaf, index: tree.path(index))
        return ledger

    @pytest.mark.asyncio
    async def test_reconcile_returns_path(self, hasher, tree, ledger):
        reconciler = PathReconciler(hasher, depth=4)
        path = await reconciler.reconcile(ledger, tree.leaf(1), 1, tree.root())
        assert path == tree.path(1)
        ledger.get_path.assert_awaited_once_with(tree.leaf(1), 1)

    @pytest.mark.asyncio
    async def test_reconcile_stale_root(self, hasher, tree, ledger):
        reconciler = PathReconciler(hasher, depth=4)
        stale = tree.root()
        tree.append(leaf(99))

        with pytest.raises(StaleRootError) as exc_info:
            await reconciler.reconcile(ledger, tree.leaf(0), 0, stale)

        error = exc_info.value
        assert error.retryable is True
        assert error.leaf_index == 0
        assert error.expected_root == stale
        assert error.computed_root == tree.root()

    @pytest.mark.asyncio
    async def test_reconcile_wrong_leaf(self, hasher, tree, ledger):
        reconciler = PathReconciler(hasher, depth=4)
        with pytest.raises(StaleRootError):
            await reconciler.reconcile(ledger, leaf(12345), 0, tree.root())

    @pytest.mark.asyncio
    async def test_fetch_rejects_wrong_depth(self, hasher, ledger):
        reconciler = PathReconciler(hasher, depth=32)
        with pytest.raises(ValidationError, match="depth 4"):
            await reconciler.fetch(ledger, leaf(10), 0)

    def test_check(self, hasher, tree):
        reconciler = PathReconciler(hasher, depth=4)
        assert reconciler.check(tree.leaf(2), tree.path(2), tree.root())
