"""
Merkle authentication paths for shielded commitments.

The ledger stores commitments as leaves of a fixed-depth binary tree. Before a
path is embedded in a witness it is folded locally and compared against the
ledger's root, so a stale path fails here instead of inside the prover.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ..config import MERKLE_DEPTH
from ..errors import create_stale_root_error, create_validation_error
from .hashing import ShieldHasher

if TYPE_CHECKING:
    from ..ledger.interfaces import ShieldedLedger


@dataclass(frozen=True)
class MerklePath:
    """Sibling hashes from leaf level up to the root, plus a position bitmask.

    Bit ``i`` of ``positions`` is 1 when the node on the path at level ``i``
    is a right child, so for a full binary tree it equals the leaf index.
    """

    siblings: Tuple[str, ...]
    positions: int

    def __post_init__(self):
        if not self.siblings:
            raise create_validation_error(
                "siblings", self.siblings, "at least one sibling", "Merkle path cannot be empty"
            )
        if self.positions < 0 or self.positions >> len(self.siblings):
            raise create_validation_error(
                "positions",
                self.positions,
                f"a bitmask of at most {len(self.siblings)} bits",
                f"positions {self.positions:#x} do not fit a path of depth {len(self.siblings)}",
            )

    def __len__(self) -> int:
        return len(self.siblings)

    def is_right(self, level: int) -> bool:
        return bool((self.positions >> level) & 1)

    def positions_hex(self, bits: int = 128) -> str:
        """Position bitmask as a fixed-width hex string."""
        return "0x" + format(self.positions, f"0{bits // 4}x")


def hash_nodes(left: str, right: str, hasher: ShieldHasher) -> str:
    """Parent of two tree nodes."""
    return hasher.normalize(hasher.concatenate_then_hash(left, right))


def compute_root(leaf: str, path: MerklePath, hasher: ShieldHasher) -> str:
    """Fold ``leaf`` through ``path`` and return the root it implies."""
    node = hasher.normalize(leaf, "leaf")
    for level, sibling in enumerate(path.siblings):
        sibling = hasher.normalize(sibling, "sibling")
        if path.is_right(level):
            node = hash_nodes(sibling, node, hasher)
        else:
            node = hash_nodes(node, sibling, hasher)
    return node


def check_root(leaf: str, path: MerklePath, root: str, hasher: ShieldHasher) -> bool:
    """True when ``path`` folds ``leaf`` to exactly ``root``."""
    return compute_root(leaf, path, hasher) == hasher.normalize(root, "root")


class PathReconciler:
    """Fetches authentication paths from the ledger and checks them against a root."""

    def __init__(self, hasher: ShieldHasher, depth: int = MERKLE_DEPTH):
        self.hasher = hasher
        self.depth = depth

    async def fetch(self, ledger: "ShieldedLedger", leaf: str, leaf_index: int) -> MerklePath:
        """Retrieve the path for ``leaf`` at ``leaf_index``."""
        path = await ledger.get_path(leaf, leaf_index)
        if len(path) != self.depth:
            raise create_validation_error(
                "merkle_path", len(path), self.depth,
                f"Ledger returned a path of depth {len(path)}, expected {self.depth}",
            )
        return path

    def check(self, leaf: str, path: MerklePath, root: str) -> bool:
        return check_root(leaf, path, root, self.hasher)

    async def reconcile(
        self, ledger: "ShieldedLedger", leaf: str, leaf_index: int, root: str
    ) -> MerklePath:
        """
        Fetch the path for a leaf and verify it against ``root``.

        Args:
            ledger: Shielded ledger holding the tree
            leaf: Commitment stored at the leaf
            leaf_index: Position of the leaf in the tree
            root: Root the path must fold to

        Returns:
            The verified path

        Raises:
            StaleRootError: if the path does not fold to ``root``
        """
        path = await self.fetch(ledger, leaf, leaf_index)
        computed = compute_root(leaf, path, self.hasher)
        expected = self.hasher.normalize(root, "root")
        if computed != expected:
            logger.warning(
                f"Root mismatch for leaf {leaf} at index {leaf_index}: "
                f"computed {computed}, ledger {expected}"
            )
            raise create_stale_root_error(leaf, leaf_index, expected, computed)
        logger.debug(f"Path for leaf {leaf} at index {leaf_index} reconciles to {expected}")
        return path


class MerkleTree:
    """Append-only binary Merkle tree of fixed depth.

    Empty leaves are the zero value, so the root is defined for any number
    of appended leaves. Only non-empty subtrees are stored.
    """

    def __init__(self, hasher: ShieldHasher, depth: int = MERKLE_DEPTH):
        if depth <= 0:
            raise ValueError("depth must be positive")
        self.hasher = hasher
        self.depth = depth
        self._nodes: Dict[Tuple[int, int], str] = {}
        self._leaf_count = 0
        self._zeros = self._zero_hashes()

    def _zero_hashes(self) -> List[str]:
        zeros = [self.hasher.normalize("0x00")]
        for _ in range(self.depth):
            zeros.append(hash_nodes(zeros[-1], zeros[-1], self.hasher))
        return zeros

    def _node(self, level: int, index: int) -> str:
        return self._nodes.get((level, index), self._zeros[level])

    def __len__(self) -> int:
        return self._leaf_count

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    def append(self, leaf: str) -> int:
        """Add a leaf and return its index."""
        if self._leaf_count >= self.capacity:
            raise ValueError("Merkle tree is full")

        index = self._leaf_count
        self._leaf_count += 1
        node = self.hasher.normalize(leaf, "leaf")
        self._nodes[(0, index)] = node

        position = index
        for level in range(self.depth):
            if position & 1:
                node = hash_nodes(self._node(level, position - 1), node, self.hasher)
            else:
                node = hash_nodes(node, self._node(level, position + 1), self.hasher)
            position >>= 1
            self._nodes[(level + 1, position)] = node

        return index

    def root(self) -> str:
        return self._node(self.depth, 0)

    def leaf(self, index: int) -> Optional[str]:
        if index < 0 or index >= self._leaf_count:
            return None
        return self._nodes[(0, index)]

    def path(self, index: int) -> MerklePath:
        """Authentication path for the leaf at ``index``."""
        if index < 0 or index >= self._leaf_count:
            raise IndexError("Leaf index out of range")

        siblings = []
        position = index
        for level in range(self.depth):
            siblings.append(self._node(level, position ^ 1))
            position >>= 1

        return MerklePath(siblings=tuple(siblings), positions=index)
