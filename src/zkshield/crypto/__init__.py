"""
Cryptographic primitives for zkshield.

- Hex codec, normalization and hash derivations (SHA-256)
- Merkle authentication paths and root reconciliation
- Field packing, witness assembly and prover adapters
"""

from .hashing import (
    ShieldHasher,
    ensure_0x,
    hex_to_dec,
    left_pad_hex,
    strip_0x,
    validate_hex,
)
from .merkle import MerklePath, MerkleTree, PathReconciler, check_root, compute_root

__all__ = [
    "ShieldHasher",
    "strip_0x",
    "ensure_0x",
    "validate_hex",
    "hex_to_dec",
    "left_pad_hex",
    "MerklePath",
    "MerkleTree",
    "PathReconciler",
    "compute_root",
    "check_root",
]
