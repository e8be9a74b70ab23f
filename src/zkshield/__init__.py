"""
zkshield: client side of a shielded fungible-token protocol.

This package provides:
- Hex codec, normalization and SHA-256 derivations for keys, commitments
  and nullifiers
- Bit-exact field packing and ordered witness assembly for an external prover
- Merkle path reconciliation against the ledger root
- Mint, Transfer and Burn pipelines that prove and submit to a ledger
- web3 adapters for the shield and token contracts
"""

from .config import ShieldConfig
from .crypto import MerklePath, MerkleTree, PathReconciler, ShieldHasher
from .crypto.zkp import (
    Element,
    Encoding,
    FieldPacker,
    FlatProof,
    MockProverBackend,
    ProverBackend,
    VerificationKeyRegistry,
    Witness,
    ZokratesBackend,
    flatten_proof,
)
from .errors import (
    ConfigurationError,
    ConservationError,
    LedgerError,
    MalformedHexError,
    ProverError,
    ShieldError,
    StaleRootError,
    ValidationError,
    WidthExceededError,
)
from .ledger import (
    LedgerBinding,
    LedgerDirectory,
    PlainAssetLedger,
    ShieldedLedger,
    TokenInfo,
)
from .shield import (
    BurnReceipt,
    CorrectnessReport,
    MintReceipt,
    ShieldEngine,
    TransferReceipt,
)

__version__ = "0.1.0"

__all__ = [
    "ShieldConfig",
    "ShieldHasher",
    "MerklePath",
    "MerkleTree",
    "PathReconciler",
    "Element",
    "Encoding",
    "FieldPacker",
    "Witness",
    "FlatProof",
    "flatten_proof",
    "ProverBackend",
    "ZokratesBackend",
    "MockProverBackend",
    "VerificationKeyRegistry",
    "LedgerBinding",
    "LedgerDirectory",
    "PlainAssetLedger",
    "ShieldedLedger",
    "TokenInfo",
    "ShieldEngine",
    "MintReceipt",
    "TransferReceipt",
    "BurnReceipt",
    "CorrectnessReport",
    "ShieldError",
    "ValidationError",
    "MalformedHexError",
    "WidthExceededError",
    "ConservationError",
    "StaleRootError",
    "ConfigurationError",
    "ProverError",
    "LedgerError",
]
