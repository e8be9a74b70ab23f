"""
Prover-facing side of zkshield.

Turns hex values into the ordered numeric witness vectors an external
zero-knowledge prover consumes, and turns its proof records back into the
flat words a ledger contract expects.

Key pieces:
- ``Element`` / ``FieldPacker``: bit-exact packing into field words
- ``Witness``: ordered, labelled witness assembly
- ``ProverBackend``: the external prover boundary, with a ZoKrates CLI
  backend and a deterministic mock
- ``flatten_proof``: proof record -> ``FlatProof``
- ``VerificationKeyRegistry``: operation name -> vkId, loaded once
"""

from .backends import MockProverBackend, ZokratesBackend
from .core import CircuitRef, ProofRequest, ProverBackend
from .elements import Element, Encoding, FieldPacker
from .proof import FlatProof, flatten_proof
from .registry import VerificationKeyRegistry
from .witness import Witness

__all__ = [
    # Core types
    "CircuitRef",
    "ProofRequest",
    "ProverBackend",
    # Backends
    "ZokratesBackend",
    "MockProverBackend",
    # Packing
    "Element",
    "Encoding",
    "FieldPacker",
    "Witness",
    # Proof adapter
    "FlatProof",
    "flatten_proof",
    # Registry
    "VerificationKeyRegistry",
]
