"""
Proof submission adapter.

Reshapes the prover's nested proof record into the flat list of uints the
ledger contract takes. There is no cryptography here, only ordering and
base conversion, but the ordering must match the contract's argument layout.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from ...errors import MalformedHexError, ValidationError
from ..hashing import hex_to_int


@dataclass(frozen=True)
class FlatProof:
    """Proof as an ordered tuple of field-sized words."""

    words: Tuple[int, ...]

    def __post_init__(self):
        if not self.words:
            raise ValueError("proof cannot be empty")

    def __len__(self) -> int:
        return len(self.words)

    def __iter__(self) -> Iterator[int]:
        return iter(self.words)

    def to_decimal(self) -> List[str]:
        """Decimal strings, as the ledger expects uints."""
        return [str(word) for word in self.words]


def _flatten(node: Any, out: List[int], path: str) -> None:
    if isinstance(node, Mapping):
        for key, value in node.items():
            _flatten(value, out, f"{path}.{key}")
    elif isinstance(node, (list, tuple)):
        for index, value in enumerate(node):
            _flatten(value, out, f"{path}[{index}]")
    elif isinstance(node, str):
        out.append(hex_to_int(node, f"proof{path}"))
    elif isinstance(node, int) and not isinstance(node, bool) and node >= 0:
        out.append(node)
    else:
        raise MalformedHexError(
            f"proof{path} is not a hex word: {node!r}", field=f"proof{path}", value=node
        )


def flatten_proof(proof: Any, order: Optional[Sequence[str]] = None) -> FlatProof:
    """
    Flatten a nested proof record into ordered words.

    Args:
        proof: Prover output; mappings are walked in their own key order
            and sequences in index order
        order: Top-level keys to take, in this order, instead of the
            record's own order

    Returns:
        The flattened proof
    """
    if order is not None:
        if not isinstance(proof, Mapping):
            raise ValidationError("An explicit order needs a proof record with named parts", field="proof")
        missing = [key for key in order if key not in proof]
        if missing:
            raise ValidationError(
                f"Proof record is missing parts {missing}",
                field="proof",
                expected=list(order),
            )
        proof = [proof[key] for key in order]

    words: List[int] = []
    _flatten(proof, words, "")
    return FlatProof(words=tuple(words))
