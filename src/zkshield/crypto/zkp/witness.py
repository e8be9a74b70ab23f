"""
Ordered witness vectors.

The element sequence is part of the prover contract: it must match the
circuit's expected input order exactly, so a ``Witness`` only ever appends.
"""

from typing import List, Optional, Tuple

from ..merkle import MerklePath
from .elements import Element, Encoding, FieldPacker


class Witness:
    """Labelled elements in circuit input order."""

    def __init__(self, packer: FieldPacker):
        self.packer = packer
        self._entries: List[Tuple[str, Element, bool]] = []

    def add(self, label: str, element: Element, secret: bool = False) -> "Witness":
        self._entries.append((label, element, secret))
        return self

    def add_field(
        self,
        label: str,
        value: str,
        bit_width: Optional[int] = None,
        words: Optional[int] = None,
        secret: bool = False,
    ) -> "Witness":
        return self.add(label, Element(value, Encoding.FIELD, bit_width, words), secret)

    def add_path(
        self, label: str, path: MerklePath, node_bits: int, positions_bits: int
    ) -> "Witness":
        """Append every sibling as one word, then the position bitmask as one word."""
        for level, sibling in enumerate(path.siblings):
            self.add(f"{label}[{level}]", Element(sibling, Encoding.FIELD, node_bits, 1))
        return self.add(
            f"{label}.positions",
            Element(path.positions_hex(positions_bits), Encoding.FIELD, positions_bits, 1),
        )

    @property
    def labels(self) -> List[str]:
        return [label for label, _, _ in self._entries]

    @property
    def elements(self) -> List[Element]:
        return [element for _, element, _ in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def to_vector(self) -> List[str]:
        return self.packer.compute_vectors(self.elements)

    def describe(self) -> List[Tuple[str, List[str]]]:
        """Each label with its packed words for debug logging; secrets are masked."""
        described = []
        for label, element, secret in self._entries:
            words = self.packer.to_vector(element)
            described.append((label, ["<redacted>"] * len(words) if secret else words))
        return described
