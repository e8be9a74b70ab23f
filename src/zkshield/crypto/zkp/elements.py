"""
Field-element packing.

An ``Element`` says how one hex value is laid out in the prover's input
vector. Packing must be bit-identical to the circuit's own encoding, so
nothing here truncates: a value wider than its declared width is an error.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from ...config import FIELD_MODULUS, PACKING_SIZE, ShieldConfig
from ...errors import ValidationError, WidthExceededError
from ..hashing import validate_hex

logger = logging.getLogger(__name__)


class Encoding(Enum):
    """How an element is serialized into the vector."""

    FIELD = "field"  # big-endian words below the field modulus
    BITS = "bits"  # one entry per bit
    BYTES = "bytes"  # one entry per byte


@dataclass(frozen=True)
class Element:
    """A hex value plus its declared serialization.

    ``bit_width`` defaults to the nominal width of the hex string. When
    ``words`` is omitted the value is split into words of the configured
    packing size; when given, each word carries ``ceil(bit_width / words)``
    bits.
    """

    value: str
    encoding: Encoding = Encoding.FIELD
    bit_width: Optional[int] = None
    words: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.encoding, str):
            try:
                object.__setattr__(self, "encoding", Encoding(self.encoding))
            except ValueError:
                allowed = [e.value for e in Encoding]
                raise ValidationError(
                    f"Element encoding must be one of {allowed}",
                    field="encoding",
                    value=self.encoding,
                    expected=allowed,
                )
        object.__setattr__(self, "value", "0x" + validate_hex(self.value, "element"))
        if self.bit_width is not None and self.bit_width <= 0:
            raise ValidationError("bit_width must be positive", field="bit_width", value=self.bit_width)
        if self.words is not None and self.words <= 0:
            raise ValidationError("words must be positive", field="words", value=self.words)

    @property
    def nominal_width(self) -> int:
        return (len(self.value) - 2) * 4

    @property
    def declared_width(self) -> int:
        return self.bit_width if self.bit_width is not None else self.nominal_width

    def as_int(self) -> int:
        return int(self.value, 16)


class FieldPacker:
    """Packs elements into the numeric vector the prover consumes."""

    def __init__(self, packing_size: int = PACKING_SIZE):
        if packing_size <= 0 or packing_size >= FIELD_MODULUS.bit_length():
            raise ValueError("packing_size must be positive and fit inside the field")
        self.packing_size = packing_size

    @classmethod
    def from_config(cls, config: ShieldConfig) -> "FieldPacker":
        return cls(packing_size=config.packing_size)

    def layout(self, element: Element) -> Tuple[int, int, int]:
        """Return ``(bit_width, words, word_bits)`` for a field element."""
        bit_width = element.declared_width
        if element.words is not None:
            words = element.words
            word_bits = math.ceil(bit_width / words)
        else:
            word_bits = self.packing_size
            words = math.ceil(bit_width / word_bits)
        return bit_width, words, word_bits

    def _check_width(self, element: Element, bit_width: int) -> int:
        value = element.as_int()
        if value.bit_length() > bit_width:
            raise WidthExceededError(
                f"Value {element.value} needs {value.bit_length()} bits, declared width is {bit_width}",
                field="element",
                value=element.value,
                expected=bit_width,
                bit_length=value.bit_length(),
            )
        return value

    def pack(self, element: Element) -> List[int]:
        """
        Split a value into big-endian words.

        Args:
            element: The element to pack

        Returns:
            ``words`` integers, most significant first, zero-padded

        Raises:
            WidthExceededError: if the value is wider than its declared width
            ValidationError: if a word could reach the field modulus
        """
        bit_width, words, word_bits = self.layout(element)
        if word_bits >= FIELD_MODULUS.bit_length():
            raise ValidationError(
                f"Words of {word_bits} bits overflow the field modulus",
                field="word_bits",
                value=word_bits,
                expected=f"< {FIELD_MODULUS.bit_length()}",
            )
        value = self._check_width(element, bit_width)
        mask = (1 << word_bits) - 1
        return [(value >> (word_bits * (words - 1 - i))) & mask for i in range(words)]

    def unpack(self, words: Iterable[int], word_bits: int, bit_width: int) -> str:
        """Rebuild the hex value that ``pack`` split into ``words``."""
        value = 0
        for word in words:
            word = int(word)
            if word < 0 or word.bit_length() > word_bits:
                raise WidthExceededError(
                    f"Word {word} does not fit in {word_bits} bits",
                    field="word",
                    value=word,
                    expected=word_bits,
                )
            value = (value << word_bits) | word
        if value.bit_length() > bit_width:
            raise WidthExceededError(
                f"Unpacked value needs {value.bit_length()} bits, declared width is {bit_width}",
                field="element",
                value=hex(value),
                expected=bit_width,
                bit_length=value.bit_length(),
            )
        return "0x" + format(value, f"0{math.ceil(bit_width / 4)}x")

    def to_vector(self, element: Element) -> List[str]:
        """Serialize one element according to its encoding."""
        if element.encoding is Encoding.FIELD:
            return [str(word) for word in self.pack(element)]

        bit_width = element.declared_width
        value = self._check_width(element, bit_width)
        if element.encoding is Encoding.BITS:
            return list(format(value, f"0{bit_width}b"))
        size = math.ceil(bit_width / 8)
        return [str(byte) for byte in value.to_bytes(size, byteorder="big")]

    def compute_vectors(self, elements: Iterable[Element]) -> List[str]:
        """Concatenate the serialized form of each element, in order."""
        vector: List[str] = []
        for element in elements:
            vector.extend(self.to_vector(element))
        return vector
