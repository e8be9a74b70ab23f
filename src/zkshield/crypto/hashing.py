"""
Hex codec and hash functions for zkshield.

Every value that crosses a component boundary is a ``0x``-prefixed hex string.
Values that feed a hash are normalized first: all bits above the field budget
are cleared so the local hash and the in-circuit hash see identical bytes.
"""

import logging

logger = logging.getLogger(__name__)
import re
import secrets
from typing import Union

from cryptography.hazmat.primitives import hashes

from ..config import FIELD_BITS, INPUTS_HASHLENGTH, VALUE_BITS, ShieldConfig
from ..errors import MalformedHexError, WidthExceededError

_HEX_DIGITS = re.compile(r"^[0-9a-fA-F]+$")


def strip_0x(value: str) -> str:
    """Remove a leading ``0x`` if present."""
    if value.startswith(("0x", "0X")):
        return value[2:]
    return value


def ensure_0x(value: str) -> str:
    """Add a leading ``0x`` if missing."""
    if value.startswith(("0x", "0X")):
        return "0x" + value[2:]
    return "0x" + value


def validate_hex(value: Union[str, int], field: str = "value") -> str:
    """
    Check that ``value`` is a hex string and return its bare digits.

    Args:
        value: Candidate hex string, with or without ``0x``
        field: Name used in the error message

    Returns:
        Lower-case hex digits without prefix

    Raises:
        MalformedHexError: if the value is not a non-empty hex string
    """
    if not isinstance(value, str):
        raise MalformedHexError(
            f"{field} must be a hex string, got {type(value).__name__}",
            field=field,
            value=value,
        )
    digits = strip_0x(value.strip())
    if not digits or not _HEX_DIGITS.match(digits):
        raise MalformedHexError(f"{field} is not valid hex: {value!r}", field=field, value=value)
    return digits.lower()


def hex_to_int(value: str, field: str = "value") -> int:
    """Parse a hex string into an integer."""
    return int(validate_hex(value, field), 16)


def hex_to_bytes(value: str, field: str = "value") -> bytes:
    """Raw bytes of a hex string, left-padding odd-length input with a zero nibble."""
    digits = validate_hex(value, field)
    if len(digits) % 2:
        digits = "0" + digits
    return bytes.fromhex(digits)


def hex_to_dec(value: str) -> str:
    """Decimal string of a hex value, as ledger contracts expect uints."""
    return str(hex_to_int(value))


def left_pad_hex(value: str, length: int, field: str = "value") -> str:
    """Left-pad ``value`` with zeros to ``length`` hex digits."""
    digits = validate_hex(value, field)
    if len(digits) > length:
        raise WidthExceededError(
            f"{field} has {len(digits)} hex digits, more than {length}",
            field=field,
            value=value,
            expected=length,
        )
    return "0x" + digits.rjust(length, "0")


def sha256(data: bytes) -> bytes:
    """SHA-256 digest of raw bytes."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


class ShieldHasher:
    """Normalization and hash derivations for commitments, nullifiers and keys."""

    def __init__(
        self,
        field_bits: int = FIELD_BITS,
        value_bits: int = VALUE_BITS,
        inputs_hash_length: int = INPUTS_HASHLENGTH,
    ):
        if field_bits > inputs_hash_length * 8:
            raise ValueError("field_bits cannot exceed the hash output width")
        self.field_bits = field_bits
        self.value_bits = value_bits
        self.inputs_hash_length = inputs_hash_length
        self._mask = (1 << field_bits) - 1

    @classmethod
    def from_config(cls, config: ShieldConfig) -> "ShieldHasher":
        return cls(
            field_bits=config.field_bits,
            value_bits=config.value_bits,
            inputs_hash_length=config.inputs_hash_length,
        )

    @property
    def hex_length(self) -> int:
        """Hex digits in a normalized value."""
        return self.inputs_hash_length * 2

    def normalize(self, value: str, field: str = "value") -> str:
        """
        Clear every bit above the field budget.

        Args:
            value: Hex string with any amount of leading-zero padding
            field: Name used in error messages

        Returns:
            ``0x`` followed by exactly ``hex_length`` digits
        """
        as_int = hex_to_int(value, field) & self._mask
        return "0x" + format(as_int, f"0{self.hex_length}x")

    def pad_value(self, value: str, field: str = "value") -> str:
        """Render a value at its full width, rejecting anything wider."""
        as_int = hex_to_int(value, field)
        if as_int.bit_length() > self.value_bits:
            raise WidthExceededError(
                f"{field} uses {as_int.bit_length()} bits, limit is {self.value_bits}",
                field=field,
                value=value,
                expected=self.value_bits,
                bit_length=as_int.bit_length(),
            )
        return "0x" + format(as_int, f"0{self.value_bits // 4}x")

    def hash(self, value: str) -> str:
        """SHA-256 of the bytes of a single hex value."""
        return self.concatenate_then_hash(value)

    def concatenate_then_hash(self, *values: str) -> str:
        """SHA-256 over the concatenated bytes of each hex operand, in order."""
        data = b"".join(hex_to_bytes(value) for value in values)
        digest = sha256(data).hex()
        return "0x" + digest[-self.hex_length:]

    def derive_public_key(self, secret_key: str) -> str:
        """Public key of a secret key: the normalized hash of the normalized key."""
        return self.normalize(self.hash(self.normalize(secret_key, "secret_key")))

    def commitment(self, value: str, public_key: str, serial: str) -> str:
        """Commitment to ``value`` owned by ``public_key`` under nonce ``serial``."""
        return self.normalize(
            self.concatenate_then_hash(
                self.pad_value(value),
                self.normalize(public_key, "public_key"),
                self.normalize(serial, "serial"),
            )
        )

    def nullifier(self, serial: str, secret_key: str) -> str:
        """Nullifier that is published when the commitment under ``serial`` is spent."""
        return self.normalize(
            self.concatenate_then_hash(
                self.normalize(serial, "serial"),
                self.normalize(secret_key, "secret_key"),
            )
        )

    def random_serial(self) -> str:
        """Fresh normalized serial."""
        return self.normalize(secrets.token_hex(self.inputs_hash_length))
