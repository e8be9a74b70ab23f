"""
Unit tests for witness assembly.
"""

import pytest

from zkshield.crypto.merkle import MerklePath
from zkshield.crypto.zkp.elements import Element, Encoding, FieldPacker
from zkshield.crypto.zkp.witness import Witness


@pytest.fixture
def witness():
    return Witness(FieldPacker())


class TestWitness:
    """Test the ordered witness."""

    def test_empty(self, witness):
        assert len(witness) == 0
        assert witness.to_vector() == []

    def test_add_is_chainable(self, witness):
        witness.add("a", Element("0x01", bit_width=8, words=1)).add_field("b", "0x02", 8, 1)
        assert witness.labels == ["a", "b"]
        assert witness.to_vector() == ["1", "2"]

    def test_add_field_default_layout(self, witness):
        witness.add_field("pk", "0x" + "0" * 62 + "07")
        assert witness.to_vector() == ["0", "7"]

    def test_add_path(self, witness):
        siblings = ("0x" + "0" * 63 + "a", "0x" + "0" * 63 + "b")
        witness.add_path("path", MerklePath(siblings=siblings, positions=2), 216, 128)

        assert witness.labels == ["path[0]", "path[1]", "path.positions"]
        assert witness.to_vector() == ["10", "11", "2"]
        assert all(e.encoding is Encoding.FIELD for e in witness.elements)

    def test_describe_masks_secrets(self, witness):
        witness.add_field("public", "0x05", 8, 1)
        witness.add_field("secret", "0x" + "9" * 64, secret=True)

        described = dict(witness.describe())
        assert described["public"] == ["5"]
        assert described["secret"] == ["<redacted>", "<redacted>"]

    def test_to_vector_keeps_secret_values(self, witness):
        witness.add_field("secret", "0x09", 8, 1, secret=True)
        assert witness.to_vector() == ["9"]
