"""Results returned by shielded operations."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class MintReceipt:
    """A freshly minted commitment and where the ledger put it."""

    commitment: str
    leaf_index: int


@dataclass(frozen=True)
class TransferReceipt:
    """Two new commitments: ``z_e`` for the recipient, ``z_f`` as change."""

    z_e: str
    z_e_index: int
    z_f: str
    z_f_index: int
    nullifiers: Tuple[str, str]
    root: str


@dataclass(frozen=True)
class BurnReceipt:
    """What a burn consumed and who was paid."""

    z_c: str
    z_c_index: int
    nullifier: str
    pay_to: str
    root: str


@dataclass(frozen=True)
class CorrectnessReport:
    """Whether a commitment opens correctly and sits at the claimed leaf."""

    commitment_matches: bool
    onchain_matches: bool
    onchain_commitment: Optional[str] = None

    @property
    def is_correct(self) -> bool:
        return self.commitment_matches and self.onchain_matches
