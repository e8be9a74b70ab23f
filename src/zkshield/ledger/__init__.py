"""
Ledger collaborators for zkshield.

Abstract interfaces for the shielded and plain-asset ledgers, the
caller-owned account directory, and web3 contract adapters.
"""

from .ethereum import ContractInfo, ShieldContract, TokenContract, connect_ledgers
from .interfaces import (
    LedgerBinding,
    LedgerDirectory,
    PlainAssetLedger,
    ShieldedLedger,
    TokenInfo,
)

__all__ = [
    "PlainAssetLedger",
    "ShieldedLedger",
    "LedgerBinding",
    "LedgerDirectory",
    "TokenInfo",
    "ContractInfo",
    "ShieldContract",
    "TokenContract",
    "connect_ledgers",
]
