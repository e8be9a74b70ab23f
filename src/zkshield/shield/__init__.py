"""
Shielded operations for zkshield.

- ``ShieldEngine``: Mint, Transfer and Burn pipelines plus plain-asset passthroughs
- Receipts returned by each operation
"""

from .engine import ShieldEngine
from .operations import BurnReceipt, CorrectnessReport, MintReceipt, TransferReceipt

__all__ = [
    "ShieldEngine",
    "MintReceipt",
    "TransferReceipt",
    "BurnReceipt",
    "CorrectnessReport",
]
