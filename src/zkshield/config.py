"""
Configuration for zkshield.

Protocol constants shared by every component, plus the deploy-time
``ShieldConfig`` that tells the engine where its circuits, prover and
verification-key registry live.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict

logger = logging.getLogger(__name__)

# BN254 scalar field modulus used by the external prover
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

INPUTS_HASHLENGTH = 32  # bytes fed to and returned from sha256
MERKLE_HASHLENGTH = 27  # bytes of a node that fit in one field element
FIELD_BITS = MERKLE_HASHLENGTH * 8
VALUE_BITS = 128
PACKING_SIZE = 128
MERKLE_DEPTH = 32
POSITIONS_BITS = 128
ADDRESS_BITS = 160  # ledger account addresses

# The circuit adder only handles sums that fit in 32 bits.
ADDER_CAP = 0xFFFFFFFF

MINT_CIRCUIT = "MintCoin"
TRANSFER_CIRCUIT = "TransferCoin"
BURN_CIRCUIT = "BurnCoin"


@dataclass
class ShieldConfig:
    """Runtime configuration for the shielded-operation engine."""

    # Field packing
    packing_size: int = PACKING_SIZE
    inputs_hash_length: int = INPUTS_HASHLENGTH
    merkle_hash_length: int = MERKLE_HASHLENGTH
    merkle_depth: int = MERKLE_DEPTH
    value_bits: int = VALUE_BITS
    adder_cap: int = ADDER_CAP

    # Verification keys and circuits
    vk_ids_path: str = "vkIds.json"
    mint_dir: str = "circuits/ft-mint"
    transfer_dir: str = "circuits/ft-transfer"
    burn_dir: str = "circuits/ft-burn"

    # External prover
    prover_binary: str = "zokrates"

    # Ledger transactions
    gas: int = 4000000
    gas_price: int = 20000000000

    environment_overrides: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Apply environment variable overrides."""
        self._apply_environment_overrides()

    def _apply_environment_overrides(self):
        env_mappings = {
            "ZKSHIELD_PACKING_SIZE": ("packing_size", int),
            "ZKSHIELD_MERKLE_DEPTH": ("merkle_depth", int),
            "ZKSHIELD_VK_IDS": ("vk_ids_path", str),
            "ZKSHIELD_MINT_DIR": ("mint_dir", str),
            "ZKSHIELD_TRANSFER_DIR": ("transfer_dir", str),
            "ZKSHIELD_BURN_DIR": ("burn_dir", str),
            "ZKSHIELD_PROVER_BINARY": ("prover_binary", str),
            "ZKSHIELD_GAS": ("gas", int),
            "ZKSHIELD_GAS_PRICE": ("gas_price", int),
        }

        for env_var, (attr_name, attr_type) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    value = attr_type(env_value)
                    setattr(self, attr_name, value)
                    self.environment_overrides[env_var] = value
                except (ValueError, TypeError) as e:
                    logger.warning(
                        f"Ignoring invalid environment variable {env_var}={env_value}: {e}"
                    )

    @property
    def field_bits(self) -> int:
        """Bits of a hash that survive normalization."""
        return self.merkle_hash_length * 8

    def circuit_dir(self, circuit_name: str) -> str:
        """Directory holding the compiled circuit for an operation."""
        dirs = {
            MINT_CIRCUIT: self.mint_dir,
            TRANSFER_CIRCUIT: self.transfer_dir,
            BURN_CIRCUIT: self.burn_dir,
        }
        if circuit_name not in dirs:
            raise ValueError(f"Unknown circuit: {circuit_name}")
        return dirs[circuit_name]

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.packing_size <= 0:
            raise ValueError("packing_size must be positive")
        if self.packing_size >= FIELD_MODULUS.bit_length():
            raise ValueError("packing_size must fit inside the field modulus")
        if self.merkle_hash_length <= 0 or self.merkle_hash_length > self.inputs_hash_length:
            raise ValueError("merkle_hash_length must be between 1 and inputs_hash_length")
        if self.field_bits >= FIELD_MODULUS.bit_length():
            raise ValueError("merkle_hash_length overflows the field modulus")
        if self.merkle_depth <= 0 or self.merkle_depth > POSITIONS_BITS:
            raise ValueError(f"merkle_depth must be between 1 and {POSITIONS_BITS}")
        if self.value_bits <= 0:
            raise ValueError("value_bits must be positive")
        if self.adder_cap <= 0:
            raise ValueError("adder_cap must be positive")
        if self.gas <= 0:
            raise ValueError("gas must be positive")
