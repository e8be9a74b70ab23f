"""
Shared fixtures for zkshield tests.

In-memory ledgers stand in for the shield and token contracts: the shield
keeps a real ``MerkleTree`` and nullifier set, and the token escrows plain
units the way the contract pair does.
"""

from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from zkshield.config import BURN_CIRCUIT, MINT_CIRCUIT, TRANSFER_CIRCUIT, ShieldConfig
from zkshield.crypto.hashing import ShieldHasher
from zkshield.crypto.merkle import MerklePath, MerkleTree
from zkshield.crypto.zkp.backends import MockProverBackend
from zkshield.crypto.zkp.proof import FlatProof
from zkshield.crypto.zkp.registry import VerificationKeyRegistry
from zkshield.errors import LedgerError
from zkshield.ledger.interfaces import (
    LedgerBinding,
    LedgerDirectory,
    PlainAssetLedger,
    ShieldedLedger,
    TokenInfo,
)
from zkshield.shield.engine import ShieldEngine

ACCOUNT_A = "0x" + "a1" * 20
ACCOUNT_B = "0x" + "b2" * 20
ACCOUNT_EVE = "0x" + "e3" * 20
ACCOUNT_RECIPIENT = "0x" + "c4" * 20

SHIELD_ADDRESS = "0x" + "5e" * 20
TOKEN_ADDRESS = "0x" + "70" * 20

VK_IDS = {
    MINT_CIRCUIT: "0x" + "01" * 32,
    TRANSFER_CIRCUIT: "0x" + "02" * 32,
    BURN_CIRCUIT: "0x" + "03" * 32,
}


class InMemoryToken(PlainAssetLedger):
    """Fungible token with balances and allowances."""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self.balances: Dict[str, int] = {
            account.lower(): amount for account, amount in (balances or {}).items()
        }
        self.allowances: Dict[Tuple[str, str], int] = {}

    @property
    def address(self) -> str:
        return TOKEN_ADDRESS

    async def balance_of(self, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    async def approve(self, owner: str, spender: str, amount: int) -> Any:
        self.allowances[(owner.lower(), spender.lower())] = amount
        return True

    async def mint(self, account: str, amount: int) -> Any:
        self.balances[account.lower()] = self.balances.get(account.lower(), 0) + amount
        return True

    def _move(self, from_account: str, to_account: str, amount: int) -> None:
        if self.balances.get(from_account.lower(), 0) < amount:
            raise LedgerError(f"Insufficient balance in {from_account}")
        self.balances[from_account.lower()] -= amount
        self.balances[to_account.lower()] = self.balances.get(to_account.lower(), 0) + amount

    async def transfer(self, from_account: str, to_account: str, amount: int) -> Any:
        self._move(from_account, to_account, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to_account: str, amount: int) -> None:
        key = (owner.lower(), spender.lower())
        if self.allowances.get(key, 0) < amount:
            raise LedgerError(f"{spender} is not approved to move {amount} from {owner}")
        self.allowances[key] -= amount
        self._move(owner, to_account, amount)

    async def burn(self, account: str, amount: int) -> Any:
        if self.balances.get(account.lower(), 0) < amount:
            raise LedgerError(f"Insufficient balance in {account}")
        self.balances[account.lower()] -= amount
        return True

    async def token_info(self) -> TokenInfo:
        return TokenInfo(symbol="OPS", name="Test Fungible Token")


class InMemoryShield(ShieldedLedger):
    """Shield contract double: commitment tree, nullifier set and escrow."""

    def __init__(self, token: InMemoryToken, hasher: ShieldHasher, depth: int):
        self.token = token
        self.tree = MerkleTree(hasher, depth)
        self.nullifiers: Set[str] = set()
        self.submissions: List[Tuple[str, FlatProof, List[str], str]] = []
        self.root_override: Optional[str] = None

    @property
    def address(self) -> str:
        return SHIELD_ADDRESS

    async def latest_root(self) -> str:
        if self.root_override is not None:
            return self.root_override
        return self.tree.root()

    async def get_path(self, leaf: str, leaf_index: int) -> MerklePath:
        return self.tree.path(leaf_index)

    async def commitment_at(self, leaf_index: int) -> Optional[str]:
        return self.tree.leaf(leaf_index)

    def _spend(self, nullifier: str) -> None:
        if nullifier in self.nullifiers:
            raise LedgerError(f"Nullifier {nullifier} has already been spent")
        self.nullifiers.add(nullifier)

    def _check_root(self, root: str) -> None:
        if root != self.tree.root():
            raise LedgerError(f"Root {root} is not the latest root")

    async def submit_mint(self, proof, public_inputs, vk_id, value, commitment, account) -> int:
        self.submissions.append((MINT_CIRCUIT, proof, public_inputs, vk_id))
        self.token.transfer_from(self.address, account, self.address, int(value, 16))
        return self.tree.append(commitment)

    async def submit_transfer(
        self, proof, public_inputs, vk_id, root, nullifiers, commitments, account
    ) -> Tuple[int, int]:
        self.submissions.append((TRANSFER_CIRCUIT, proof, public_inputs, vk_id))
        self._check_root(root)
        if nullifiers[0] == nullifiers[1]:
            raise LedgerError("Both inputs spend the same commitment")
        for nullifier in nullifiers:
            if nullifier in self.nullifiers:
                raise LedgerError(f"Nullifier {nullifier} has already been spent")
        for nullifier in nullifiers:
            self._spend(nullifier)
        return self.tree.append(commitments[0]), self.tree.append(commitments[1])

    async def submit_burn(
        self, proof, public_inputs, vk_id, root, nullifier, value, pay_to, account
    ) -> Any:
        self.submissions.append((BURN_CIRCUIT, proof, public_inputs, vk_id))
        self._check_root(root)
        self._spend(nullifier)
        self.token._move(self.address, pay_to, int(value, 16))
        return True


@pytest.fixture
def config():
    """Default configuration."""
    return ShieldConfig()


@pytest.fixture
def hasher(config):
    """Hasher matching the default configuration."""
    return ShieldHasher.from_config(config)


@pytest.fixture
def registry():
    """In-memory verification key registry."""
    return VerificationKeyRegistry(VK_IDS)


@pytest.fixture
def prover(config):
    """Deterministic mock prover."""
    return MockProverBackend(config)


@pytest.fixture
def token():
    """Token with plain units for the test accounts."""
    return InMemoryToken({ACCOUNT_A: 1000, ACCOUNT_B: 1000})


@pytest.fixture
def shield(token, hasher, config):
    """In-memory shield over ``token``."""
    return InMemoryShield(token, hasher, config.merkle_depth)


@pytest.fixture
def ledgers(shield, token):
    """Directory with the in-memory pair as the default binding."""
    return LedgerDirectory(default=LedgerBinding(shield=shield, token=token))


@pytest.fixture
def engine(config, prover, registry):
    """Engine wired to the mock prover."""
    return ShieldEngine(config, prover, registry)
