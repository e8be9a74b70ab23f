"""
Ledger collaborator interfaces.

The shielded ledger holds the commitment tree, the nullifier set and the
escrowed plain asset; the plain-asset ledger is an ordinary fungible token.
Both are black boxes here. Which ledger an account talks to is decided by a
``LedgerDirectory`` the caller builds and passes into every operation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from ..crypto.merkle import MerklePath
from ..crypto.zkp.proof import FlatProof
from ..errors import ConfigurationError


@dataclass(frozen=True)
class TokenInfo:
    """Plain-asset metadata."""

    symbol: str
    name: str


class PlainAssetLedger(ABC):
    """Unshielded fungible token backing the shielded commitments."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def balance_of(self, account: str) -> int:
        pass

    @abstractmethod
    async def approve(self, owner: str, spender: str, amount: int) -> Any:
        """Allow ``spender`` to draw ``amount`` from ``owner``."""
        pass

    @abstractmethod
    async def mint(self, account: str, amount: int) -> Any:
        pass

    @abstractmethod
    async def transfer(self, from_account: str, to_account: str, amount: int) -> Any:
        pass

    @abstractmethod
    async def burn(self, account: str, amount: int) -> Any:
        pass

    @abstractmethod
    async def token_info(self) -> TokenInfo:
        pass


class ShieldedLedger(ABC):
    """Ledger contract that verifies proofs and keeps the commitment tree."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def latest_root(self) -> str:
        pass

    @abstractmethod
    async def get_path(self, leaf: str, leaf_index: int) -> MerklePath:
        """Authentication path for the commitment at ``leaf_index``."""
        pass

    @abstractmethod
    async def commitment_at(self, leaf_index: int) -> Optional[str]:
        pass

    @abstractmethod
    async def submit_mint(
        self,
        proof: FlatProof,
        public_inputs: List[str],
        vk_id: str,
        value: str,
        commitment: str,
        account: str,
    ) -> int:
        """Returns the leaf index of the new commitment."""
        pass

    @abstractmethod
    async def submit_transfer(
        self,
        proof: FlatProof,
        public_inputs: List[str],
        vk_id: str,
        root: str,
        nullifiers: Tuple[str, str],
        commitments: Tuple[str, str],
        account: str,
    ) -> Tuple[int, int]:
        """Returns the leaf indices of the two new commitments."""
        pass

    @abstractmethod
    async def submit_burn(
        self,
        proof: FlatProof,
        public_inputs: List[str],
        vk_id: str,
        root: str,
        nullifier: str,
        value: str,
        pay_to: str,
        account: str,
    ) -> Any:
        pass


@dataclass(frozen=True)
class LedgerBinding:
    """The pair of ledgers one account operates against."""

    shield: ShieldedLedger
    token: PlainAssetLedger


@dataclass(frozen=True)
class LedgerDirectory:
    """Immutable account -> ``LedgerBinding`` mapping with an optional default.

    Accounts are matched case-insensitively.
    """

    default: Optional[LedgerBinding] = None
    accounts: Mapping[str, LedgerBinding] = field(default_factory=dict)

    def __post_init__(self):
        normalized = {account.lower(): binding for account, binding in self.accounts.items()}
        object.__setattr__(self, "accounts", MappingProxyType(normalized))

    def for_account(self, account: str) -> LedgerBinding:
        binding = self.accounts.get(account.lower(), self.default)
        if binding is None:
            raise ConfigurationError(
                f"No ledger configured for account {account}",
                config_key="ledgers",
                config_value=account,
            )
        return binding

    def with_account(self, account: str, binding: LedgerBinding) -> "LedgerDirectory":
        accounts = dict(self.accounts)
        accounts[account.lower()] = binding
        return LedgerDirectory(default=self.default, accounts=accounts)

    def without_account(self, account: str) -> "LedgerDirectory":
        accounts = dict(self.accounts)
        accounts.pop(account.lower(), None)
        return LedgerDirectory(default=self.default, accounts=accounts)
