"""
Ethereum contract adapters for the ledger interfaces.

Thin wrappers over web3 contract objects: each method is one contract call
or one transaction. Transport, signing and key management stay with the
``AsyncWeb3`` instance the caller supplies.
"""

import logging

logger = logging.getLogger(__name__)
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from web3 import AsyncWeb3, Web3

from ..config import ShieldConfig
from ..crypto.hashing import ShieldHasher, hex_to_bytes, hex_to_int, left_pad_hex
from ..crypto.merkle import MerklePath
from ..crypto.zkp.proof import FlatProof
from ..errors import LedgerError
from .interfaces import LedgerBinding, PlainAssetLedger, ShieldedLedger, TokenInfo


@dataclass
class ContractInfo:
    """Smart contract information."""

    address: str
    abi: List[Dict[str, Any]]
    name: Optional[str] = None


def _bytes32(value: str) -> bytes:
    return hex_to_bytes(left_pad_hex(value, 64))


def _hex(value: Any) -> str:
    return "0x" + bytes(value).hex()


class ContractAdapter:
    """Shared plumbing for contract-backed ledgers."""

    def __init__(self, web3: AsyncWeb3, contract_info: ContractInfo, config: ShieldConfig):
        self.web3 = web3
        self.contract_info = contract_info
        self.config = config
        self.contract = web3.eth.contract(
            address=Web3.to_checksum_address(contract_info.address),
            abi=contract_info.abi,
        )

    @property
    def address(self) -> str:
        return self.contract_info.address

    async def _transact(self, function: Any, account: str) -> Any:
        """Send a transaction and wait for its receipt; reverts raise ``LedgerError``."""
        tx_hash = await function.transact(
            {
                "from": Web3.to_checksum_address(account),
                "gas": self.config.gas,
                "gasPrice": self.config.gas_price,
            }
        )
        receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            raise LedgerError(
                f"Transaction {_hex(tx_hash)} to {self.address} reverted",
                transaction_hash=_hex(tx_hash),
            )
        return receipt


class TokenContract(ContractAdapter, PlainAssetLedger):
    """ERC-20 token used as the plain asset."""

    async def balance_of(self, account: str) -> int:
        return await self.contract.functions.balanceOf(Web3.to_checksum_address(account)).call()

    async def approve(self, owner: str, spender: str, amount: int) -> Any:
        logger.info(f"Approving {amount} from {owner} to {spender}")
        return await self._transact(
            self.contract.functions.approve(Web3.to_checksum_address(spender), amount), owner
        )

    async def mint(self, account: str, amount: int) -> Any:
        logger.info(f"Minting {amount} plain units to {account}")
        return await self._transact(
            self.contract.functions.mint(Web3.to_checksum_address(account), amount), account
        )

    async def transfer(self, from_account: str, to_account: str, amount: int) -> Any:
        logger.info(f"Transferring {amount} plain units from {from_account} to {to_account}")
        return await self._transact(
            self.contract.functions.transfer(Web3.to_checksum_address(to_account), amount),
            from_account,
        )

    async def burn(self, account: str, amount: int) -> Any:
        logger.info(f"Burning {amount} plain units from {account}")
        return await self._transact(
            self.contract.functions.burn(Web3.to_checksum_address(account), amount), account
        )

    async def token_info(self) -> TokenInfo:
        symbol, name = await asyncio.gather(
            self.contract.functions.symbol().call(),
            self.contract.functions.name().call(),
        )
        return TokenInfo(symbol=symbol, name=name)


class ShieldContract(ContractAdapter, ShieldedLedger):
    """Shield contract holding the commitment tree as a flat node array.

    Node 0 is the root and the children of node ``n`` are ``2n + 1`` and
    ``2n + 2``, so leaf ``i`` lives at ``2**depth - 1 + i``.
    """

    def __init__(self, web3: AsyncWeb3, contract_info: ContractInfo, config: ShieldConfig):
        super().__init__(web3, contract_info, config)
        self.hasher = ShieldHasher.from_config(config)
        self.depth = config.merkle_depth

    async def _node(self, node_index: int) -> str:
        value = await self.contract.functions.M(node_index).call()
        return self.hasher.normalize(_hex(value))

    async def token_address(self) -> str:
        return await self.contract.functions.getFToken().call()

    async def latest_root(self) -> str:
        root = await self.contract.functions.latestRoot().call()
        return self.hasher.normalize(_hex(root))

    async def commitment_at(self, leaf_index: int) -> Optional[str]:
        node = await self._node((1 << self.depth) - 1 + leaf_index)
        if hex_to_int(node) == 0:
            return None
        return node

    async def get_path(self, leaf: str, leaf_index: int) -> MerklePath:
        node = (1 << self.depth) - 1 + leaf_index
        sibling_nodes = []
        while node > 0:
            sibling_nodes.append(node - 1 if node % 2 == 0 else node + 1)
            node = (node - 1) // 2

        siblings = await asyncio.gather(*(self._node(index) for index in sibling_nodes))
        logger.debug(f"Fetched {len(siblings)} siblings for leaf {leaf} at index {leaf_index}")
        return MerklePath(siblings=tuple(siblings), positions=leaf_index)

    def _event_args(self, event_name: str, receipt: Any) -> Dict[str, Any]:
        events = getattr(self.contract.events, event_name)().process_receipt(receipt)
        if not events:
            raise LedgerError(f"Receipt has no {event_name} event")
        return events[0]["args"]

    async def submit_mint(
        self,
        proof: FlatProof,
        public_inputs: List[str],
        vk_id: str,
        value: str,
        commitment: str,
        account: str,
    ) -> int:
        function = self.contract.functions.mint(
            list(proof.words),
            [int(word) for word in public_inputs],
            _bytes32(vk_id),
            hex_to_int(value),
            _bytes32(commitment),
        )
        receipt = await self._transact(function, account)
        return int(self._event_args("Mint", receipt)["token_index"])

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
        function = self.contract.functions.transfer(
            list(proof.words),
            [int(word) for word in public_inputs],
            _bytes32(vk_id),
            _bytes32(root),
            _bytes32(nullifiers[0]),
            _bytes32(nullifiers[1]),
            _bytes32(commitments[0]),
            _bytes32(commitments[1]),
        )
        receipt = await self._transact(function, account)
        args = self._event_args("Transfer", receipt)
        return int(args["token1_index"]), int(args["token2_index"])

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
        function = self.contract.functions.burn(
            list(proof.words),
            [int(word) for word in public_inputs],
            _bytes32(vk_id),
            _bytes32(root),
            _bytes32(nullifier),
            hex_to_int(value),
            Web3.to_checksum_address(pay_to),
        )
        return await self._transact(function, account)


async def connect_ledgers(
    web3: AsyncWeb3,
    shield_info: ContractInfo,
    token_abi: List[Dict[str, Any]],
    config: ShieldConfig,
) -> LedgerBinding:
    """Bind a shield contract and the token it escrows."""
    shield = ShieldContract(web3, shield_info, config)
    token_address = await shield.token_address()
    token = TokenContract(web3, ContractInfo(address=token_address, abi=token_abi), config)
    logger.info(f"Shield {shield.address} escrows token {token_address}")
    return LedgerBinding(shield=shield, token=token)
