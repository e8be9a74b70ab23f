"""
Shielded-operation engine.

Mint, Transfer and Burn are linear pipelines: derive commitments and
nullifiers, reconcile Merkle paths against the ledger root, assemble the
ordered witness, prove, then submit. Input errors are raised before any
external call. The only abort point after that is a stale root, which the
caller may retry after refreshing state. Prover and ledger exceptions are
not caught here.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

from ..config import (
    ADDRESS_BITS,
    BURN_CIRCUIT,
    MINT_CIRCUIT,
    POSITIONS_BITS,
    TRANSFER_CIRCUIT,
    ShieldConfig,
)
from ..crypto.hashing import ShieldHasher, left_pad_hex
from ..crypto.merkle import PathReconciler
from ..crypto.zkp.core import CircuitRef, ProverBackend
from ..crypto.zkp.elements import Element, Encoding, FieldPacker
from ..crypto.zkp.proof import FlatProof, flatten_proof
from ..crypto.zkp.registry import VerificationKeyRegistry
from ..crypto.zkp.witness import Witness
from ..errors import (
    ConservationError,
    ShieldError,
    ValidationError,
    create_validation_error,
)
from ..ledger.interfaces import LedgerDirectory, TokenInfo
from .operations import BurnReceipt, CorrectnessReport, MintReceipt, TransferReceipt

logger = logging.getLogger(__name__)


class ShieldEngine:
    """Client side of the shielded token protocol.

    The engine keeps no per-account state. Every operation takes the
    ``LedgerDirectory`` that says which ledgers the paying account uses.
    """

    def __init__(
        self,
        config: ShieldConfig,
        prover: ProverBackend,
        registry: VerificationKeyRegistry,
    ):
        config.validate()
        self.config = config
        self.prover = prover
        self.registry = registry
        self.hasher = ShieldHasher.from_config(config)
        self.packer = FieldPacker.from_config(config)
        self.reconciler = PathReconciler(self.hasher, config.merkle_depth)

    @classmethod
    def from_config(cls, config: ShieldConfig, prover: ProverBackend) -> "ShieldEngine":
        """Build an engine whose registry is read once from ``config.vk_ids_path``."""
        return cls(config, prover, VerificationKeyRegistry.from_file(config.vk_ids_path))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _value(self, value: str, field: str) -> str:
        return self.hasher.pad_value(value, field)

    def _normalized(self, value: str, field: str) -> str:
        return self.hasher.normalize(value, field)

    def _check_index(self, index: int, field: str) -> int:
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise create_validation_error(field, index, "a non-negative integer")
        return index

    def _check_opening(
        self, value: str, public_key: str, serial: str, commitment: str, field: str
    ) -> None:
        if self.hasher.commitment(value, public_key, serial) != commitment:
            raise ValidationError(
                f"{field} does not open to the given value, key and serial",
                field=field,
                value=commitment,
            )

    def _check_conservation(self, c: str, d: str, e: str, f: str) -> None:
        input_sum = int(c, 16) + int(d, 16)
        output_sum = int(e, 16) + int(f, 16)
        # the circuit adder is narrower than a single value
        if input_sum > self.config.adder_cap or output_sum > self.config.adder_cap:
            raise ConservationError(
                f"Coin values are too large: sums must not exceed {self.config.adder_cap:#x}",
                input_sum=input_sum,
                output_sum=output_sum,
            )
        if input_sum != output_sum:
            raise ConservationError(
                f"Inputs {input_sum:#x} and outputs {output_sum:#x} do not balance",
                input_sum=input_sum,
                output_sum=output_sum,
            )

    def _public_inputs(self, public_input_hash: str) -> List[str]:
        return self.packer.compute_vectors(
            [Element(public_input_hash, Encoding.FIELD, self.config.field_bits, 1)]
        )

    def _witness(self, public_input_hash: str) -> Witness:
        witness = Witness(self.packer)
        witness.add_field("publicInputHash", public_input_hash, self.config.field_bits, 1)
        return witness

    def _add_value(self, witness: Witness, label: str, value: str) -> None:
        witness.add_field(label, value, self.config.value_bits, 1)

    async def _prove(self, circuit_name: str, witness: Witness) -> FlatProof:
        circuit = CircuitRef.for_operation(self.config, circuit_name)
        for label, words in witness.describe():
            logger.debug(f"{circuit_name} witness {label}: {words}")
        vector = witness.to_vector()
        logger.info(f"Requesting {circuit_name} proof over {len(vector)} words")
        proof = await self.prover.compute(circuit, vector)
        return flatten_proof(proof)

    @contextmanager
    def _error_context(self, operation: str, account: str) -> Iterator[None]:
        """Tag zkshield errors raised inside an operation with where they came from."""
        try:
            yield
        except ShieldError as e:
            if e.context.operation is None:
                e.context.component = __name__
                e.context.operation = operation
                e.context.account = account
            raise

    # ------------------------------------------------------------------
    # Shielded operations
    # ------------------------------------------------------------------

    async def mint(
        self,
        value: str,
        public_key: str,
        serial: str,
        account: str,
        ledgers: LedgerDirectory,
    ) -> MintReceipt:
        """
        Convert ``value`` plain units from ``account`` into a commitment.

        Args:
            value: Amount, hex, at most ``value_bits`` wide
            public_key: Owner of the new commitment
            serial: Fresh serial for the commitment
            account: Account paying the plain asset
            ledgers: Ledger handles per account

        Returns:
            The commitment and its leaf index
        """
        with self._error_context("mint", account):
            value = self._value(value, "value")
            public_key = self._normalized(public_key, "public_key")
            serial = self._normalized(serial, "serial")
            binding = ledgers.for_account(account)
            vk_id = self.registry.lookup(MINT_CIRCUIT)

            logger.info(f"Minting a commitment of {value} for {account}")

            commitment = self.hasher.commitment(value, public_key, serial)
            public_input_hash = self._normalized(
                self.hasher.concatenate_then_hash(value, commitment), "public_input_hash"
            )
            logger.debug(f"zA: {commitment}, publicInputHash: {public_input_hash}")

            witness = self._witness(public_input_hash)
            self._add_value(witness, "A", value)
            witness.add_field("pkA", public_key)
            witness.add_field("S_A", serial, secret=True)
            witness.add_field("zA", commitment)
            public_inputs = self._public_inputs(public_input_hash)

            await binding.token.approve(account, binding.shield.address, int(value, 16))
            logger.info(f"Approved {int(value, 16)} plain units for {binding.shield.address}")

            proof = await self._prove(MINT_CIRCUIT, witness)
            leaf_index = await binding.shield.submit_mint(
                proof, public_inputs, vk_id, value, commitment, account
            )

            logger.info(f"Mint complete: {commitment} at index {leaf_index}")
            return MintReceipt(commitment=commitment, leaf_index=int(leaf_index))

    async def transfer(
        self,
        c: str,
        d: str,
        e: str,
        f: str,
        pk_recipient: str,
        serial_c: str,
        serial_d: str,
        serial_e: str,
        serial_f: str,
        secret_key: str,
        z_c: str,
        z_c_index: int,
        z_d: str,
        z_d_index: int,
        account: str,
        ledgers: LedgerDirectory,
    ) -> TransferReceipt:
        """Spend commitments ``z_c`` and ``z_d``; send ``e`` to the recipient and ``f`` back as change.

        Requires ``c + d == e + f`` with both sums within the adder cap.
        """
        with self._error_context("transfer", account):
            c, d = self._value(c, "c"), self._value(d, "d")
            e, f = self._value(e, "e"), self._value(f, "f")
            self._check_conservation(c, d, e, f)

            pk_recipient = self._normalized(pk_recipient, "pk_recipient")
            serial_c = self._normalized(serial_c, "serial_c")
            serial_d = self._normalized(serial_d, "serial_d")
            serial_e = self._normalized(serial_e, "serial_e")
            serial_f = self._normalized(serial_f, "serial_f")
            secret_key = self._normalized(secret_key, "secret_key")
            z_c = self._normalized(z_c, "z_c")
            z_d = self._normalized(z_d, "z_d")
            self._check_index(z_c_index, "z_c_index")
            self._check_index(z_d_index, "z_d_index")

            public_key = self.hasher.derive_public_key(secret_key)
            self._check_opening(c, public_key, serial_c, z_c, "z_c")
            self._check_opening(d, public_key, serial_d, z_d, "z_d")

            binding = ledgers.for_account(account)
            vk_id = self.registry.lookup(TRANSFER_CIRCUIT)

            logger.info(f"Transferring {e} to a recipient with {f} change for {account}")

            n_c = self.hasher.nullifier(serial_c, secret_key)
            n_d = self.hasher.nullifier(serial_d, secret_key)
            z_e = self.hasher.commitment(e, pk_recipient, serial_e)
            z_f = self.hasher.commitment(f, public_key, serial_f)

            root = self._normalized(await binding.shield.latest_root(), "root")
            logger.info(f"Merkle root: {root}")
            path_c = await self.reconciler.reconcile(binding.shield, z_c, z_c_index, root)
            path_d = await self.reconciler.reconcile(binding.shield, z_d, z_d_index, root)

            public_input_hash = self._normalized(
                self.hasher.concatenate_then_hash(root, n_c, n_d, z_e, z_f), "public_input_hash"
            )
            logger.debug(
                f"nC: {n_c}, nD: {n_d}, zE: {z_e}, zF: {z_f}, publicInputHash: {public_input_hash}"
            )

            node_bits = self.config.field_bits
            witness = self._witness(public_input_hash)
            self._add_value(witness, "C", c)
            witness.add_field("skA", secret_key, secret=True)
            witness.add_field("S_C", serial_c, secret=True)
            witness.add_path("pathC", path_c, node_bits, POSITIONS_BITS)
            self._add_value(witness, "D", d)
            witness.add_field("S_D", serial_d, secret=True)
            witness.add_path("pathD", path_d, node_bits, POSITIONS_BITS)
            witness.add_field("nC", n_c)
            witness.add_field("nD", n_d)
            self._add_value(witness, "E", e)
            witness.add_field("pkB", pk_recipient)
            witness.add_field("S_E", serial_e, secret=True)
            witness.add_field("zE", z_e)
            self._add_value(witness, "F", f)
            witness.add_field("S_F", serial_f, secret=True)
            witness.add_field("zF", z_f)
            witness.add_field("root", root)
            public_inputs = self._public_inputs(public_input_hash)

            proof = await self._prove(TRANSFER_CIRCUIT, witness)
            z_e_index, z_f_index = await binding.shield.submit_transfer(
                proof, public_inputs, vk_id, root, (n_c, n_d), (z_e, z_f), account
            )

            logger.info(f"Transfer complete: zE at {z_e_index}, zF at {z_f_index}")
            return TransferReceipt(
                z_e=z_e,
                z_e_index=int(z_e_index),
                z_f=z_f,
                z_f_index=int(z_f_index),
                nullifiers=(n_c, n_d),
                root=root,
            )

    async def burn(
        self,
        c: str,
        secret_key: str,
        serial_c: str,
        z_c: str,
        z_c_index: int,
        account: str,
        ledgers: LedgerDirectory,
        pay_to: Optional[str] = None,
    ) -> BurnReceipt:
        """Spend ``z_c`` and release ``c`` plain units to ``pay_to`` (default ``account``)."""
        if pay_to is None:
            pay_to = account
        with self._error_context("burn", account):
            pay_to = left_pad_hex(pay_to, ADDRESS_BITS // 4, "pay_to")
            c = self._value(c, "c")
            secret_key = self._normalized(secret_key, "secret_key")
            serial_c = self._normalized(serial_c, "serial_c")
            z_c = self._normalized(z_c, "z_c")
            self._check_index(z_c_index, "z_c_index")
            self._check_opening(c, self.hasher.derive_public_key(secret_key), serial_c, z_c, "z_c")

            binding = ledgers.for_account(account)
            vk_id = self.registry.lookup(BURN_CIRCUIT)

            logger.info(f"Burning {c} from {account} to {pay_to}")

            n_c = self.hasher.nullifier(serial_c, secret_key)
            root = self._normalized(await binding.shield.latest_root(), "root")
            logger.info(f"Merkle root: {root}")
            path = await self.reconciler.reconcile(binding.shield, z_c, z_c_index, root)

            # the circuit hashes payTo as a full-width word
            pay_to_padded = left_pad_hex(pay_to, self.config.inputs_hash_length * 2, "pay_to")
            public_input_hash = self._normalized(
                self.hasher.concatenate_then_hash(root, n_c, c, pay_to_padded), "public_input_hash"
            )
            logger.debug(f"Nc: {n_c}, payTo: {pay_to_padded}, publicInputHash: {public_input_hash}")

            witness = self._witness(public_input_hash)
            witness.add_field("payTo", pay_to, ADDRESS_BITS)
            self._add_value(witness, "C", c)
            witness.add_field("skA", secret_key, secret=True)
            witness.add_field("S_C", serial_c, secret=True)
            witness.add_path("path", path, self.config.field_bits, POSITIONS_BITS)
            witness.add_field("Nc", n_c)
            witness.add_field("root", root)
            public_inputs = self._public_inputs(public_input_hash)

            proof = await self._prove(BURN_CIRCUIT, witness)
            await binding.shield.submit_burn(
                proof, public_inputs, vk_id, root, n_c, c, pay_to, account
            )

            logger.info(f"Burn complete: {z_c} at index {z_c_index} released to {pay_to}")
            return BurnReceipt(
                z_c=z_c,
                z_c_index=z_c_index,
                nullifier=n_c,
                pay_to=pay_to,
                root=root,
            )

    async def check_correctness(
        self,
        value: str,
        public_key: str,
        serial: str,
        commitment: str,
        leaf_index: int,
        account: str,
        ledgers: LedgerDirectory,
    ) -> CorrectnessReport:
        """Check that ``commitment`` opens to the inputs and is stored at ``leaf_index``."""
        commitment = self._normalized(commitment, "commitment")
        self._check_index(leaf_index, "leaf_index")
        expected = self.hasher.commitment(value, public_key, serial)

        onchain = await ledgers.for_account(account).shield.commitment_at(leaf_index)
        report = CorrectnessReport(
            commitment_matches=expected == commitment,
            onchain_matches=onchain is not None and self._normalized(onchain, "onchain") == commitment,
            onchain_commitment=onchain,
        )
        logger.info(f"Correctness of {commitment} at index {leaf_index}: {report}")
        return report

    # ------------------------------------------------------------------
    # Plain-asset passthroughs
    # ------------------------------------------------------------------

    async def get_balance(self, account: str, ledgers: LedgerDirectory) -> int:
        return await ledgers.for_account(account).token.balance_of(account)

    def get_token_address(self, account: str, ledgers: LedgerDirectory) -> str:
        return ledgers.for_account(account).token.address

    def get_shield_address(self, account: str, ledgers: LedgerDirectory) -> str:
        return ledgers.for_account(account).shield.address

    async def buy_token(self, amount: int, account: str, ledgers: LedgerDirectory) -> Any:
        """Mint plain units into ``account``, where the token allows it."""
        logger.info(f"Buying {amount} plain units for {account}")
        return await ledgers.for_account(account).token.mint(account, amount)

    async def transfer_token(
        self, amount: int, from_account: str, to_account: str, ledgers: LedgerDirectory
    ) -> Any:
        logger.info(f"Transferring {amount} plain units from {from_account} to {to_account}")
        return await ledgers.for_account(from_account).token.transfer(
            from_account, to_account, amount
        )

    async def burn_token(self, amount: int, account: str, ledgers: LedgerDirectory) -> Any:
        """Destroy plain units; unrelated to burning a commitment."""
        logger.info(f"Burning {amount} plain units from {account}")
        return await ledgers.for_account(account).token.burn(account, amount)

    async def get_token_info(self, account: str, ledgers: LedgerDirectory) -> TokenInfo:
        return await ledgers.for_account(account).token.token_info()
