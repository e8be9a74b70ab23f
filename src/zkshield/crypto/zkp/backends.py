"""
Prover backend implementations.

``ZokratesBackend`` drives an external prover CLI; ``MockProverBackend``
returns deterministic proof records for development and testing.
"""

import logging

logger = logging.getLogger(__name__)
import asyncio
import json
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...config import ShieldConfig
from ...errors import ProverError
from ..hashing import sha256
from .core import CircuitRef, ProofRequest, ProverBackend


class ZokratesBackend(ProverBackend):
    """Runs the ZoKrates CLI against a compiled circuit directory.

    The directory must contain the compiled program ``out`` and its
    ``proving.key``. Each ``compute`` call writes its witness and
    ``proof.json`` into a private scratch directory, so concurrent calls
    against the same circuit never share files.
    """

    def __init__(self, config: ShieldConfig):
        super().__init__(config)
        self.binary = config.prover_binary

    async def _run(self, circuit: CircuitRef, *args: str) -> str:
        logger.debug(f"Running {self.binary} {args[0]} for {circuit.name}")
        process = await asyncio.create_subprocess_exec(
            self.binary,
            *args,
            cwd=circuit.directory,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            logger.warning(f"Cancelled {self.binary} {args[0]} for {circuit.name}, killing it")
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        if process.returncode != 0:
            raise ProverError(
                f"{self.binary} {args[0]} failed for {circuit.name} "
                f"with exit code {process.returncode}",
                circuit=circuit.name,
                returncode=process.returncode,
                stderr=stderr.decode(errors="replace"),
            )
        return stdout.decode(errors="replace")

    async def compute(self, circuit: CircuitRef, witness: List[str]) -> Dict[str, Any]:
        directory = Path(circuit.directory)
        logger.info(f"Computing {circuit.name} proof over {len(witness)} witness words")

        with tempfile.TemporaryDirectory(prefix=f"{circuit.name}-") as scratch:
            scratch_dir = Path(scratch)
            await self._run(
                circuit,
                "compute-witness",
                "-i", str(directory / "out"),
                "-o", str(scratch_dir / "witness"),
                "-a", *witness,
            )
            await self._run(
                circuit,
                "generate-proof",
                "-i", str(directory / "out"),
                "-w", str(scratch_dir / "witness"),
                "-p", str(directory / "proving.key"),
                "-j", str(scratch_dir / "proof.json"),
            )

            proof_file = scratch_dir / "proof.json"
            try:
                data = json.loads(proof_file.read_text())
            except (OSError, json.JSONDecodeError) as e:
                raise ProverError(
                    f"Could not read proof for {circuit.name}: {e}",
                    circuit=circuit.name,
                    cause=e,
                )
        if "proof" not in data:
            raise ProverError(
                f"{circuit.name} proof.json has no 'proof' record", circuit=circuit.name
            )

        logger.info(f"{circuit.name} proof computed")
        return data["proof"]


class MockProverBackend(ProverBackend):
    """Deterministic prover for development and tests.

    The proof record has the shape of a Groth16 proof, with every word derived
    from the circuit name and witness so identical inputs give identical proofs.
    """

    def __init__(self, config: Optional[ShieldConfig] = None, error: Optional[Exception] = None):
        super().__init__(config or ShieldConfig())
        self.error = error
        self.requests: List[ProofRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def _word(self, seed: bytes, index: int) -> str:
        return "0x" + sha256(seed + index.to_bytes(4, byteorder="big")).hex()

    async def compute(self, circuit: CircuitRef, witness: List[str]) -> Dict[str, Any]:
        self.requests.append(ProofRequest(circuit=circuit, witness=list(witness)))
        if self.error is not None:
            raise self.error

        seed = sha256((circuit.name + "|" + ",".join(witness)).encode("utf-8"))
        return {
            "a": [self._word(seed, 0), self._word(seed, 1)],
            "b": [
                [self._word(seed, 2), self._word(seed, 3)],
                [self._word(seed, 4), self._word(seed, 5)],
            ],
            "c": [self._word(seed, 6), self._word(seed, 7)],
        }
