"""
Core prover types and interfaces.

The prover is an external collaborator: it receives a circuit reference and
an ordered list of decimal words and returns a nested proof record. This
module defines that boundary and nothing of the proof system itself.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ...config import ShieldConfig


@dataclass(frozen=True)
class CircuitRef:
    """A compiled circuit the prover can run."""

    name: str
    directory: str

    @classmethod
    def for_operation(cls, config: ShieldConfig, name: str) -> "CircuitRef":
        return cls(name=name, directory=config.circuit_dir(name))


@dataclass
class ProofRequest:
    """One call made to a prover backend."""

    circuit: CircuitRef
    witness: List[str]
    requested_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.witness:
            raise ValueError("witness cannot be empty")


class ProverBackend(ABC):
    """Abstract base class for prover backends."""

    def __init__(self, config: ShieldConfig):
        self.config = config
        self.config.validate()

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def compute(self, circuit: CircuitRef, witness: List[str]) -> Dict[str, Any]:
        """Compute a proof for ``witness`` against ``circuit``.

        Failures propagate to the caller unchanged.
        """
        pass
