"""
Verification-key registry.

Maps operation names (``MintCoin``, ``TransferCoin``, ``BurnCoin``) to the
identifier of the verification key registered on the ledger. The mapping is
read once and is immutable afterwards; ``reload`` builds a fresh registry.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Union

from ...errors import ConfigurationError

logger = logging.getLogger(__name__)


class VerificationKeyRegistry:
    """Immutable operation name -> vkId lookup."""

    def __init__(self, vk_ids: Mapping[str, str], source: str = "<memory>"):
        self._vk_ids = MappingProxyType(dict(vk_ids))
        self.source = source

    @staticmethod
    def _parse(data: Any, source: str) -> Dict[str, str]:
        if not isinstance(data, dict):
            raise ConfigurationError(f"{source} must hold a JSON object", config_key="vk_ids")

        vk_ids = {}
        for name, entry in data.items():
            # entries are either {"vkId": "..."} or the id itself
            vk_id = entry.get("vkId") if isinstance(entry, dict) else entry
            if not isinstance(vk_id, str) or not vk_id:
                raise ConfigurationError(
                    f"{source} has no vkId for {name}",
                    config_key=name,
                    config_value=entry,
                )
            vk_ids[name] = vk_id
        return vk_ids

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "VerificationKeyRegistry":
        """Load the registry from a JSON file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read verification keys from {path}: {e}",
                config_key="vk_ids_path",
                config_value=str(path),
                cause=e,
            )
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Verification key file {path} is not valid JSON: {e}",
                config_key="vk_ids_path",
                config_value=str(path),
                cause=e,
            )

        vk_ids = cls._parse(data, str(path))
        logger.info(f"Loaded {len(vk_ids)} verification key ids from {path}")
        return cls(vk_ids, source=str(path))

    def reload(self) -> "VerificationKeyRegistry":
        """Re-read the backing file into a new registry; this one is unchanged."""
        if self.source == "<memory>":
            raise ConfigurationError("An in-memory registry has no file to reload from")
        return self.from_file(self.source)

    def lookup(self, name: str) -> str:
        """vkId registered for an operation."""
        try:
            vk_id = self._vk_ids[name]
        except KeyError:
            raise ConfigurationError(
                f"No verification key registered for {name}",
                config_key=name,
            )
        logger.debug(f"vkId for {name} is {vk_id}")
        return vk_id

    def __contains__(self, name: object) -> bool:
        return name in self._vk_ids

    def as_dict(self) -> Dict[str, str]:
        return dict(self._vk_ids)
