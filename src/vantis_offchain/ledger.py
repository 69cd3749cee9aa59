"""
Deployment Ledger

Persistent name -> address map tracking deployment progress for one network.
Every write replaces the whole document atomically.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from vantis_offchain.console import get_logger
from vantis_offchain.exceptions import LedgerCorruptError


logger = get_logger(__name__)


def atomic_write_json(path: Path, data: Any) -> None:
    """
    Write a JSON document so readers only ever see the old or the new content

    Args:
        path: Destination file
        data: JSON-serializable value
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class DeploymentLedger:
    """Flat JSON mapping of logical names to deployed addresses"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise LedgerCorruptError(f"Deployment file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise LedgerCorruptError(f"Deployment file {self.path} is not a flat string map")
        return data

    def exists(self) -> bool:
        return self.path.exists()

    def ensure(self) -> None:
        """Create an empty ledger if none exists yet"""
        if not self.path.exists():
            atomic_write_json(self.path, {})

    def get(self, name: str) -> str:
        """
        Get the address recorded for a name

        Args:
            name: Logical contract or account name

        Returns:
            Recorded value, or an empty string when nothing is recorded
        """
        return self._load().get(name, "")

    def has(self, name: str) -> bool:
        return bool(self.get(name))

    def set(self, name: str, address: str) -> None:
        """
        Record an address for a name (upsert)

        Args:
            name: Logical contract or account name
            address: Address, public key or step marker
        """
        data = self._load()
        data[name] = address
        atomic_write_json(self.path, data)
        logger.debug(f"Saved {name}: {address}")

    def entries(self) -> Dict[str, str]:
        """Get a copy of every recorded entry"""
        return dict(self._load())

    def reset(self) -> None:
        """Truncate the ledger to an empty document"""
        logger.warning("Resetting deployment file...")
        atomic_write_json(self.path, {})
        logger.success("Deployment reset")
