"""
Account Provisioning

Creates, loads and funds the signing identities used by the harness.
Each alias has one credential file: deployments/<alias>_keys.json.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from stellar_sdk import Keypair

from vantis_offchain.chain_context import StellarChainContext
from vantis_offchain.console import get_logger
from vantis_offchain.exceptions import KeyRegenerationRequired
from vantis_offchain.ledger import atomic_write_json
from vantis_offchain.stellar_cli import StellarCLI


logger = get_logger(__name__)

# Aliases whose identity other deployed state depends on
CRITICAL_ALIASES = ("admin",)


@dataclass
class Account:
    """A locally managed signing identity"""

    alias: str
    public_key: str
    secret_key: Optional[str] = None

    @property
    def can_sign(self) -> bool:
        return bool(self.secret_key)

    def to_record(self) -> Dict[str, Any]:
        record = {"name": self.alias, "public_key": self.public_key}
        if self.secret_key:
            record["secret_key"] = self.secret_key
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Account":
        return cls(
            alias=record["name"],
            public_key=record["public_key"],
            secret_key=record.get("secret_key"),
        )


class AccountProvisioner:
    """Manages named accounts for different roles"""

    def __init__(
        self,
        deployments_dir: Path,
        chain_context: StellarChainContext,
        stellar: Optional[StellarCLI] = None,
        allow_regeneration: bool = False,
        critical_aliases: Iterable[str] = CRITICAL_ALIASES,
    ):
        """
        Initialize account provisioner

        Args:
            deployments_dir: Directory holding credential files
            chain_context: Chain context used for Friendbot funding
            stellar: CLI runner used to look up legacy keystore identities
            allow_regeneration: Whether critical aliases may be re-minted
            critical_aliases: Aliases that need explicit consent before re-minting
        """
        self.deployments_dir = Path(deployments_dir)
        self.chain_context = chain_context
        self.stellar = stellar
        self.allow_regeneration = allow_regeneration
        self.critical_aliases = tuple(critical_aliases)

    def credentials_path(self, alias: str) -> Path:
        return self.deployments_dir / f"{alias}_keys.json"

    def load(self, alias: str) -> Optional[Account]:
        """
        Load a credential record without touching the network

        Returns:
            Account or None if no record exists
        """
        path = self.credentials_path(alias)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return Account.from_record(json.load(f))

    def provision(self, alias: str) -> Account:
        """
        Get a funded signing account for an alias, creating it on first use

        Args:
            alias: Stable logical name of the account

        Returns:
            Account with a usable secret key

        Raises:
            KeyRegenerationRequired: If a critical alias lost its key and
                regeneration was not allowed
        """
        existing = self.load(alias)
        if existing:
            if existing.can_sign:
                logger.info(f"Using existing keypair for {alias}")
                return existing

            recovered = self._recover_from_keystore(existing)
            if recovered:
                logger.info(f"Recovered signing key for {alias} from the stellar keystore")
                self._save(recovered)
                return recovered

            if alias in self.critical_aliases and not self.allow_regeneration:
                raise KeyRegenerationRequired(alias, existing.public_key)

            logger.warning(
                f"Signing key for {alias} ({existing.public_key}) is lost. "
                "Minting a NEW identity under the same alias; contracts deployed "
                "with the old identity will no longer match."
            )

        return self._create(alias)

    def remove(self, alias: str) -> bool:
        """
        Delete the credential record for an alias

        Returns:
            True if a record was removed
        """
        path = self.credentials_path(alias)
        if path.exists():
            path.unlink()
            logger.info(f"Removed credentials for {alias}")
            return True
        return False

    def cleanup_test_accounts(self) -> List[str]:
        """Remove every test_* credential file"""
        removed = []
        for path in sorted(self.deployments_dir.glob("test_*_keys.json")):
            path.unlink()
            removed.append(path.name)
        logger.success("Test accounts cleaned up")
        return removed

    def _create(self, alias: str) -> Account:
        logger.info(f"Creating new keypair for {alias}...")
        keypair = Keypair.random()
        account = Account(alias=alias, public_key=keypair.public_key, secret_key=keypair.secret)

        logger.info("Funding account via friendbot...")
        self.chain_context.request_funding(account.public_key)

        self._save(account)
        logger.success(f"Account {alias} created and funded: {account.public_key}")
        return account

    def _save(self, account: Account) -> None:
        atomic_write_json(self.credentials_path(account.alias), account.to_record())

    def _recover_from_keystore(self, account: Account) -> Optional[Account]:
        """Look for the secret in the stellar keystore identity of the same name"""
        if not self.stellar:
            return None

        secret = self.stellar.key_secret(account.alias)
        if not secret:
            return None

        try:
            keypair = Keypair.from_secret(secret)
        except ValueError:
            return None

        if keypair.public_key != account.public_key:
            return None
        return Account(alias=account.alias, public_key=account.public_key, secret_key=secret)
