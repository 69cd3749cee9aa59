"""
Harness Configuration

Centralized settings for deployment and end-to-end verification.
Network endpoints, paths and protocol defaults load from the environment or a .env file.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"


class Settings(BaseSettings):
    """
    Settings for the Vantis deployment harness

    Built once at process start and handed to every component.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================================================
    # Network
    # ============================================================================

    network: str = Field(default="testnet", description="Target network name")
    soroban_rpc_url: str = Field(default="https://soroban-testnet.stellar.org")
    soroban_network_passphrase: str = Field(default=TESTNET_PASSPHRASE)
    horizon_url: str = Field(default="https://horizon-testnet.stellar.org")
    friendbot_url: str = Field(default="https://friendbot.stellar.org")
    explorer_url: str = Field(default="https://stellar.expert/explorer/testnet")

    # ============================================================================
    # Paths
    # ============================================================================

    project_root: Path = Field(default_factory=Path.cwd)
    contracts_dir: Optional[Path] = None
    deployments_dir: Optional[Path] = None
    wasm_target: str = Field(default="wasm32v1-none", description="Cargo target triple for contracts")

    # External tools
    stellar_bin: str = "stellar"
    cargo_bin: str = "cargo"

    # ============================================================================
    # Risk engine defaults (basis points unless noted)
    # ============================================================================

    default_k_factor: int = 100
    default_time_horizon_days: int = 30
    default_stop_loss_threshold: int = 10200
    default_liquidation_threshold: int = 10000
    default_target_health_factor: int = 10500
    default_liquidation_penalty: int = 500
    default_protocol_fee: int = 100
    default_min_collateral_factor: int = 3000

    # Interest rate curve
    default_base_rate: int = 200
    default_slope1: int = 400
    default_slope2: int = 7500
    default_optimal_utilization: int = 8000

    # XLM collateral
    xlm_collateral_factor: int = 7500
    xlm_liquidation_threshold: int = 8500
    xlm_liquidation_penalty: int = 500

    # ============================================================================
    # Test amounts (7 decimals for tokens, 14 decimals for prices)
    # ============================================================================

    test_deposit_amount: int = 10_000_000_000
    test_borrow_amount: int = 500_000_000
    test_price_xlm: int = 10_000_000_000_000

    # ============================================================================
    # Behaviour
    # ============================================================================

    wait_for_finality: bool = False
    finality_max_attempts: int = 30
    finality_poll_interval: float = 2.0
    allow_key_regeneration: bool = False
    verbose: bool = False

    @property
    def contracts_path(self) -> Path:
        """Directory holding the contract workspace"""
        return self.contracts_dir or self.project_root / "contracts"

    @property
    def deployments_path(self) -> Path:
        """Directory holding the ledger and credential files"""
        return self.deployments_dir or self.project_root / "deployments"

    @property
    def deployment_file(self) -> Path:
        """Ledger file for the configured network"""
        return self.deployments_path / f"{self.network}.json"

    def target_dir(self, profile: str = "release") -> Path:
        """Directory where cargo leaves built wasm files for a profile"""
        return self.contracts_path / "target" / self.wasm_target / profile

    @property
    def interest_params(self) -> Dict[str, int]:
        return {
            "base_rate": self.default_base_rate,
            "slope1": self.default_slope1,
            "slope2": self.default_slope2,
            "optimal_utilization": self.default_optimal_utilization,
        }

    @property
    def risk_params(self) -> Dict[str, int]:
        return {
            "k_factor": self.default_k_factor,
            "time_horizon_days": self.default_time_horizon_days,
            "stop_loss_threshold": self.default_stop_loss_threshold,
            "liquidation_threshold": self.default_liquidation_threshold,
            "target_health_factor": self.default_target_health_factor,
            "liquidation_penalty": self.default_liquidation_penalty,
            "protocol_fee": self.default_protocol_fee,
            "min_collateral_factor": self.default_min_collateral_factor,
        }


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Build the settings object for one process

    Args:
        env_file: Optional .env file to load before reading the environment
        **overrides: Explicit values that win over the environment

    Returns:
        Settings instance
    """
    if env_file:
        load_dotenv(env_file, override=False)
        return Settings(_env_file=env_file, **overrides)
    return Settings(**overrides)
