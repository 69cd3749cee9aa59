"""
Build helper for the Vantis Soroban contracts
"""

from pathlib import Path
from typing import List, Optional

from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger
from vantis_offchain.contracts import DEPLOYMENT_GRAPH, ContractDescriptor, get_descriptor
from vantis_offchain.exceptions import BuildError
from vantis_offchain.stellar_cli import StellarCLI, check_command, run_command


logger = get_logger(__name__)

# Cargo profile name -> target sub-directory
PROFILES = {"release": "release", "debug": "debug"}
# Name suffix written by `stellar contract optimize`
OPTIMIZED_SUFFIX = ".optimized.wasm"


class ContractBuilder:
    """Builds, optimizes and verifies contract wasm artifacts"""

    def __init__(self, settings: Settings, stellar: StellarCLI):
        self.settings = settings
        self.stellar = stellar

    def target_dir(self, mode: str = "release") -> Path:
        return self.settings.target_dir(PROFILES[mode])

    def build(self, mode: str = "release", contract: Optional[str] = None, clean: bool = False) -> List[Path]:
        """
        Build contracts

        Args:
            mode: "release" (optimized) or "debug"
            contract: Build only this contract (logical or crate name)
            clean: Run cargo clean first

        Returns:
            Paths of the wasm files found after the build

        Raises:
            BuildError: If a build command fails
        """
        if mode not in PROFILES:
            raise BuildError(f"Unknown build mode: {mode}")

        contracts_dir = self.settings.contracts_path
        logger.step("Building Vantis contracts...")

        if clean:
            logger.info("Cleaning build artifacts...")
            check_command(self.settings.cargo_bin)
            self._run_cargo_clean(contracts_dir)

        args = ["contract", "build"]
        if mode == "debug":
            args += ["--profile", "dev"]
        if contract:
            descriptor = get_descriptor(contract)
            package = descriptor.crate if descriptor else contract
            logger.info(f"Building {package}...")
            args += ["--package", package]
        else:
            logger.info("Building all contracts...")

        result = self.stellar.run(args, cwd=contracts_dir)
        if not result.ok:
            raise BuildError(f"stellar contract build failed: {result.output}")

        target_dir = self.target_dir(mode)
        built = self._plain_artifacts(target_dir)

        if mode == "release":
            logger.info("Optimizing WASM files...")
            for wasm in built:
                optimized = self.stellar.run(["contract", "optimize", "--wasm", str(wasm)])
                if optimized.ok:
                    logger.info(f"Optimized: {wasm.name}")
                else:
                    logger.warning(f"Could not optimize {wasm.name}")

        logger.success("Build complete!")
        if built:
            logger.info("Built contracts:")
            for wasm in built:
                logger.info(f"  {wasm.name} ({wasm.stat().st_size / 1024:.1f} KiB)")
        else:
            logger.warning("No WASM files found")
        return built

    def verify_artifacts(self, mode: str = "release") -> List[Path]:
        """
        Check that every contract of the deployment graph has a wasm file

        Raises:
            BuildError: Naming the first missing artifact
        """
        target_dir = self.target_dir(mode)
        found = []
        for descriptor in DEPLOYMENT_GRAPH:
            path = descriptor.artifact_path(target_dir)
            if not path.is_file():
                raise BuildError(f"WASM file not found: {descriptor.wasm_file}")
            logger.info(f"Found: {descriptor.wasm_file}")
            found.append(path)
        return found

    def build_all(self) -> List[Path]:
        """Release build of every contract followed by artifact verification"""
        logger.step("Building all contracts...")
        self.build(mode="release")
        artifacts = self.verify_artifacts("release")
        logger.success("All contracts built successfully")
        return artifacts

    def deploy_artifact(self, descriptor: ContractDescriptor) -> Path:
        """Optimized release wasm of a contract when present, else the plain one"""
        plain = descriptor.artifact_path(self.target_dir("release"))
        optimized = plain.with_name(plain.stem + OPTIMIZED_SUFFIX)
        return optimized if optimized.is_file() else plain

    @staticmethod
    def _plain_artifacts(target_dir: Path) -> List[Path]:
        if not target_dir.exists():
            return []
        return sorted(path for path in target_dir.glob("*.wasm") if not path.name.endswith(OPTIMIZED_SUFFIX))

    def _run_cargo_clean(self, contracts_dir: Path) -> None:
        result = run_command([self.settings.cargo_bin, "clean"], cwd=contracts_dir)
        if not result.ok:
            raise BuildError(f"cargo clean failed: {result.output}")
