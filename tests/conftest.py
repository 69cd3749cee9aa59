"""
Pytest configuration for harness tests

Every fixture works offline: the stellar tool, Friendbot and Horizon are faked.
"""

import logging

import pytest

from vantis_offchain.accounts import AccountProvisioner
from vantis_offchain.builder import ContractBuilder
from vantis_offchain.chain_context import StellarChainContext
from vantis_offchain.config import Settings
from vantis_offchain.contracts import DEPLOYMENT_GRAPH
from vantis_offchain.invoker import ContractInvoker
from vantis_offchain.ledger import DeploymentLedger
from vantis_offchain.menu.formatter import MenuFormatter

from .mocks import FakeNetwork, FakeStellarCLI


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary project directory"""
    return Settings(_env_file=None, project_root=tmp_path, network="testnet")


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def sleeps():
    """Records every finality poll sleep"""
    return []


@pytest.fixture
def chain_context(settings, network, sleeps):
    context = StellarChainContext(settings, client=network.client(), sleep=sleeps.append)
    yield context
    context.close()


@pytest.fixture
def stellar():
    return FakeStellarCLI()


@pytest.fixture
def ledger(settings):
    return DeploymentLedger(settings.deployment_file)


@pytest.fixture
def provisioner(settings, chain_context, stellar):
    return AccountProvisioner(settings.deployments_path, chain_context, stellar=stellar)


@pytest.fixture
def invoker(settings, stellar):
    return ContractInvoker(settings, stellar)


@pytest.fixture
def builder(settings, stellar):
    return ContractBuilder(settings, stellar)


@pytest.fixture
def formatter():
    return MenuFormatter(use_color=False)


@pytest.fixture
def wasm_artifacts(settings):
    """Release wasm files for the whole deployment graph"""
    target_dir = settings.target_dir("release")
    target_dir.mkdir(parents=True)
    paths = []
    for descriptor in DEPLOYMENT_GRAPH:
        path = descriptor.artifact_path(target_dir)
        path.write_bytes(b"\x00asm\x01\x00\x00\x00")
        paths.append(path)
    return paths


@pytest.fixture
def tools_installed(monkeypatch):
    """Pretend every external command is on PATH"""
    monkeypatch.setattr("vantis_offchain.stellar_cli.shutil.which", lambda name: f"/usr/bin/{name}")


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI attaches so runs do not leak into each other"""
    yield
    package_logger = logging.getLogger("vantis_offchain")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
