"""
Deployment status: ledger entries plus a liveness probe per known contract
"""

from typing import Dict, Optional

from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger
from vantis_offchain.contracts import DEPLOYMENT_GRAPH
from vantis_offchain.invoker import ContractInvoker
from vantis_offchain.ledger import DeploymentLedger
from vantis_offchain.menu.formatter import MenuFormatter


logger = get_logger(__name__)


def probe_contracts(ledger: DeploymentLedger, invoker: ContractInvoker) -> Dict[str, bool]:
    """
    Send a cheap read call to every deployed contract

    Returns:
        Mapping of logical name to whether the contract answered
    """
    results = {}
    for descriptor in DEPLOYMENT_GRAPH:
        address = ledger.get(descriptor.logical_name)
        if not address:
            continue
        result = invoker.read(address, descriptor.probe_function, error_codes=descriptor.error_codes)
        results[descriptor.logical_name] = result.ok or result.is_precondition
    return results


def show_status(
    settings: Settings,
    ledger: DeploymentLedger,
    invoker: ContractInvoker,
    formatter: Optional[MenuFormatter] = None,
) -> int:
    """
    Print the deployment status for the configured network

    Returns:
        0 when every recorded contract responds, 1 otherwise
    """
    formatter = formatter or MenuFormatter()
    formatter.print_header("Vantis Protocol - Deployment Status")
    formatter.print_field("Network", settings.network)
    formatter.print_field("Deployment file", str(ledger.path))
    print("")

    if not ledger.exists():
        logger.warning("No deployment found. Run `vantis deploy` first.")
        return 1

    entries = ledger.entries()
    if not entries:
        logger.warning("Deployment file is empty")
        return 1

    formatter.print_table("Ledger Entries", sorted(entries.items()))

    logger.step("Probing contracts...")
    probes = probe_contracts(ledger, invoker)
    for descriptor in DEPLOYMENT_GRAPH:
        if descriptor.logical_name in probes:
            formatter.print_probe(descriptor.title, probes[descriptor.logical_name])

    if not probes:
        logger.warning("No contracts recorded yet")
        return 1
    return 0 if all(probes.values()) else 1
