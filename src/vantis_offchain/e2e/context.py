"""
Shared state handed to every end-to-end check
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from vantis_offchain.accounts import Account
from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger
from vantis_offchain.contracts import get_descriptor
from vantis_offchain.invoker import ContractInvoker, ErrorCodes, InvocationResult


logger = get_logger(__name__)


class SkipCheck(Exception):
    """Raised by a check whose precondition was not met by an earlier step"""


@dataclass
class TestContext:
    """Addresses, signers and helpers for one test run"""

    __test__ = False

    settings: Settings
    invoker: ContractInvoker
    addresses: Dict[str, str]
    admin: Union[Account, str]
    test_user: Account
    state: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def admin_address(self) -> str:
        return self.addresses.get("admin", "")

    def address(self, name: str) -> str:
        address = self.addresses.get(name, "")
        if not address:
            raise SkipCheck(f"{name} is not deployed")
        return address

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def error_codes(self, contract: str) -> Optional[ErrorCodes]:
        """Error table of a registered contract, None for anything else"""
        descriptor = get_descriptor(contract)
        return descriptor.error_codes if descriptor else None

    def read(self, contract: str, function: str, args: Sequence[str] = ()) -> InvocationResult:
        return self.invoker.read(
            self.address(contract), function, args, error_codes=self.error_codes(contract)
        )

    def invoke(
        self, contract: str, function: str, signer: Union[Account, str], args: Sequence[str] = ()
    ) -> InvocationResult:
        return self.invoker.invoke(
            self.address(contract), function, signer, args, error_codes=self.error_codes(contract)
        )

    def accept(self, result: InvocationResult, required: bool = True) -> bool:
        """
        Judge an invocation result

        Args:
            result: Classified result
            required: Whether a generic failure fails the check (otherwise it is a warning)

        Returns:
            True when the check passes
        """
        label = result.function or "call"
        if result.ok:
            logger.success(f"{label} returned: {result.payload or result.message}")
            return True
        if result.is_precondition:
            self.warn(f"{label}: {result.outcome.value} ({result.message})")
            return True
        if not required:
            self.warn(f"{label} failed: {result.message}")
            return True
        logger.error(f"{label} failed: {result.message}")
        return False
