"""
Contract Invocation

Submits deploys, state-changing calls and read-only simulations through the stellar
tool and turns its free-form text output into a typed InvocationResult.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from vantis_offchain.accounts import Account
from vantis_offchain.config import Settings
from vantis_offchain.console import get_logger
from vantis_offchain.stellar_cli import CommandResult, StellarCLI


logger = get_logger(__name__)


class Outcome(str, Enum):
    """Closed set of classified invocation outcomes"""

    SUCCESS = "success"
    ALREADY_DONE = "already_done"
    ASSET_NOT_SUPPORTED = "asset_not_supported"
    STALE_PRICE = "stale_price"
    INSUFFICIENT_HISTORY = "insufficient_history"
    GENERIC_ERROR = "generic_error"


# Business errors that reflect fresh-deployment state rather than defects
PRECONDITION_OUTCOMES = frozenset(
    {Outcome.ASSET_NOT_SUPPORTED, Outcome.STALE_PRICE, Outcome.INSUFFICIENT_HISTORY}
)

# ============================================================================
# Parsing rules
# ============================================================================

CONTRACT_ERROR_PATTERN = re.compile(r"Error\(Contract,\s*#(\d+)\)")
# Default table for callers that do not name a contract; the oracle adapter numbering
CONTRACT_ERROR_CODES: Dict[int, Outcome] = {
    2: Outcome.ASSET_NOT_SUPPORTED,
    3: Outcome.STALE_PRICE,
    6: Outcome.INSUFFICIENT_HISTORY,
}
ALREADY_DONE_MARKERS = (
    "already initialized",
    "alreadyinitialized",
    "already exists",
    "already registered",
    "already added",
)
USAGE_MARKERS = ("Usage:", "USAGE:", "For more information, try '--help'")
GENERIC_ERROR_MARKERS = ("error:", "Error:", "❌", "panicked", "HostError")
TX_HASH_PATTERN = re.compile(r"(?<![0-9a-fA-F])[a-f0-9]{64}(?![0-9a-fA-F])")
CONTRACT_ID_PATTERN = re.compile(r"C[A-Z0-9]{55}")


def extract_tx_hash(raw: str) -> Optional[str]:
    """First 64-hex-character transaction hash in a response, if any"""
    match = TX_HASH_PATTERN.search(raw or "")
    return match.group(0) if match else None


def extract_contract_id(raw: str) -> Optional[str]:
    """First contract-address-shaped token in a response, if any"""
    match = CONTRACT_ID_PATTERN.search(raw or "")
    return match.group(0) if match else None


ErrorCodes = Mapping[int, Outcome]


def classify_response(
    raw: str,
    exit_status: int = 0,
    allow_empty: bool = False,
    error_codes: Optional[ErrorCodes] = None,
) -> Outcome:
    """
    Map the raw text of a stellar invocation onto an Outcome

    Args:
        raw: Combined stdout/stderr of the call
        exit_status: Process exit status
        allow_empty: Whether an empty response counts as success
        error_codes: Contract error numbers of the called contract
            (CONTRACT_ERROR_CODES when omitted)

    Returns:
        Classified outcome
    """
    text = (raw or "").strip()
    if error_codes is None:
        error_codes = CONTRACT_ERROR_CODES

    if not text:
        return Outcome.SUCCESS if allow_empty and exit_status == 0 else Outcome.GENERIC_ERROR

    for match in CONTRACT_ERROR_PATTERN.finditer(text):
        outcome = error_codes.get(int(match.group(1)))
        if outcome:
            return outcome

    lowered = text.lower()
    if any(marker in lowered for marker in ALREADY_DONE_MARKERS):
        return Outcome.ALREADY_DONE

    # Wrong arguments make the tool print its help text instead of a result
    if any(marker in text for marker in USAGE_MARKERS):
        return Outcome.GENERIC_ERROR

    if exit_status != 0 or any(marker in text for marker in GENERIC_ERROR_MARKERS):
        return Outcome.GENERIC_ERROR

    return Outcome.SUCCESS


@dataclass
class InvocationResult:
    """Classified result of one remote call"""

    raw_output: str
    exit_status: int
    outcome: Outcome
    tx_hash: Optional[str] = None
    function: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.SUCCESS, Outcome.ALREADY_DONE)

    @property
    def is_precondition(self) -> bool:
        return self.outcome in PRECONDITION_OUTCOMES

    @property
    def payload(self) -> str:
        """Response text of a successful read, without surrounding quotes"""
        if self.outcome != Outcome.SUCCESS:
            return ""
        lines = [line for line in self.raw_output.strip().splitlines() if line.strip()]
        return lines[-1].strip().strip('"') if lines else ""

    @property
    def message(self) -> str:
        """Last non-empty line of the response, for log output"""
        lines = [line for line in self.raw_output.strip().splitlines() if line.strip()]
        return lines[-1].strip() if lines else "(empty response)"

    @classmethod
    def from_command(
        cls,
        command: CommandResult,
        function: str = "",
        allow_empty: bool = False,
        error_codes: Optional[ErrorCodes] = None,
    ) -> "InvocationResult":
        outcome = classify_response(command.output, command.exit_status, allow_empty, error_codes)
        tx_hash = extract_tx_hash(command.output) if outcome == Outcome.SUCCESS else None
        return cls(
            raw_output=command.output,
            exit_status=command.exit_status,
            outcome=outcome,
            tx_hash=tx_hash,
            function=function,
        )


Source = Union[Account, str]


class ContractInvoker:
    """Deploys contracts and calls their functions; never raises for failed calls"""

    def __init__(
        self,
        settings: Settings,
        stellar: StellarCLI,
        default_source: Optional[Source] = "admin",
        verbose: bool = False,
    ):
        """
        Initialize contract invoker

        Args:
            settings: Harness settings (network endpoints)
            stellar: CLI runner
            default_source: Account or keystore alias used for read-only calls
            verbose: Log every command and raw response
        """
        self.settings = settings
        self.stellar = stellar
        self.default_source = default_source
        self.verbose = verbose

    def _network_args(self) -> List[str]:
        return [
            "--rpc-url",
            self.settings.soroban_rpc_url,
            "--network-passphrase",
            self.settings.soroban_network_passphrase,
        ]

    def _source_args(self, source: Optional[Source]) -> tuple:
        """
        Command arguments and environment selecting the source account

        Secrets go through the environment so they never show up on argv.
        """
        if isinstance(source, Account):
            if source.secret_key:
                return [], {"STELLAR_ACCOUNT": source.secret_key}
            return ["--source-account", source.alias], {}
        if source:
            return ["--source-account", source], {}
        return [], {}

    def _run(
        self,
        args: List[str],
        env: Dict[str, str],
        function: str,
        allow_empty: bool,
        error_codes: Optional[ErrorCodes] = None,
    ) -> InvocationResult:
        if self.verbose:
            logger.info(f"Executing: stellar {' '.join(args)}")

        command = self.stellar.run(args, env=env)
        result = InvocationResult.from_command(
            command, function=function, allow_empty=allow_empty, error_codes=error_codes
        )

        if self.verbose:
            logger.info(f"Response (exit {command.exit_status}, {result.outcome.value}): {command.output}")
        return result

    def deploy(self, wasm_path: Path, signer: Source) -> InvocationResult:
        """
        Deploy a wasm artifact

        Args:
            wasm_path: Built contract file
            signer: Funded account paying for the deploy

        Returns:
            InvocationResult; use extract_contract_id on raw_output for the address
        """
        source_args, env = self._source_args(signer)
        args = ["contract", "deploy", "--wasm", str(wasm_path), *source_args, *self._network_args()]
        return self._run(args, env, function="deploy", allow_empty=False)

    def invoke(
        self,
        contract_address: str,
        function_name: str,
        signer: Source,
        args: Sequence[str] = (),
        allow_empty: bool = True,
        error_codes: Optional[ErrorCodes] = None,
    ) -> InvocationResult:
        """
        Submit a state-changing call

        Args:
            contract_address: Contract id
            function_name: Contract function
            signer: Funded account authorizing the call
            args: Already-serialized arguments, e.g. ["--caller", "G...", "--amount", "10"]
            allow_empty: Whether an empty response counts as success
            error_codes: Contract error numbers of the called contract

        Returns:
            InvocationResult
        """
        source_args, env = self._source_args(signer)
        command = [
            "contract",
            "invoke",
            "--id",
            contract_address,
            *source_args,
            *self._network_args(),
            "--",
            function_name,
            *args,
        ]
        return self._run(command, env, function_name, allow_empty, error_codes)

    def read(
        self,
        contract_address: str,
        function_name: str,
        args: Sequence[str] = (),
        source: Optional[Source] = None,
        allow_empty: bool = False,
        error_codes: Optional[ErrorCodes] = None,
    ) -> InvocationResult:
        """
        Simulate a call without submitting a transaction

        Args:
            contract_address: Contract id
            function_name: Contract function
            args: Already-serialized arguments
            source: Account used for simulation (default_source when omitted)
            allow_empty: Whether an empty response counts as success
            error_codes: Contract error numbers of the called contract

        Returns:
            InvocationResult
        """
        source_args, env = self._source_args(source or self.default_source)
        command = [
            "contract",
            "invoke",
            "--id",
            contract_address,
            *source_args,
            *self._network_args(),
            "--send=no",
            "--",
            function_name,
            *args,
        ]
        return self._run(command, env, function_name, allow_empty, error_codes)
