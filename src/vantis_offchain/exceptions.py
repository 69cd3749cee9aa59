"""
Harness Errors

Fatal conditions that abort a deployment or test run.
Recoverable contract failures are never raised; they come back as classified results.
"""


class VantisError(Exception):
    """Base class for fatal harness errors"""


class ToolNotFoundError(VantisError):
    """A required external command is not installed"""

    def __init__(self, tool: str):
        super().__init__(f"{tool} is not installed. Please install it first.")
        self.tool = tool


class BuildError(VantisError):
    """Contract build failed or produced no artifact"""


class DeploymentError(VantisError):
    """A contract deploy did not yield a contract address"""


class LedgerCorruptError(VantisError):
    """The deployment ledger file cannot be parsed"""


class KeyRegenerationRequired(VantisError):
    """A recorded account lost its signing key and may not be silently re-minted"""

    def __init__(self, alias: str, public_key: str):
        super().__init__(
            f"Signing key for '{alias}' ({public_key}) is missing from the local keystore. "
            "Re-run with --regenerate-keys to mint a new identity under the same alias."
        )
        self.alias = alias
        self.public_key = public_key


class SetupError(VantisError):
    """End-to-end tests cannot start against the current deployment"""
