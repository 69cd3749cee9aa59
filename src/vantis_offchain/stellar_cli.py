"""
Stellar CLI Runner

Runs the `stellar` command line tool as a subprocess and captures its combined output.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from vantis_offchain.console import get_logger
from vantis_offchain.exceptions import ToolNotFoundError


logger = get_logger(__name__)

# Exit status reported when the binary cannot be started
NOT_FOUND_STATUS = 127


@dataclass
class CommandResult:
    """Outcome of one external command"""

    args: List[str]
    exit_status: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


def check_command(name: str) -> str:
    """
    Ensure an executable is on PATH

    Args:
        name: Command name

    Returns:
        Resolved path of the command

    Raises:
        ToolNotFoundError: If the command is not installed
    """
    path = shutil.which(name)
    if not path:
        raise ToolNotFoundError(name)
    return path


def run_command(
    command: Sequence[str],
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[Path] = None,
) -> CommandResult:
    """
    Run an external command with stdout and stderr merged

    Args:
        command: Executable followed by its arguments
        env: Extra environment variables for the child process
        cwd: Working directory

    Returns:
        CommandResult; a missing executable yields exit status 127
    """
    command = list(command)
    child_env = dict(os.environ)
    if env:
        child_env.update(env)

    try:
        completed = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            env=child_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except FileNotFoundError:
        logger.debug(f"Command not found: {command[0]}")
        return CommandResult(command, NOT_FOUND_STATUS, f"error: {command[0]}: command not found")

    return CommandResult(command, completed.returncode, (completed.stdout or "").strip())


class StellarCLI:
    """Thin subprocess wrapper around the stellar tool"""

    def __init__(self, binary: str = "stellar"):
        self.binary = binary

    def run(
        self,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        """
        Run a stellar subcommand

        Args:
            args: Arguments after the binary name
            env: Extra environment variables for the child process
            cwd: Working directory

        Returns:
            CommandResult with stdout and stderr merged
        """
        return run_command([self.binary, *args], env=env, cwd=cwd)

    def key_secret(self, alias: str) -> Optional[str]:
        """Secret key of a keystore identity, or None when it is not available"""
        result = self.run(["keys", "secret", alias])
        return result.output.splitlines()[-1].strip() if result.ok and result.output else None
