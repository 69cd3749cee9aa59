"""
Mock objects for harness tests: a scripted stellar tool and in-memory Friendbot/Horizon
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from vantis_offchain.stellar_cli import CommandResult, StellarCLI


SAMPLE_TX_HASH = "ab" * 32


def contract_id_for(wasm_file: str) -> str:
    """Deterministic contract address for a wasm file name"""
    stem = Path(wasm_file).name.split(".")[0].upper().replace("_", "")
    return ("C" + stem).ljust(56, "A")


class FakeStellarCLI(StellarCLI):
    """Stand-in for the stellar tool; answers from a script and records every call"""

    def __init__(self, binary: str = "stellar"):
        super().__init__(binary)
        self.calls: List[Tuple[List[str], Dict[str, str]]] = []
        self.events: List[Tuple[str, str]] = []
        self.scripts: Dict[Tuple[Optional[str], str], List[Tuple[str, int]]] = {}
        self.keystore: Dict[str, Tuple[str, str]] = {}
        self.read_output = '"ok"'
        self.invoke_output = ""
        self.build_hook = None

    # ------------------------------------------------------------------
    # Scripting
    # ------------------------------------------------------------------

    def script(self, key: str, output: str, exit_status: int = 0, contract: Optional[str] = None) -> None:
        """
        Queue a response for a function name (or "deploy", "build", "optimize")

        The last queued response for a key is repeated once the queue runs dry.
        """
        self.scripts.setdefault((contract, key), []).append((output, exit_status))

    def add_identity(self, alias: str, public_key: str, secret_key: str) -> None:
        self.keystore[alias] = (public_key, secret_key)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def functions(self, contract: Optional[str] = None) -> List[str]:
        """Function names of every contract invoke, optionally for one contract"""
        names = []
        for args, _ in self.calls:
            if args[:2] == ["contract", "invoke"]:
                if contract and args[args.index("--id") + 1] != contract:
                    continue
                names.append(args[args.index("--") + 1])
        return names

    def invocations(self, function: str) -> List[List[str]]:
        return [
            args
            for args, _ in self.calls
            if args[:2] == ["contract", "invoke"] and args[args.index("--") + 1] == function
        ]

    def deployed_wasm(self) -> List[str]:
        return [
            Path(args[args.index("--wasm") + 1]).name
            for args, _ in self.calls
            if args[:2] == ["contract", "deploy"]
        ]

    # ------------------------------------------------------------------
    # StellarCLI interface
    # ------------------------------------------------------------------

    def run(
        self,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        args = list(args)
        self.calls.append((args, dict(env or {})))
        key, contract = self._key(args)
        self.events.append(("run", key))

        queue = self.scripts.get((contract, key)) or self.scripts.get((None, key))
        if queue:
            output, status = queue.pop(0) if len(queue) > 1 else queue[0]
            return CommandResult([self.binary, *args], status, output)
        return self._default(key, args)

    def _key(self, args: List[str]) -> Tuple[str, Optional[str]]:
        if args[:2] == ["contract", "invoke"]:
            return args[args.index("--") + 1], args[args.index("--id") + 1]
        if args[:2] == ["contract", "deploy"]:
            return "deploy", None
        if args[:2] == ["contract", "build"]:
            return "build", None
        if args[:2] == ["contract", "optimize"]:
            return "optimize", None
        return "_".join(args[:2]), None

    def _default(self, key: str, args: List[str]) -> CommandResult:
        command = [self.binary, *args]
        if key == "deploy":
            wasm = args[args.index("--wasm") + 1]
            return CommandResult(command, 0, f"Deploying contract...\n{contract_id_for(wasm)}")
        if key == "build":
            if self.build_hook:
                self.build_hook(args)
            return CommandResult(command, 0, "Finished release")
        if key == "optimize":
            return CommandResult(command, 0, "Optimized")
        if key == "keys_secret":
            identity = self.keystore.get(args[2])
            if not identity:
                return CommandResult(command, 1, f"error: identity {args[2]} not found")
            return CommandResult(command, 0, identity[1])
        if "--send=no" in args:
            return CommandResult(command, 0, self.read_output)
        return CommandResult(command, 0, self.invoke_output)


class FakeNetwork:
    """In-memory Friendbot and Horizon served through httpx.MockTransport"""

    def __init__(self, friendbot_status: int = 200):
        self.friendbot_status = friendbot_status
        self.funded: List[str] = []
        self.horizon: Dict[str, List[Optional[bool]]] = {}
        self.requests: List[httpx.Request] = []

    def set_transaction(self, tx_hash: str, *statuses: Optional[bool]) -> None:
        """Horizon answers for successive polls; None means not found yet"""
        self.horizon[tx_hash] = list(statuses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host.startswith("friendbot"):
            self.funded.append(request.url.params.get("addr"))
            return httpx.Response(self.friendbot_status, json={"successful": True})

        tx_hash = request.url.path.rsplit("/", 1)[-1]
        statuses = self.horizon.get(tx_hash, [True])
        status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        if status is None:
            return httpx.Response(404, json={"status": 404})
        return httpx.Response(200, content=json.dumps({"hash": tx_hash, "successful": status}))

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))
