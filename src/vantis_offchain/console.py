"""
Console Logging

Leveled, colored log lines for the harness: [INFO], [SUCCESS], [WARNING], [ERROR], [STEP].
"""

import logging
import sys
from typing import Any, Optional

from vantis_offchain.menu.formatter import Colors


SUCCESS = 25
STEP = 22

logging.addLevelName(SUCCESS, "SUCCESS")
logging.addLevelName(STEP, "STEP")

LEVEL_COLORS = {
    logging.DEBUG: Colors.CYAN,
    logging.INFO: Colors.OKBLUE,
    STEP: Colors.HEADER,
    SUCCESS: Colors.OKGREEN,
    logging.WARNING: Colors.WARNING,
    logging.ERROR: Colors.FAIL,
    logging.CRITICAL: Colors.FAIL,
}


class ConsoleFormatter(logging.Formatter):
    """Prefix each record with its colored level tag"""

    def __init__(self, use_color: bool = True):
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tag = f"[{record.levelname}]"
        if self.use_color:
            color = LEVEL_COLORS.get(record.levelno, Colors.ENDC)
            tag = f"{color}{tag}{Colors.ENDC}"
        return f"{tag} {message}"


class ConsoleLogger(logging.LoggerAdapter):
    """Logger adapter with success and step levels"""

    def process(self, msg: Any, kwargs: Any):
        return msg, kwargs

    def success(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(SUCCESS, msg, *args, **kwargs)

    def step(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(STEP, msg, *args, **kwargs)


def get_logger(name: str) -> ConsoleLogger:
    """Get a console logger for a module"""
    return ConsoleLogger(logging.getLogger(name), {})


def setup_logging(verbose: bool = False, stream: Optional[Any] = None) -> None:
    """
    Attach the console handler to the package logger

    Args:
        verbose: Emit debug records as well
        stream: Output stream (stdout by default)
    """
    stream = stream or sys.stdout
    root = logging.getLogger("vantis_offchain")
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ConsoleFormatter(use_color=hasattr(stream, "isatty") and stream.isatty()))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
