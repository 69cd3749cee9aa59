"""
Console formatting utilities for the Vantis harness CLI.
Provides consistent banners, section rules and key/value tables.
"""

from typing import Iterable, Optional, Tuple


# ANSI color codes for console styling
class Colors:
    HEADER = "\033[0;35m"
    OKBLUE = "\033[0;34m"
    CYAN = "\033[0;36m"
    OKGREEN = "\033[0;32m"
    WARNING = "\033[1;33m"
    FAIL = "\033[0;31m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


class MenuFormatter:
    """Banner and table formatting with consistent styling"""

    def __init__(self, width: int = 71, use_color: bool = True):
        self.width = width
        self.use_color = use_color

    def _paint(self, color: str, text: str) -> str:
        return f"{color}{text}{Colors.ENDC}" if self.use_color else text

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a boxed banner"""
        inner = self.width - 2
        print("")
        print("╔" + "═" * inner + "╗")
        print("║" + self._paint(Colors.BOLD, f"{title:^{inner}}") + "║")
        if subtitle:
            print("║" + self._paint(Colors.OKBLUE, f"{subtitle:^{inner}}") + "║")
        print("╚" + "═" * inner + "╝")
        print("")

    def print_rule(self):
        print("─" * self.width)

    def print_test_header(self, name: str):
        """Print the header block for a single test"""
        print("")
        print("─" * 40)
        print(f"TEST: {name}")
        print("─" * 40)

    def print_field(self, label: str, value: str, color: str = Colors.CYAN, pad: int = 0):
        """Print a colored label followed by a value"""
        label_text = f"{label}:"
        if pad:
            label_text = f"{label_text:<{pad}}"
        print(f"{self._paint(color, label_text)} {value}")

    def print_table(self, title: str, rows: Iterable[Tuple[str, str]], pad: int = 25):
        """Print a titled table of label/value rows between rules"""
        print(self._paint(Colors.OKGREEN, f"{title}:"))
        self.print_rule()
        for label, value in rows:
            self.print_field(label, value, color=Colors.OKBLUE, pad=pad)
        print("")
        self.print_rule()

    def print_probe(self, name: str, responding: bool):
        """Print a liveness check line"""
        if responding:
            print(f"{self._paint(Colors.OKGREEN, '✓')} {name} is responding")
        else:
            print(f"{self._paint(Colors.FAIL, '✗')} {name} not responding")
