#!/usr/bin/env python3
"""
Console UI Module using Rich

Styled messages, header panels, progress displays and interactive prompts
for the Sarosis command line.
"""

import logging
from typing import Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(self, force_terminal: Optional[bool] = None, stderr: bool = False):
        """Initialize console with optional terminal forcing"""
        self.console = Console(force_terminal=force_terminal, highlight=False, stderr=stderr)

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_plain(self, message: str):
        """Print message in plain white"""
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"

        panel = Panel(header_text, box=box.ROUNDED, padding=(0, 1))
        self.console.print(panel)

    def setup_logging(self, verbose: bool = False):
        """Route log records through Rich on this console"""
        handler = RichHandler(console=self.console, show_path=False, markup=False)
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[handler],
            force=True,
        )

    # Progress bar management
    def create_progress(self):
        """Create a Rich progress context manager for batch operations"""
        from rich.progress import (
            BarColumn,
            Progress,
            SpinnerColumn,
            TaskProgressColumn,
            TextColumn,
            TimeElapsedColumn,
        )

        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    def create_activity_progress(self):
        """Create a Rich progress context manager for activity-only display (no counts)"""
        from rich.progress import (
            Progress,
            SpinnerColumn,
            TextColumn,
            TimeElapsedColumn,
        )

        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    # Interactive prompts
    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask for yes/no confirmation"""
        return Confirm.ask(question, default=default, console=self.console)

    def prompt(self, question: str, default: Optional[str] = None, choices: Optional[list[str]] = None) -> str:
        """Ask for text input with optional default and choices"""
        return Prompt.ask(question, default=default, choices=choices, console=self.console)

    def select_indices(self, items: list[str], title: str = "Select items") -> list[int]:
        """Let the user pick several entries; returns 0-based indices in list order"""
        if not items:
            return []

        self.console.print(f"\n[cyan]{title}[/cyan]")
        for i, item in enumerate(items, 1):
            self.console.print(f"  {i:>3}. {item}")

        while True:
            response = self.prompt(
                "Enter numbers or ranges (e.g. 1,3,5-7), 'all', or 'none'", default="none"
            ).strip()

            try:
                return parse_selection(response, len(items))
            except ValueError as e:
                self.print_error(f"{e}. Please try again.")


def parse_selection(response: str, count: int) -> list[int]:
    """Parse '1,3,5-7' / 'all' / 'none' into sorted 0-based indices

    Raises ValueError on malformed input or numbers outside 1..count.
    """
    response = response.strip().lower()
    if response in ("all", "a", "*"):
        return list(range(count))
    if response in ("", "none", "n"):
        return []

    selected: set[int] = set()
    for part in response.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_str, _, end_str = part.partition("-")
            start, end = int(start_str), int(end_str)
        else:
            start = end = int(part)
        if start < 1 or end > count or start > end:
            raise ValueError(f"Selection '{part}' is out of range 1-{count}")
        selected.update(range(start - 1, end))
    return sorted(selected)
