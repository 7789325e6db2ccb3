"""Output formatting for CLI messages."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape


class OutputFormatter:
    """Writes user-facing messages, plain or as JSON."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Print machine readable JSON instead of text
            quiet: Suppress informational messages
            console: Rich console to write to
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message)

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message)

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        if self.json_output:
            return
        self.err_console.print(f"[yellow]{escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        """Print an error message. Errors are shown even in quiet mode."""
        if self.json_output:
            self.output_json({"error": message})
            return
        self.err_console.print(f"[red]Error: {escape(message)}[/red]")

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of label/value pairs.

        Args:
            title: Summary headline
            items: List of (label, value) tuples
        """
        if self.json_output:
            self.output_json({label: value for label, value in items})
            return
        if self.quiet:
            return
        self.console.print(f"\n[bold]{title}[/bold]")
        width = max((len(label) for label, _ in items), default=0)
        for label, value in items:
            self.console.print(f"  {label.ljust(width)}  {value}")
