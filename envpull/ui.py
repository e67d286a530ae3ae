"""
Terminal output and prompts.

A UI instance owns its consoles and colour setting; nothing here is global,
so tests can build a UI with colour turned off and capture plain text.
"""

from typing import Callable, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .diff import DiffResult, diff_counts, format_diff


class UI:
    """Coloured status messages, tables and interactive prompts."""

    def __init__(self, color: Optional[bool] = None, input_func: Optional[Callable[[str], str]] = None):
        """
        Initialize the UI.

        Args:
            color: Force colour on or off, None detects a terminal
            input_func: Function used to read answers, defaults to input()
        """
        options = {'highlight': False, 'emoji': False, 'soft_wrap': True}
        if color is not None:
            options['no_color'] = not color
            options['force_terminal'] = color
        self.out = Console(**options)
        self.err = Console(stderr=True, **options)
        self.input_func = input_func

    def success(self, message: str) -> None:
        self.out.print("[green]✓[/green]", escape(message))

    def info(self, message: str) -> None:
        self.out.print("[blue]ℹ[/blue]", escape(message))

    def warning(self, message: str) -> None:
        self.out.print("[yellow]⚠[/yellow]", escape(message))

    def error(self, message: str) -> None:
        self.err.print("[red]✗[/red]", escape(message))

    def println(self, message: str = "", style: Optional[str] = None) -> None:
        self.out.print(message, style=style, markup=False)

    def dim(self, message: str) -> None:
        self.println(message, style="dim")

    def raw(self, text: str) -> None:
        """Write text exactly as given, without styling or a trailing newline."""
        self.out.file.write(text)
        self.out.file.flush()

    def table(self, headers: Sequence[str], rows: List[Sequence[str]]) -> None:
        table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self.out.print(table)

    def print_diff(self, diff: DiffResult) -> None:
        """Print a diff report with each section in its own colour."""
        styles = {'+': "green", '-': "red", '~': "yellow"}
        current = None
        for line in format_diff(diff).split("\n"):
            if line and not line.startswith(" "):
                current = styles.get(line[0])
            self.println(line, style=current)

    def print_diff_summary(self, diff: DiffResult) -> None:
        counts = diff_counts(diff)
        self.println("\nSummary:")
        if counts['added']:
            self.println(f"  + {counts['added']} added (in remote)", style="bold green")
        if counts['removed']:
            self.println(f"  - {counts['removed']} removed (in local only)", style="bold red")
        if counts['modified']:
            self.println(f"  ~ {counts['modified']} modified", style="bold yellow")
        self.dim(f"  = {counts['unchanged']} unchanged")

    def confirm(self, message: str) -> bool:
        """
        Ask a yes/no question.

        Only an explicit ``y`` or ``yes`` confirms; an empty answer, end of
        input or Ctrl-C count as no.
        """
        try:
            response = self._ask(f"{message} [y/N] ")
        except (EOFError, KeyboardInterrupt):
            self.println()
            return False
        return response.strip().lower() in ('y', 'yes')

    def prompt(self, message: str, default: str = "") -> str:
        """Ask for a value, returning the default on an empty answer."""
        label = f"{message} [{default}]: " if default else f"{message}: "
        response = self._ask(label).strip()
        return response or default

    def prompt_required(self, message: str) -> str:
        """Ask for a value until a non-empty answer is given."""
        while True:
            response = self._ask(f"{message}: ").strip()
            if response:
                return response
            self.warning("This field is required")

    def _ask(self, label: str) -> str:
        return (self.input_func or input)(label)
