"""Rich console output for the terminal player."""

from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table

_console: Optional[Console] = None


def get_console() -> Console:
    """Get or create the global Rich Console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def safe_print(message: str, style: Optional[str] = None) -> None:
    """Print using Rich Console with optional styling.

    Args:
        message: The message to print
        style: Optional Rich style string (e.g., "bold red", "green")
    """
    console = get_console()
    if style:
        console.print(message, style=style)
    else:
        console.print(message)


def print_error(message: str) -> None:
    safe_print(message, style="bold red")


def print_tracks(rows: Iterable[tuple[str, str, str]], current_index: int = -1) -> None:
    """Render (artist, title, length) rows, marking the cursor position."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Artist")
    table.add_column("Title")
    table.add_column("Length", justify="right")

    for index, (artist, title, length) in enumerate(rows):
        marker = "▶ " if index == current_index else ""
        table.add_row(f"{marker}{index + 1}", artist, title, length)

    get_console().print(table)
