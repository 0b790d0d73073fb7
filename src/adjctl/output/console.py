"""Rich Console factory and theme for adjctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ADJ_THEME = Theme(
    {
        "adj.ok": "bold green",
        "adj.error": "bold red",
        "adj.warning": "bold yellow",
        "adj.op": "bold cyan",
        "adj.key": "dim",
        "adj.id": "bold blue",
        "adj.skipped": "yellow",
        "adj.applied": "green",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=ADJ_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
