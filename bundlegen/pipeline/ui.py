"""Central UI handler for bundlegen.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Usage:
    from bundlegen.pipeline.ui import console, print_status_panel

    console.print("[success]Bundles written[/success]")
    print_status_panel("FAILED", "config-bundler failed", "exit 1", level="critical")
"""

import sys

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

BUNDLEGEN_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

# Lines of an error message shown in a status panel
MAX_ERROR_LINES = 20


def truncate_lines(text: str, max_lines: int = MAX_ERROR_LINES) -> str:
    """Keep the first ``max_lines`` lines of ``text`` and note how many were cut."""
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    return "\n".join(lines[:max_lines] + [f"... ({len(lines) - max_lines} more lines)"])


# Single console instance - import this, don't create your own
console = Console(
    theme=BUNDLEGEN_THEME,
    force_terminal=sys.stdout.isatty()
)


def print_status_panel(
    status: str,
    message: str,
    detail: str,
    level: str = "info"
) -> None:
    """Print a status panel with colored border.

    Args:
        status: Status label (e.g., "FAILED", "SUCCESS")
        message: Main message line
        detail: Additional detail line
        level: One of "critical", "warning", "success", "info"
    """
    style_map = {
        "critical": ("bold red", "red"),
        "warning": ("bold yellow", "yellow"),
        "success": ("bold green", "green"),
        "info": ("bold cyan", "cyan"),
    }
    text_style, border_style = style_map.get(level, ("white", "white"))

    panel = Panel(
        Text.assemble(
            (f"STATUS: [{status}]\n", text_style),
            (f"{message}\n", border_style),
            (detail, border_style)
        ),
        border_style=border_style,
        expand=False
    )
    console.print(panel)
