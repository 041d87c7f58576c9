"""Shared utility functions for Textor.

Provides async command execution and the Rich-based console helpers every
command uses to report what it created, skipped or refused.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    argv: Sequence[str],
    cwd: str | Path | None = None,
    timeout: int = 60,
) -> tuple[int, str, str]:
    """Run *argv* without a shell and collect its output.

    Returns:
        ``(returncode, stdout, stderr)`` with both streams decoded and
        stripped.  A missing executable gives return code 127 and a timeout
        gives -1; neither raises.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as exc:
        return 127, "", str(exc)

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"{argv[0]} timed out after {timeout}s"

    return (
        process.returncode or 0,
        out.decode("utf-8", errors="replace").strip(),
        err.decode("utf-8", errors="replace").strip(),
    )


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    """Print a boxed command header."""
    console.print(Panel(f"[bold]{title}[/bold]", style="cyan"))


def print_summary_table(data: dict[str, object], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_file_list(title: str, paths: Iterable[str], style: str = "white", marker: str = "-") -> None:
    """Print a titled list of paths, or nothing if the list is empty."""
    items = list(paths)
    if not items:
        return
    console.print(f"[bold]{title}[/bold] ({len(items)})")
    for path in items:
        console.print(f"  [{style}]{marker}[/{style}] {path}")


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_skipped(path: str, reason: str) -> None:
    console.print(f"  [yellow]skipped[/yellow] {path}: {reason}")


def print_created(path: str) -> None:
    console.print(f"  [green]+[/green] {path}")


def print_removed(path: str) -> None:
    console.print(f"  [red]-[/red] {path}")
