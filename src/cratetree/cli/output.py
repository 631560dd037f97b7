"""Rich output formatting helpers for the cratetree CLI.

Provides consistent terminal output for resolved trees: a table of
resolved packages, a table of feature errors colored by error kind, and a
JSON rendering for machine consumption.
"""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from cratetree.core.dependency import ResolvedTree

_KIND_STYLES: dict[str, str] = {
    "no-satisfying-version": "yellow",
    "unknown-feature": "cyan",
    "dependency-cycle": "bold red",
    "version-conflict": "bold red",
    "provider-unavailable": "magenta",
    "package-not-found": "magenta",
}

console = Console()
err_console = Console(stderr=True)


def kind_style(kind: str) -> str:
    """Return the Rich style string for an error kind."""
    return _KIND_STYLES.get(kind, "white")


def tree_to_json(tree: ResolvedTree) -> dict[str, Any]:
    """Convert a resolved tree to a JSON-serializable dict."""
    return {
        "root": str(tree.root) if tree.root else None,
        "packages": [
            {"name": p.name, "version": p.version} for p in tree.packages
        ],
        "errors": [
            {
                "feature": e.feature,
                "package": str(e.package),
                "error": e.kind,
                "message": e.message,
            }
            for e in tree.errors
        ],
    }


def print_tree_json(tree: ResolvedTree) -> None:
    click.echo(json.dumps(tree_to_json(tree), indent=2))


def print_tree(tree: ResolvedTree) -> None:
    """Print the resolved packages and any feature errors.

    Args:
        tree: Result of a ``dependencies`` call.
    """
    table = Table(
        title=f"Dependencies of {tree.root}", show_header=True, header_style="bold"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Package", style="bold")
    table.add_column("Version")
    for index, package in enumerate(tree.packages):
        table.add_row(str(index), package.name, package.version)
    console.print(table)

    if tree.errors:
        errors = Table(title="Feature Errors", show_header=True, header_style="bold")
        errors.add_column("Package", style="bold")
        errors.add_column("Feature")
        errors.add_column("Error", justify="center")
        errors.add_column("Message")
        for error in tree.errors:
            errors.add_row(
                str(error.package),
                escape(error.feature),
                Text(error.kind, style=kind_style(error.kind)),
                escape(error.message),
            )
        console.print(errors)

    _print_summary(tree)


def _print_summary(tree: ResolvedTree) -> None:
    parts = [f"[bold]{len(tree.packages)}[/bold] packages resolved"]
    if tree.errors:
        parts.append(f"[yellow]{len(tree.errors)} feature errors[/yellow]")
    else:
        parts.append("[green]no feature errors[/green]")
    console.print(" | ".join(parts))


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
