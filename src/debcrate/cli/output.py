"""Rich output formatting helpers for the debcrate CLI.

Tables and panels go to stdout; errors and log records go to stderr so that
``--json`` output stays machine readable.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from debcrate.core.resolver import BuildOrder
from debcrate.debian.naming import deb_source_name, deb_version

console = Console()
err_console = Console(stderr=True)


def build_order_rows(build: BuildOrder) -> list[dict[str, str]]:
    """One record per crate in build order, with its Debian names."""
    return [
        {
            "crate": pkg.name,
            "version": str(pkg.version),
            "source": deb_source_name(pkg.name, pkg.version),
            "deb_version": deb_version(pkg.version),
        }
        for pkg in build.order
    ]


def build_order_json(build: BuildOrder) -> dict[str, Any]:
    """JSON-serializable form of a build-order result."""
    data: dict[str, Any] = {
        "seed": str(build.seed),
        "success": build.success,
        "order": build_order_rows(build),
    }
    if build.cycle:
        data["cycle"] = {
            str(pkg): sorted(str(dep) for dep in deps)
            for pkg, deps in sorted(build.cycle.items())
        }
    if build.leftovers:
        data["leftovers"] = [str(pkg) for pkg in build.leftovers]
    if build.extras:
        data["extras"] = [str(pkg) for pkg in build.extras]
    return data


def print_build_order(build: BuildOrder) -> None:
    """Print the build order as a table, dependencies first.

    Args:
        build: A successful build-order result.
    """
    table = Table(title=f"Build order for {build.seed}", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Crate", style="bold")
    table.add_column("Version")
    table.add_column("Source package", style="cyan")
    table.add_column("Debian version")
    for i, row in enumerate(build_order_rows(build), start=1):
        table.add_row(str(i), row["crate"], row["version"], row["source"], row["deb_version"])
    console.print(table)


def print_cycle(build: BuildOrder) -> None:
    """Print the crates left unsorted by a dependency cycle."""
    console.print(
        Panel("[bold red]Cyclic build graph[/bold red]", title="Build Order")
    )
    console.print("Patch the crate(s) to break the cycle:", highlight=False)
    for edge in build.cycle_edges():
        console.print(f"  [red]{edge}[/red]", highlight=False)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)
