# devflow/cli/utils/output.py
"""Output formatting utilities"""

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...constants import EMOJI_ERROR, EMOJI_SKIP, EMOJI_SUCCESS, EMOJI_WARNING
from ...models import Dependency, DependencyStatus, OperationResult, OperationStatus
from ...utils.formatting import format_duration, format_source, pluralize

console = Console()

_STATUS_STYLE = {
    DependencyStatus.SUCCESS: ("green", EMOJI_SUCCESS),
    DependencyStatus.SKIPPED: ("dim", EMOJI_SKIP),
    DependencyStatus.FAILED: ("red", EMOJI_ERROR),
    DependencyStatus.BLOCKED: ("yellow", EMOJI_WARNING),
}


def format_dependency_list(dependencies: List[Dependency], title: Optional[str] = None) -> None:
    """Display resolved dependencies in resolution order"""
    if not dependencies:
        console.print("[dim]No dependencies declared[/dim]")
        return

    table = Table(title=title or "Dependencies", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Profile", style="yellow")
    table.add_column("Depends on")
    table.add_column("Identity", style="dim")

    for index, dependency in enumerate(dependencies, 1):
        table.add_row(
            str(index),
            dependency.name,
            format_source(dependency.source_key),
            dependency.profile or "-",
            ", ".join(child.name for child in dependency.children) or "-",
            dependency.identity[:12]
        )

    console.print(table)


def format_operation_result(result: OperationResult) -> None:
    """Format and display the result of an orchestration operation"""
    title = f"{result.operation.capitalize()} Result"

    if result.dependencies:
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Dependency", style="cyan")
        table.add_column("Status")
        table.add_column("Details")

        for entry in result.dependencies:
            style, icon = _STATUS_STYLE.get(entry.status, ("white", " "))
            details = entry.message
            if entry.artifacts:
                details = "\n".join([details] + sorted(entry.artifacts.values())).strip()
            table.add_row(entry.name, f"[{style}]{icon} {entry.status.value}[/{style}]", details)

        console.print(table)

    for warning in result.warnings:
        console.print(f"[yellow]{EMOJI_WARNING} {warning}[/yellow]")

    counts = [
        pluralize(len(result.by_status(status)), status.value, status.value)
        for status in (DependencyStatus.SUCCESS, DependencyStatus.SKIPPED,
                       DependencyStatus.FAILED, DependencyStatus.BLOCKED)
        if result.by_status(status)
    ]
    summary = f"{pluralize(len(result.dependencies), 'dependency', 'dependencies')}"
    if counts:
        summary += f" ({', '.join(counts)})"
    summary += f" in {format_duration(result.duration)}"

    if result.status == OperationStatus.SUCCESS:
        console.print(Panel(f"[green]{EMOJI_SUCCESS}[/green] {summary}", title=title, border_style="green"))
    else:
        lines = [f"[red]{EMOJI_ERROR}[/red] {summary}", ""]
        lines.extend(f"[red]•[/red] {error}" for error in result.errors)
        console.print(Panel("\n".join(lines), title=title, border_style="red"))
