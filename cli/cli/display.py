"""Rich output formatting for the schemagit CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from schema_engine.models.conflict import ConflictReport
    from schema_engine.models.diff import DiffSummary
    from schema_engine.models.environment import EnvironmentConfig, ResolvedEnvironment
    from schema_engine.models.project import ProjectSummary
    from schema_engine.models.timeline import Timeline


# ---------------------------------------------------------------------------
# Severity colour mapping
# ---------------------------------------------------------------------------

_SEVERITY_COLOURS: dict[str, str] = {
    "high": "red bold",
    "medium": "yellow",
    "low": "dim",
}


def _coloured_severity(severity: str) -> str:
    """Return a Rich markup string with the severity colour-coded."""
    colour = _SEVERITY_COLOURS.get(severity, "white")
    return f"[{colour}]{severity}[/{colour}]"


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


def display_timeline(console: Console, timeline: Timeline) -> None:
    """Render the migration timeline, newest commit first."""
    if not timeline.entries:
        console.print("[dim]No schema history found.[/dim]")
        return

    table = Table(title="Schema Timeline", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Commit", style="cyan", no_wrap=True)
    table.add_column("Date", style="dim")
    table.add_column("Author")
    table.add_column("Subject", style="bold")
    table.add_column("Tags", style="green")
    table.add_column("Changes", justify="right")

    for entry in timeline.entries:
        marker = " [magenta]auto[/magenta]" if entry.is_auto_commit else ""
        changes = ""
        if entry.summary is not None:
            changes = entry.summary.describe() or "none"
        table.add_row(
            entry.hash,
            entry.date,
            entry.author,
            f"{entry.subject}{marker}",
            ", ".join(entry.tags) or "-",
            changes,
        )
    console.print(table)

    for failure in timeline.tag_failures:
        console.print(f"[yellow]Unresolved tag {failure.tag}: {failure.reason}[/yellow]")


def display_diff_summary(console: Console, summary: DiffSummary, *, title: str = "Change Summary") -> None:
    """Render table- and column-level change counts."""
    table = Table(title=title, show_lines=False, pad_edge=True, expand=False)
    table.add_column("Level", style="bold")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Removed", justify="right", style="red")
    table.add_column("Modified", justify="right", style="yellow")
    table.add_row("Tables", str(summary.tables_added), str(summary.tables_removed), str(summary.tables_modified))
    table.add_row(
        "Columns",
        str(summary.columns_added),
        str(summary.columns_removed),
        str(summary.columns_modified),
    )
    console.print(table)
    if not summary.has_changes:
        console.print("[dim]No structural changes.[/dim]")


# ---------------------------------------------------------------------------
# Environments
# ---------------------------------------------------------------------------


def display_environment_config(console: Console, config: EnvironmentConfig) -> None:
    """Render the branch-to-environment mapping table."""
    if not config.mappings:
        console.print("[dim]No branch mappings configured.[/dim]")
    else:
        table = Table(title="Environment Mappings", show_lines=False, pad_edge=True, expand=False)
        table.add_column("Branch", style="cyan")
        table.add_column("Environment", style="bold")
        table.add_column("Production", justify="center")
        table.add_column("Connection URL", style="dim")
        for mapping in config.mappings:
            table.add_row(
                mapping.branch,
                mapping.environment,
                "[red]yes[/red]" if mapping.is_production else "no",
                mapping.connection_url or "-",
            )
        console.print(table)

    if config.default_environment:
        console.print(f"[bold]Default:[/bold] {config.default_environment}")


def display_resolved_environment(console: Console, resolved: ResolvedEnvironment) -> None:
    lines = [
        f"[bold]Branch:[/bold]       {resolved.branch or '(none)'}",
        f"[bold]Environment:[/bold]  {resolved.environment}",
        f"[bold]Production:[/bold]   {'[red]yes[/red]' if resolved.is_production else 'no'}",
        f"[bold]Connection:[/bold]   {resolved.connection_url or '(none)'}",
        f"[bold]Source:[/bold]       {resolved.connection_source.value}",
    ]
    console.print(
        Panel(
            "\n".join(lines),
            title="Resolved Environment",
            border_style="red" if resolved.is_production else "blue",
        )
    )


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


def display_conflict_report(console: Console, report: ConflictReport) -> None:
    """Render a conflict report header panel and a per-table conflict list."""
    header_lines = [
        f"[bold]Current:[/bold]     {report.current_branch or '(detached)'}",
        f"[bold]Target:[/bold]      {report.target_branch}",
        f"[bold]Merge base:[/bold]  {report.merge_base or '(none)'}",
        f"[bold]Summary:[/bold]     {report.summary}",
    ]
    border = "red" if report.high_count else "yellow" if report.conflict_count else "green"
    console.print(Panel("\n".join(header_lines), title="Schema Conflict Check", border_style=border))

    if report.file_conflicts:
        console.print("[bold]Files git would conflict on:[/bold]")
        for path in report.file_conflicts:
            console.print(f"  {path}")

    if not report.schema_conflicts:
        return

    table = Table(title="Structural Conflicts", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Schema", style="dim")
    table.add_column("Table", style="bold")
    table.add_column("Kind")
    table.add_column("Severity")
    table.add_column("Description")
    table.add_column("Columns")

    for conflict in report.schema_conflicts:
        columns = ", ".join(f"{c.name} ({c.ours_change}/{c.theirs_change})" for c in conflict.columns or [])
        table.add_row(
            conflict.schema_name,
            conflict.table,
            conflict.kind.value,
            _coloured_severity(conflict.severity.value),
            conflict.description,
            columns or "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def display_project_list(console: Console, projects: list[ProjectSummary]) -> None:
    if not projects:
        console.print("[dim]No projects.[/dim]")
        return

    table = Table(title="Projects", show_lines=False, pad_edge=True, expand=False)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Database")
    table.add_column("Location", style="dim")
    for project in projects:
        table.add_row(project.id, project.name, project.database_id or "-", project.source_path or "(managed)")
    console.print(table)
