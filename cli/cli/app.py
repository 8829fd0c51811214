"""schemagit CLI application -- Typer-based developer interface.

Provides commands for the schema migration timeline, branch-to-environment
mappings, and structural conflict detection.  Human-readable output goes to
*stderr* via Rich; ``--json`` writes machine-readable results to *stdout* so
that scripts can compose cleanly.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import BaseModel
from rich.console import Console

from cli.display import (
    display_conflict_report,
    display_diff_summary,
    display_environment_config,
    display_project_list,
    display_resolved_environment,
    display_timeline,
)
from schema_engine.config import load_settings
from schema_engine.engine import SchemaEngine
from schema_engine.errors import SchemaEngineError, TagCreationError
from schema_engine.log_format import configure_logging
from schema_engine.models.environment import EnvironmentMapping
from schema_engine.store.project_store import ProjectStore

_T = TypeVar("_T")

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="schemagit",
    help="schemagit - version control for database schema snapshots",
    no_args_is_help=True,
)
console = Console(stderr=True)

timeline_app = typer.Typer(name="timeline", help="Schema history built from git.", no_args_is_help=True)
env_app = typer.Typer(name="env", help="Branch-to-environment mappings.", no_args_is_help=True)
conflicts_app = typer.Typer(name="conflicts", help="Structural merge-conflict checks.", no_args_is_help=True)
projects_app = typer.Typer(name="projects", help="Create, import and list projects.", no_args_is_help=True)
app.add_typer(timeline_app, name="timeline")
app.add_typer(env_app, name="env")
app.add_typer(conflicts_app, name="conflicts")
app.add_typer(projects_app, name="projects")

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_projects_root: Path | None = None


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    projects_root: Path | None = typer.Option(
        None,
        "--projects-root",
        help="Directory holding managed projects and the project index.",
        envvar="SCHEMAGIT_PROJECTS_ROOT",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _projects_root  # noqa: PLW0603
    _json_output = json_mode
    _projects_root = projects_root


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _engine() -> SchemaEngine:
    overrides: dict[str, Any] = {}
    if _projects_root is not None:
        overrides["projects_root"] = _projects_root
    settings = load_settings(**overrides)
    configure_logging(settings)
    return SchemaEngine(settings)


def _run(coro: Coroutine[Any, Any, _T]) -> _T:
    """Run an engine coroutine, turning engine errors into exit code 3."""
    try:
        return asyncio.run(coro)
    except TagCreationError as exc:
        console.print(f"[yellow]Commit {exc.commit_hash} created, but tagging failed: {exc}[/yellow]")
        raise typer.Exit(code=3) from exc
    except SchemaEngineError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=3) from exc


def _emit_json(data: BaseModel | list[BaseModel] | None) -> None:
    if data is None:
        payload: Any = None
    elif isinstance(data, list):
        payload = [item.model_dump(mode="json") for item in data]
    else:
        payload = data.model_dump(mode="json")
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")


# ---------------------------------------------------------------------------
# timeline
# ---------------------------------------------------------------------------


@timeline_app.command("list")
def timeline_list(
    project_id: str = typer.Argument(..., help="Project identifier."),
    limit: int = typer.Option(50, "--limit", "-n", min=1, help="Maximum number of commits."),
    summaries: bool = typer.Option(False, "--summaries", help="Compute a change summary for each commit."),
) -> None:
    """List commits that changed the schema snapshot, newest first."""
    engine = _engine()
    timeline = _run(engine.get_timeline(project_id, limit, include_summaries=summaries))

    if _json_output:
        _emit_json(timeline)
    else:
        display_timeline(console, timeline)


@timeline_app.command("summary")
def timeline_summary(
    project_id: str = typer.Argument(..., help="Project identifier."),
    commit: str = typer.Argument(..., help="Commit hash to summarise against its parent."),
) -> None:
    """Show what a single commit changed in the schema."""
    engine = _engine()
    summary = _run(engine.get_commit_summary(project_id, commit))

    if _json_output:
        _emit_json(summary)
        return
    if summary is None:
        console.print("[yellow]Project is not under version control.[/yellow]")
        raise typer.Exit(code=0)
    display_diff_summary(console, summary, title=f"Changes in {commit}")


@timeline_app.command("status")
def timeline_status(project_id: str = typer.Argument(..., help="Project identifier.")) -> None:
    """Show uncommitted schema changes relative to HEAD."""
    engine = _engine()
    summary = _run(engine.get_working_tree_summary(project_id))

    if _json_output:
        _emit_json(summary)
        return
    if summary is None:
        console.print("[yellow]Project is not under version control.[/yellow]")
        raise typer.Exit(code=0)
    display_diff_summary(console, summary, title="Uncommitted Changes")


@timeline_app.command("commit")
def timeline_commit(
    project_id: str = typer.Argument(..., help="Project identifier."),
    message: str | None = typer.Option(None, "--message", "-m", help="Commit message (generated when omitted)."),
    tag: str | None = typer.Option(None, "--tag", "-t", help="Tag the new commit (namespaced automatically)."),
) -> None:
    """Commit the current schema snapshot, optionally tagging it."""
    engine = _engine()
    result = _run(engine.auto_commit_schema(project_id, message=message, tag=tag))

    if _json_output:
        _emit_json(result)
        return
    console.print(f"[green]Committed[/green] {result.hash}: {result.message}")
    if result.tag:
        console.print(f"[green]Tagged[/green] {result.tag}")


# ---------------------------------------------------------------------------
# env
# ---------------------------------------------------------------------------


@env_app.command("show")
def env_show(project_id: str = typer.Argument(..., help="Project identifier.")) -> None:
    """Show the committed branch-to-environment mappings."""
    engine = _engine()
    config = _run(engine.get_environment_config(project_id))

    if _json_output:
        _emit_json(config)
    else:
        display_environment_config(console, config)


@env_app.command("resolve")
def env_resolve(project_id: str = typer.Argument(..., help="Project identifier.")) -> None:
    """Resolve the environment for the currently checked-out branch."""
    engine = _engine()
    resolved = _run(engine.resolve_environment(project_id))

    if _json_output:
        _emit_json(resolved)
    else:
        display_resolved_environment(console, resolved)


@env_app.command("set")
def env_set(
    project_id: str = typer.Argument(..., help="Project identifier."),
    branch: str = typer.Argument(..., help="Git branch name (exact match)."),
    environment: str = typer.Argument(..., help="Environment label, e.g. staging."),
    url: str | None = typer.Option(None, "--url", help="Shared connection URL for this environment."),
    production: bool = typer.Option(False, "--production/--no-production", help="Mark as production."),
) -> None:
    """Add or replace the mapping for a branch."""
    engine = _engine()
    mapping = EnvironmentMapping(branch=branch, environment=environment, connection_url=url, is_production=production)
    config = _run(engine.set_environment_mapping(project_id, mapping))

    if _json_output:
        _emit_json(config)
    else:
        display_environment_config(console, config)


@env_app.command("remove")
def env_remove(
    project_id: str = typer.Argument(..., help="Project identifier."),
    branch: str = typer.Argument(..., help="Branch whose mapping is removed."),
) -> None:
    """Remove the mapping for a branch."""
    engine = _engine()
    config = _run(engine.remove_environment_mapping(project_id, branch))

    if _json_output:
        _emit_json(config)
    else:
        display_environment_config(console, config)


@env_app.command("default")
def env_default(
    project_id: str = typer.Argument(..., help="Project identifier."),
    label: str | None = typer.Argument(None, help="Default label; omit to clear it."),
) -> None:
    """Set the label used when the current branch matches no mapping."""
    engine = _engine()

    async def _update():
        config = await engine.get_environment_config(project_id)
        config.default_environment = label
        return await engine.save_environment_config(project_id, config)

    config = _run(_update())
    if _json_output:
        _emit_json(config)
    else:
        display_environment_config(console, config)


# ---------------------------------------------------------------------------
# conflicts
# ---------------------------------------------------------------------------


@conflicts_app.command("detect")
def conflicts_detect(
    project_id: str = typer.Argument(..., help="Project identifier."),
    target: str = typer.Argument("main", help="Branch the current branch would be merged with."),
    fail_on_conflict: bool = typer.Option(
        False,
        "--fail-on-conflict",
        help="Exit with code 1 when any structural conflict is found.",
    ),
) -> None:
    """Check for structural schema conflicts with a target branch."""
    engine = _engine()
    report = _run(engine.detect_conflicts(project_id, target))

    if _json_output:
        _emit_json(report)
    else:
        display_conflict_report(console, report)

    if fail_on_conflict and report.conflict_count:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# projects
# ---------------------------------------------------------------------------


def _project_store() -> ProjectStore:
    engine = _engine()
    return ProjectStore(engine.settings.projects_root)


@projects_app.command("list")
def projects_list() -> None:
    """List known projects."""
    projects = _run(_project_store().list_projects())

    if _json_output:
        _emit_json(projects)
    else:
        display_project_list(console, projects)


@projects_app.command("create")
def projects_create(
    name: str = typer.Argument(..., help="Project name."),
    database_id: str = typer.Option("", "--database-id", help="Database connection identifier."),
    description: str | None = typer.Option(None, "--description", help="Free-text description."),
    default_schema: str | None = typer.Option(None, "--default-schema", help="Schema shown by default."),
) -> None:
    """Create a managed project with an empty schema snapshot."""
    store = _project_store()
    metadata = _run(
        store.create_project(
            database_id=database_id,
            name=name,
            description=description,
            default_schema=default_schema,
        )
    )

    if _json_output:
        _emit_json(metadata)
    else:
        console.print(f"[green]Created project[/green] {metadata.id} in {store.project_dir(metadata.id)}")


@projects_app.command("register")
def projects_register(
    directory: Path = typer.Argument(
        ...,
        help="Checked-out project directory containing schemagit.json.",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Import an existing project directory without moving it."""
    store = _project_store()
    metadata = _run(store.register_project(directory))

    if _json_output:
        _emit_json(metadata)
    else:
        console.print(f"[green]Registered project[/green] {metadata.id} ({metadata.name}) at {directory}")
