"""Plan engine CLI.

Developer CLI to preview and commit training plans locally through the same
pipeline the HTTP API uses.
"""

import json
import sys
from pathlib import Path
from typing import Any

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from plan_engine.config.settings import settings
from plan_engine.core.logger import setup_logger
from plan_engine.db.models import Base
from plan_engine.db.session import get_engine, get_session_factory
from plan_engine.planning.calibration import CalibrationConfig, CalibrationError, load_calibration
from plan_engine.planning.enums import ConflictSeverity
from plan_engine.planning.errors import PlanEngineError
from plan_engine.planning.pipeline import commit_plan, preview_plan
from plan_engine.planning.repository import SqlAlchemyPlanRepository
from plan_engine.planning.schemas.requests import PreviewResult
from plan_engine.planning.validate import parse_creation_request, parse_override_policy

# Initialize Rich console for output
console = Console()

# Initialize Typer app
app = typer.Typer(
    name="plan-engine",
    help="Plan Engine CLI - preview and commit training plans locally",
    add_completion=False,
)


def _setup_logging(debug: bool = False) -> None:
    setup_logger(level="DEBUG" if debug else settings.log_level, log_file=settings.log_file)


def _read_json(file_path: Path) -> Any:
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] could not read {file_path}: {e}", style="bold red")
        raise typer.Exit(1) from e


def _load_calibration() -> CalibrationConfig:
    try:
        return load_calibration(settings.calibration_version, settings.calibration_dir)
    except CalibrationError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e


def _print_engine_error(err: PlanEngineError) -> None:
    console.print(
        Panel(
            Text("\n".join(err.details) or err.code, style="red"),
            title=err.code,
            border_style="red",
        )
    )


def _render_summary(result: PreviewResult) -> None:
    """Print weeks, goals and conflicts as tables."""
    weeks = Table(title="Projection")
    for column in ("Week", "Start", "Pattern", "Requested", "Applied", "Fitness", "Form", "Gap", "Reason"):
        weeks.add_column(column, justify="right" if column not in {"Start", "Pattern", "Reason"} else "left")
    for week in result.projection.weeks:
        clamped = week.pct_cap_clamped or week.ctl_cap_clamped
        weeks.add_row(
            str(week.index),
            week.week_start.isoformat(),
            week.pattern.value,
            f"{week.requested_load:.1f}",
            f"[yellow]{week.applied_load:.1f}[/yellow]" if clamped else f"{week.applied_load:.1f}",
            f"{week.fitness:.1f}",
            f"{week.form:.1f}",
            f"{week.demand_gap:.1f}",
            week.override_reason.value,
        )
    console.print(weeks)

    goals = Table(title="Goals")
    for column in ("Goal", "Date", "Tier", "Score", "GDI", "Band"):
        goals.add_column(column)
    gdi_by_goal = {item.goal_id: item for item in result.gdi.goals}
    markers = {marker.goal_id: marker for marker in result.projection.goal_markers}
    for assessment in result.goal_assessments:
        gdi = gdi_by_goal[assessment.goal_id]
        goals.add_row(
            assessment.goal_id,
            markers[assessment.goal_id].target_date.isoformat(),
            assessment.tier.value,
            f"{assessment.score:.2f}",
            f"{gdi.index:.2f}",
            gdi.band.value,
        )
    console.print(goals)

    for conflict in result.conflicts:
        style = "red" if conflict.severity == ConflictSeverity.BLOCKING else "yellow"
        console.print(f"[{style}]{conflict.severity.value:<8}[/{style}] {conflict.category.value}:{conflict.code} - {conflict.message}")

    console.print(
        Panel(
            Text(
                f"Plan score {result.plan_score.score:.2f} | GDI {result.gdi.index:.2f} ({result.gdi.band.value})\n"
                f"Snapshot token {result.snapshot_token}",
            ),
            title=f"Calibration {result.calibration_version}",
            border_style="green",
        )
    )


@app.command()
def preview(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Plan creation request (JSON)"),
    output_json: bool = typer.Option(False, "--json", help="Print the full preview as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Preview a plan without persisting it."""
    _setup_logging(debug)
    calibration = _load_calibration()
    try:
        request = parse_creation_request(_read_json(file))
        result = preview_plan(request, calibration)
    except PlanEngineError as e:
        _print_engine_error(e)
        raise typer.Exit(1) from e

    if output_json:
        console.print(JSON(result.model_dump_json()))
    else:
        _render_summary(result)


@app.command()
def commit(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Plan creation request (JSON)"),
    token: str = typer.Option(..., "--token", "-t", help="Snapshot token from preview"),
    override_file: Path | None = typer.Option(None, "--override", help="Override policy (JSON)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Commit a previewed plan to the configured database."""
    _setup_logging(debug)
    calibration = _load_calibration()

    Base.metadata.create_all(bind=get_engine())
    repository = SqlAlchemyPlanRepository(get_session_factory())

    try:
        request = parse_creation_request(_read_json(file))
        override = parse_override_policy(_read_json(override_file) if override_file is not None else None)
        result = commit_plan(request, token, calibration, repository, override)
    except PlanEngineError as e:
        _print_engine_error(e)
        raise typer.Exit(1) from e

    console.print(
        Panel(
            Text(f"Plan {result.plan_id} committed", style="bold green"),
            subtitle=f"overridden conflicts: {len(result.overridden_conflicts)}",
            border_style="green",
        )
    )


@app.command()
def calibration() -> None:
    """Print the active calibration."""
    config = _load_calibration()
    console.print(JSON(config.model_dump_json()))


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the FastAPI server."""
    logger.info(f"Starting FastAPI server on {host}:{port} (reload={reload})")
    uvicorn.run("plan_engine.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted. Exiting...[/yellow]")
        sys.exit(130)
