"""CLI application using Typer."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="rehab",
    help="Balance and gait rehabilitation metrics",
    no_args_is_help=True,
)
console = Console()

# Sub-applications
config_app = typer.Typer(help="Configuration management")
session_app = typer.Typer(help="Run exercise sessions")
history_app = typer.Typer(help="Session history")
progress_app = typer.Typer(help="Rehabilitation progress")
health_app = typer.Typer(help="Health data summaries")

app.add_typer(config_app, name="config")
app.add_typer(session_app, name="session")
app.add_typer(history_app, name="history")
app.add_typer(progress_app, name="progress")
app.add_typer(health_app, name="health")


def _parse_exercise(name: str):
    from balance_rehab.metrics.types import ExerciseType

    key = name.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return ExerciseType[key]
    except KeyError:
        choices = ", ".join(e.name.lower().replace("_", "-") for e in ExerciseType)
        console.print(f"[red]Unknown exercise '{name}'. Choose from: {choices}[/red]")
        raise typer.Exit(1)


def _parse_difficulty(name: str):
    from balance_rehab.metrics.types import ExerciseDifficulty

    try:
        return ExerciseDifficulty[name.strip().upper()]
    except KeyError:
        choices = ", ".join(d.name.lower() for d in ExerciseDifficulty)
        console.print(f"[red]Unknown difficulty '{name}'. Choose from: {choices}[/red]")
        raise typer.Exit(1)


def _build_service(**kwargs):
    from balance_rehab.core.config import get_settings
    from balance_rehab.core.database import init_db
    from balance_rehab.core.log import setup_logging
    from balance_rehab.session.orchestrator import RehabilitationService
    from balance_rehab.storage.store import SessionStore

    settings = get_settings()
    setup_logging(settings.logging.level)
    init_db()
    service = RehabilitationService(settings=settings, store=SessionStore(), **kwargs)
    service.load()
    return service


def _format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _format_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


# ============================================================================
# Config commands
# ============================================================================


@config_app.command("show")
def config_show():
    """Show current configuration."""
    from balance_rehab.core.config import get_settings

    data = get_settings().to_dict()

    console.print("[bold]Current Configuration[/bold]\n")
    for section, values in data.items():
        console.print(f"[cyan]{section}:[/cyan]")
        for key, value in values.items():
            console.print(f"  {key}: {value}")
        console.print()


@config_app.command("init")
def config_init(
    path: Annotated[Path, typer.Option("--path", "-p", help="Config file path")] = Path(
        "config/settings.yaml"
    ),
):
    """Write a configuration file populated with defaults."""
    import yaml

    from balance_rehab.core.config import Settings

    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists():
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Abort()

    header = "# Balance Rehab Configuration\n# Set REHAB_LOG_LEVEL to override logging.level\n\n"
    path.write_text(header + yaml.safe_dump(Settings().to_dict(), sort_keys=False))
    console.print(f"[green]Config written to {path}[/green]")


# ============================================================================
# Session commands
# ============================================================================


@session_app.command("simulate")
def session_simulate(
    exercise: Annotated[
        str, typer.Option("--exercise", "-e", help="Exercise type, e.g. static-balance")
    ] = "static-balance",
    difficulty: Annotated[
        str, typer.Option("--difficulty", "-d", help="beginner, intermediate, advanced, expert")
    ] = "beginner",
    samples: Annotated[int, typer.Option("--samples", "-n", help="Number of motion samples")] = 100,
    walking_fraction: Annotated[
        float, typer.Option("--walking-fraction", "-w", help="Share of samples above the walking gate")
    ] = 0.5,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Random seed for generated samples")] = None,
    realtime: Annotated[
        bool, typer.Option("--realtime", help="Stream at the configured sample cadence")
    ] = False,
):
    """Run a session over synthetic motion samples and store the result."""
    from balance_rehab.sources.motion import SyntheticMotionSource, generate_samples
    from balance_rehab.sources.vr import VRTrackingSource

    exercise_type = _parse_exercise(exercise)
    level = _parse_difficulty(difficulty)

    service = _build_service()
    interval = service.settings.session.sample_interval
    source = SyntheticMotionSource(
        generate_samples(samples, walking_fraction, interval=interval, seed=seed),
        interval=interval if realtime else 0.0,
    )
    service.motion_source = source
    service.vr_source = VRTrackingSource.from_settings(service.settings)

    try:
        with console.status("Running session..."):
            service.start_session(exercise_type, level)
            prediction = service.wait_for_prediction(timeout=30)
            source.wait()
            session = service.end_session()
    finally:
        service.close()

    table = Table(title=f"Session {session.session_id[:8]}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Exercise", session.exercise_type.value)
    table.add_row("Difficulty", session.difficulty.value)
    table.add_row("Duration", _format_duration(session.duration))
    table.add_row("Balance samples", str(len(session.balance_metrics)))
    table.add_row("Gait samples", str(len(session.gait_metrics)))
    table.add_row("Overall score", f"{session.overall_score:.1f}")
    table.add_row("Next difficulty", service.next_difficulty(session).value)
    console.print(table)

    if prediction is not None:
        console.print("\n[bold]Recommendation[/bold]")
        console.print(f"  Exercise: {prediction.recommended_exercise.value}")
        console.print(f"  Difficulty: {prediction.predicted_difficulty.value}")
        console.print(f"  Risk: {prediction.risk_assessment}")
        console.print(f"  Confidence: {prediction.confidence:.2f}")
        console.print(f"  {prediction.next_session_recommendation}")

    for message in service.advisories:
        console.print(f"[yellow]{message}[/yellow]")


@session_app.command("recommend")
def session_recommend():
    """Recommend the next session from the most recent metrics and history."""
    service = _build_service()
    history = service.history
    last = history[-1] if history else None

    prediction = service.engine.predict(
        last.balance_metrics[-1] if last and last.balance_metrics else None,
        last.gait_metrics[-1] if last and last.gait_metrics else None,
        history,
    )
    service.close()

    table = Table(title="Recommendation")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Exercise", prediction.recommended_exercise.value)
    table.add_row("Difficulty", prediction.predicted_difficulty.value)
    table.add_row("Risk", prediction.risk_assessment)
    table.add_row("Confidence", f"{prediction.confidence:.2f}")
    table.add_row("Advice", prediction.next_session_recommendation)
    console.print(table)


# ============================================================================
# History and progress commands
# ============================================================================


@history_app.command("list")
def history_list(
    limit: Annotated[int, typer.Option("--limit", "-l", help="Most recent sessions to show")] = 20,
):
    """List stored sessions."""
    from balance_rehab.core.config import get_settings
    from balance_rehab.core.database import init_db
    from balance_rehab.storage.store import SessionStore

    init_db()
    sessions = SessionStore().list_sessions(get_settings().session.user_id, limit=limit)

    if not sessions:
        console.print("[yellow]No sessions recorded[/yellow]")
        return

    table = Table(title="Session History")
    table.add_column("ID", style="cyan")
    table.add_column("Started")
    table.add_column("Exercise")
    table.add_column("Difficulty")
    table.add_column("Duration", justify="right")
    table.add_column("Score", justify="right")

    for s in sessions:
        table.add_row(
            s.session_id[:8],
            _format_time(s.start_time),
            s.exercise_type.value,
            s.difficulty.value,
            _format_duration(s.duration),
            f"{s.overall_score:.1f}",
        )

    console.print(table)


@progress_app.command("show")
def progress_show():
    """Show longitudinal progress."""
    service = _build_service()
    progress = service.progress
    service.close()

    if progress is None or progress.total_sessions == 0:
        console.print("[yellow]No sessions recorded[/yellow]")
        return

    console.print(f"[bold]Progress for {progress.user_id}[/bold]\n")
    console.print(f"Sessions: {progress.total_sessions}")
    console.print(f"Current level: {progress.current_level.value}")
    console.print(f"Average stability: {progress.average_stability_score:.1f}")
    console.print(f"Average gait score: {progress.average_gait_score:.1f}")
    console.print(f"Improvement rate: {progress.improvement_rate:+.1f}%")
    trend = ", ".join(f"{v:.1f}" for v in progress.fall_risk_trend)
    console.print(f"Fall risk trend: {trend}")


@health_app.command("summary")
def health_summary():
    """Show the health-data summary for the most recent session."""
    from balance_rehab.sources.health import summarize_session

    service = _build_service()
    history = service.history
    service.close()

    if not history:
        console.print("[yellow]No sessions recorded[/yellow]")
        raise typer.Exit(1)

    summary = summarize_session(history[-1])
    console.print(f"[bold]Session {summary.session_id[:8]}[/bold]")
    console.print(f"  Steps: {summary.step_count}")
    console.print(f"  Distance: {summary.distance_m:.1f} m")
    console.print(f"  Calories: {summary.calories:.1f} kcal")


# ============================================================================
# Main entry point
# ============================================================================


@app.callback()
def main():
    """Balance and gait rehabilitation metrics."""
    pass


if __name__ == "__main__":
    app()
