"""
pathwise CLI - inspect skill graphs and replay learner event logs.

Usage:
    pathwise validate graph.json                  # Check a skill graph
    pathwise replay graph.json events.json        # Replay and summarize
    pathwise next graph.json events.json -l alice # Next best action
    pathwise plan graph.json events.json -l alice # Full session plan
    pathwise progress graph.json events.json -l alice
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pathwise.config import get_settings
from pathwise.engine import LearningEngine, create_learning_engine, get_learner_metrics
from pathwise.errors import SkillGraphValidationError
from pathwise.events import parse_events
from pathwise.graph import SkillGraph, SkillGraphDocument
from pathwise.learner.models import MasteryLevel
from pathwise.planning import SessionConfig

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="pathwise",
    help="Adaptive-learning decision engine: replay event logs and plan sessions",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def configure_logging(level: str, log_file: str | None = None) -> None:
    """Route loguru output to stderr (and optionally a rotating file)."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="10 MB")


def _read_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/]")
        raise typer.Exit(code=2) from e


def _load_graph(path: Path) -> SkillGraph:
    try:
        document = SkillGraphDocument.model_validate(_read_json(path))
    except ValidationError as e:
        console.print(f"[red]Malformed skill graph document:[/]\n{e}")
        raise typer.Exit(code=2) from e
    return SkillGraph(definition.to_skill() for definition in document.skills)


def _build_engine(graph_path: Path, events_path: Path) -> LearningEngine:
    graph = _load_graph(graph_path)
    try:
        engine = create_learning_engine(graph, get_settings().engine_config())
    except SkillGraphValidationError as e:
        _print_graph_errors(e)
        raise typer.Exit(code=1) from e

    try:
        events = parse_events(_read_json(events_path))
    except ValidationError as e:
        console.print(f"[red]Invalid event log:[/]\n{e}")
        raise typer.Exit(code=2) from e

    engine.replay_events(events)
    return engine


def _print_graph_errors(error: SkillGraphValidationError) -> None:
    table = Table(title="Skill Graph Errors")
    table.add_column("Kind", style="red")
    table.add_column("Skills", style="cyan")
    table.add_column("Message")
    for item in error.errors:
        table.add_row(item.kind.value, ", ".join(item.skill_ids), item.message)
    console.print(table)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def validate(
    graph_path: Annotated[Path, typer.Argument(help="Skill graph JSON file")],
) -> None:
    """
    Validate a skill graph.

    Exits with code 1 when the graph has cycles, missing prerequisites or
    duplicate skills.
    """
    graph = _load_graph(graph_path)
    result = graph.validate()
    if not result.valid:
        _print_graph_errors(SkillGraphValidationError(list(result.errors)))
        raise typer.Exit(code=1)

    order = graph.get_topological_order()
    console.print(
        Panel(
            f"[green]✓ Valid skill graph[/]\n"
            f"Skills: {len(graph)}\n"
            f"Order: {' → '.join(order)}",
            title="pathwise",
            border_style="green",
        )
    )


@app.command()
def replay(
    graph_path: Annotated[Path, typer.Argument(help="Skill graph JSON file")],
    events_path: Annotated[Path, typer.Argument(help="Event log JSON array")],
    out: Annotated[
        Path | None, typer.Option("--out", "-o", help="Write exported state to this file")
    ] = None,
) -> None:
    """Replay an event log and summarize every learner."""
    engine = _build_engine(graph_path, events_path)

    table = Table(title="Replay Summary")
    table.add_column("Learner", style="cyan")
    table.add_column("Events", justify="right")
    table.add_column("Mastered", justify="right", style="green")
    table.add_column("Learning", justify="right", style="yellow")
    table.add_column("Not Started", justify="right", style="dim")
    table.add_column("Avg Mastery", justify="right")
    for learner_id in engine.get_learner_ids():
        progress = engine.get_learner_progress(learner_id)
        table.add_row(
            learner_id,
            str(progress.total_events),
            str(progress.mastered),
            str(progress.learning),
            str(progress.not_started),
            f"{progress.average_mastery:.0%}",
        )
    console.print(table)

    if out is not None:
        out.write_text(engine.export_state(), encoding="utf-8")
        console.print(f"[green]State written to {out}[/]")


@app.command("next")
def next_action(
    graph_path: Annotated[Path, typer.Argument(help="Skill graph JSON file")],
    events_path: Annotated[Path, typer.Argument(help="Event log JSON array")],
    learner: Annotated[str, typer.Option("--learner", "-l", help="Learner id")],
) -> None:
    """Show the next recommended action for a learner."""
    engine = _build_engine(graph_path, events_path)
    action = engine.get_next_action(learner)

    console.print(
        Panel(
            f"[bold]{action.type.value}[/] {action.skill_id or ''}"
            f"{f' ({action.item_id})' if action.item_id else ''}\n"
            f"{action.reason}\n"
            f"Priority: {action.priority:.1f}",
            title=f"Next action for {learner}",
            border_style="cyan",
        )
    )


@app.command()
def plan(
    graph_path: Annotated[Path, typer.Argument(help="Skill graph JSON file")],
    events_path: Annotated[Path, typer.Argument(help="Event log JSON array")],
    learner: Annotated[str, typer.Option("--learner", "-l", help="Learner id")],
    items: Annotated[int, typer.Option("--items", "-n", min=1, help="Target number of actions")] = 20,
) -> None:
    """Plan a full session for a learner."""
    engine = _build_engine(graph_path, events_path)
    actions = engine.plan_session(learner, SessionConfig(target_items=items))
    stats = engine.planner.get_session_stats(actions)

    table = Table(title=f"Session Plan for {learner}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Skill")
    table.add_column("Reason")
    table.add_column("Priority", justify="right")
    for index, action in enumerate(actions, start=1):
        table.add_row(
            str(index),
            action.type.value,
            action.skill_id or "-",
            action.reason,
            f"{action.priority:.1f}",
        )
    console.print(table)
    console.print(
        f"[dim]{stats.total_actions} actions, {stats.unique_skills} skills, "
        f"average priority {stats.average_priority:.1f}[/]"
    )


@app.command()
def progress(
    graph_path: Annotated[Path, typer.Argument(help="Skill graph JSON file")],
    events_path: Annotated[Path, typer.Argument(help="Event log JSON array")],
    learner: Annotated[str, typer.Option("--learner", "-l", help="Learner id")],
) -> None:
    """Show per-skill mastery and retention for a learner."""
    engine = _build_engine(graph_path, events_path)
    model = engine.get_learner_model(learner)
    metrics = get_learner_metrics(engine, learner, at_time=model.last_updated if model else 0)

    table = Table(title=f"Progress for {learner}")
    table.add_column("Skill", style="cyan")
    table.add_column("Mastery", justify="right")
    table.add_column("Level")
    table.add_column("Retention", justify="right")
    for skill_id in engine.graph.get_topological_order():
        p_mastery = metrics.mastery_by_skill.get(skill_id, 0.0)
        level = MasteryLevel.from_score(p_mastery)
        retention = metrics.retention_by_skill.get(skill_id)
        table.add_row(
            skill_id,
            f"{p_mastery:.0%}",
            f"[{level.color}]{level.display_name}[/]",
            f"{retention:.0%}" if retention is not None else "-",
        )
    console.print(table)
    console.print(
        f"[dim]{metrics.skills_mastered} mastered, {metrics.skills_due} due, "
        f"~{metrics.estimated_events_to_full_mastery} events to full mastery[/]"
    )


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    ] = None,
) -> None:
    """
    pathwise - deterministic adaptive-learning engine.

    Configuration is read from PATHWISE_* environment variables or a .env file.
    """
    settings = get_settings()
    configure_logging((log_level or settings.log_level).upper(), settings.log_file)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
