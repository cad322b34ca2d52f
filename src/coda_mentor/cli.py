from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from coda_mentor.errors import EvaluationError
from coda_mentor.evaluation.models import EvaluationResult
from coda_mentor.system import MentorSystem
from coda_mentor.utils.logging import get_logger

app = typer.Typer(help="Evaluate mentors teaching sign language to virtual CODA students.")
console = Console()
log = get_logger(__name__)


def _load_system(config: Optional[Path], sessions: Optional[Path]) -> MentorSystem:
    """Instantiate `MentorSystem` with optional config and session-file overrides."""
    try:
        return MentorSystem.from_config(config, sessions_path=sessions)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc


def _render(result: EvaluationResult) -> None:
    competency = result.competency
    table = Table(title=f"Mentor {result.subject_id}")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    for dimension, value in competency.dimensions().items():
        table.add_row(dimension.value.replace("_", " "), f"{value:.2f}")
    table.add_row(
        "[bold]overall[/bold]",
        f"[bold]{competency.overall_score:.2f}[/bold] ({competency.teaching_level.value})",
    )
    console.print(table)

    trend = result.trend
    console.print(
        f"Trend: {trend.direction.value} (strength {trend.strength:.2f}, "
        f"reliability {trend.reliability:.2f})"
    )
    student = result.student
    console.print(
        f"Student {student.name}: level {student.current_level.value}, mood {student.mood.value}, "
        f"recommendation {result.transition.direction.value}"
    )

    milestone = result.predictions.next_milestone
    progression = result.predictions.level_progression
    console.print(
        f"Next milestone: {milestone.skill} in {milestone.estimated_days} days "
        f"(confidence {milestone.confidence:.2f})"
    )
    console.print(
        f"Next level: {progression.next_level.value} in {progression.estimated_days} days, "
        f"~{progression.required_sessions} sessions"
    )
    if result.predictions.risk_factors:
        console.print("\n[bold]Risks[/bold]")
        for risk in result.predictions.risk_factors:
            console.print(escape(f"- [{risk.severity.value}] {risk.factor.value}: {risk.mitigation}"))
    if result.supports:
        console.print("\n[bold]Supports[/bold]")
        for support in result.supports:
            console.print(f"- {support.title} (effectiveness {support.estimated_effectiveness:.2f})")
    if result.feedback.recommendations:
        console.print("\n[bold]Recommendations[/bold]")
        for item in result.feedback.recommendations:
            console.print(f"- {item}")


@app.command()
def evaluate(
    mentor_id: str = typer.Argument(..., help="Mentor identifier as stored in the session file."),
    sessions: Optional[Path] = typer.Option(None, help="JSONL session file to read."),
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
):
    """
    Score a mentor's recorded sessions and show forecasts and supports.

    Loads a `MentorSystem`, reads the mentor's sessions from the JSONL store, and
    runs `CompetencyEvaluator.evaluate`. Validation problems exit with status 1.
    """
    system = _load_system(config, sessions)
    try:
        result = system.evaluate_mentor(mentor_id)
    except EvaluationError as exc:
        console.print(f"[red]Evaluation failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    log.info(
        "mentor_evaluated",
        mentor_id=mentor_id,
        overall=round(result.competency.overall_score, 3),
        cached_entries=len(system.evaluator.cache),
    )
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    _render(result)


@app.command()
def levels(
    config: Optional[Path] = typer.Option(None, help="Path to configuration YAML."),
):
    """List the proficiency ladder with its thresholds."""
    system = _load_system(config, None)
    table = Table(title="Proficiency levels")
    for column in ("Level", "Name", "Minimum", "Progression", "Hours", "Expected skills"):
        table.add_column(column)
    for level in system.levels():
        table.add_row(
            level.rank.value,
            level.name,
            f"{level.minimum_score:.2f}",
            f"{level.progression_score:.2f}",
            str(level.recommended_hours),
            ", ".join(level.expected_skills),
        )
    console.print(table)


if __name__ == "__main__":
    app()
