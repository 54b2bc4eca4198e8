"""
Typer CLI for inspecting the frontier engines.

Commands:
    frontier simulate --grade G1 --known-up-to 12   - Run a diagnostic against a scripted student
    frontier schedule --answers ccccxc              - Show review interval progression
    frontier mastery --answers cccx --prior 0.3     - Show BKT probability updates
    frontier flatline 1200 1180 1210 ...            - Check latencies for a plateau

Answers are written as a string of c (correct) and x (incorrect).
"""

from __future__ import annotations

from datetime import UTC, datetime

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from frontier.core.clock import FixedClock
from frontier.core.mastery import BKTTracker, MasteryRecord
from frontier.curriculum.catalog import InMemoryConceptCatalog, grade_label
from frontier.delivery.scheduler import ScheduleState, SpacedRepetitionScheduler
from frontier.logging_setup import configure_logging
from frontier.service import PlacementService
from frontier.study.fluency import check_flatline

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="frontier",
    help="Frontier: placement, mastery and review engines",
    no_args_is_help=True,
)
console = Console()

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "dim": "dim",
}

# Fixed reference time so repeated runs print the same dates
REFERENCE_TIME = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)


def _parse_answers(answers: str) -> list[bool]:
    cleaned = answers.strip().lower()
    if not cleaned or set(cleaned) - {"c", "x"}:
        raise typer.BadParameter("answers must be a non-empty string of 'c' and 'x'")
    return [ch == "c" for ch in cleaned]


def _mark(correct: bool) -> str:
    if correct:
        return f"[{STYLES['correct']}]✓[/{STYLES['correct']}]"
    return f"[{STYLES['incorrect']}]✗[/{STYLES['incorrect']}]"


# =============================================================================
# Commands
# =============================================================================


@app.command()
def simulate(
    grade: str = typer.Option("G1", "--grade", "-g", help="Student grade level (K, G1, G2, ...)"),
    known_up_to: int = typer.Option(
        ..., "--known-up-to", "-k", help="Index of the hardest concept the student knows (-1 for none)"
    ),
) -> None:
    """Run a diagnostic over the default curriculum against a scripted student."""
    service = PlacementService(
        InMemoryConceptCatalog(),
        clock=FixedClock(REFERENCE_TIME),
        settings=get_settings(),
    )
    try:
        state = service.place_student("simulated-student", grade_level=grade)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--grade") from exc

    if not (-1 <= known_up_to < len(state.space)):
        raise typer.BadParameter(
            f"--known-up-to must be between -1 and {len(state.space) - 1}"
        )

    probes = Table(title="Diagnostic Probes", show_header=True)
    probes.add_column("#", justify="right", style="dim")
    probes.add_column("Index", justify="right")
    probes.add_column("Concept", style="cyan")
    probes.add_column("Answer", justify="center")
    probes.add_column("Bounds", justify="right", style="dim")

    while (node := service.next_diagnostic_probe(state)) is not None:
        index = state.space.index_of(node.code)
        correct = index <= known_up_to
        state = service.record_diagnostic_answer(state, node.code, correct)
        probes.add_row(
            str(state.questions_answered),
            str(index),
            node.code,
            _mark(correct),
            f"[{state.search_low}, {state.search_high}]",
        )

    console.print(probes)

    result = service.finalize_placement(state)
    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style=STYLES["info"])
    summary.add_column("Value")
    summary.add_row("Frontier", f"{result.frontier_concept.code} ({result.frontier_concept.display_title})")
    summary.add_row("Grade estimate", f"{result.grade_estimate:.2f} ({grade_label(result.grade_estimate)})")
    summary.add_row("Confidence", f"{result.confidence:.0%}")
    summary.add_row("Correct", f"{result.total_correct}/{result.total_questions}")
    summary.add_row("Mastered", ", ".join(result.mastered_concepts) or "-")
    summary.add_row("Gaps", ", ".join(result.gap_concepts) or "-")
    console.print(Panel(summary, title="Placement", expand=False))
    console.print(result.summary)


@app.command()
def schedule(
    answers: str = typer.Option(..., "--answers", "-a", help="Review outcomes, e.g. ccccxc"),
) -> None:
    """Show how review intervals evolve over a sequence of reviews."""
    outcomes = _parse_answers(answers)
    scheduler = SpacedRepetitionScheduler.from_settings(get_settings())

    table = Table(title="Review Schedule", show_header=True)
    table.add_column("Review", justify="right", style="dim")
    table.add_column("Answer", justify="center")
    table.add_column("Interval", justify="right", style="cyan")
    table.add_column("EF", justify="right")
    table.add_column("Next review", style="dim")

    state = ScheduleState()
    now = REFERENCE_TIME
    for correct in outcomes:
        update = scheduler.schedule_next(state, correct, now)
        table.add_row(
            str(update.review_count),
            _mark(correct),
            f"{update.interval}d",
            f"{update.easiness_factor:.2f}",
            update.next_review_at.date().isoformat(),
        )
        state = ScheduleState(
            review_count=update.review_count,
            review_interval=update.interval,
            easiness_factor=update.easiness_factor,
        )
        now = update.next_review_at

    console.print(table)


@app.command()
def mastery(
    answers: str = typer.Option(..., "--answers", "-a", help="Practice outcomes, e.g. cccx"),
    prior: float = typer.Option(0.3, "--prior", "-p", min=0.0, max=1.0, help="Starting probability"),
) -> None:
    """Show BKT probability updates over a sequence of practice answers."""
    outcomes = _parse_answers(answers)
    tracker = BKTTracker.from_settings(get_settings())
    record = MasteryRecord(student_id="simulated-student", concept_id="concept", probability=prior)

    table = Table(title="Mastery Updates", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Answer", justify="center")
    table.add_column("P(known)", justify="right", style="cyan")
    table.add_column("Level")
    table.add_column("Advance?", justify="center")

    clock = FixedClock(REFERENCE_TIME)
    for number, correct in enumerate(outcomes, start=1):
        record = tracker.update(record, correct, clock.advance(days=1))
        level = record.level
        table.add_row(
            str(number),
            _mark(correct),
            f"{record.probability:.3f}",
            f"[{level.color}]{level.emoji} {level.display_name}[/{level.color}]",
            "yes" if tracker.should_advance(record) else "",
        )

    console.print(table)


@app.command()
def flatline(
    latencies: list[int] = typer.Argument(..., help="Response times in ms, oldest first"),
    window: int = typer.Option(20, "--window", "-w", min=1, help="Latencies to inspect"),
    threshold: float = typer.Option(0.15, "--threshold", "-t", help="CoV below which times have flatlined"),
) -> None:
    """Check a latency series for a fluency plateau."""
    try:
        result = check_flatline(latencies, window=window, threshold=threshold)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if result.coefficient_of_variation is None:
        console.print(
            f"[{STYLES['dim']}]Not enough data: {result.sample_size}/{window} latencies[/{STYLES['dim']}]"
        )
        return

    verdict = "[bold green]FLATLINE[/bold green]" if result.is_flatline else "[yellow]still changing[/yellow]"
    console.print(f"CoV {result.coefficient_of_variation:.3f} over {result.sample_size} latencies: {verdict}")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)
    app()


if __name__ == "__main__":
    main()
