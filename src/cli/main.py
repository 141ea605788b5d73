"""
Typer CLI for the quizpath adaptive assessment engine.

Commands:
    quizpath db init              - Initialize database tables
    quizpath db import-bank FILE  - Import a JSON question bank into the database
    quizpath plan FILE            - Plan a multi-topic session from a question bank
    quizpath simulate FILE        - Run an adaptive session against a simulated student
    quizpath capacity FILE        - Show available questions and a suggested length
    quizpath version              - Show version information

Usage:
    quizpath --help
    quizpath plan bank.json -s Math:Algebra -s Math:Geometry:Triangles,Circles --total 30
    quizpath simulate bank.json --focus improve --questions 15 --skill 0.6 --seed 7
"""

from __future__ import annotations

import random
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import get_settings
from src.assessment.capacity import available_questions, suggest_question_count
from src.assessment.engine import AdaptiveEngine
from src.assessment.errors import AssessmentError, ScopeEmptyError
from src.assessment.models import Exhausted, FocusArea, Response, Tier
from src.assessment.providers import InMemoryQuestionBank, InMemoryResponseHistory, QuestionScope
from src.content.loader import QuestionBankLoader
from src.quiz.schemas import TopicSelectionRequest

app = typer.Typer(
    help="quizpath: adaptive question selection and multi-topic quiz planning",
    no_args_is_help=True,
)
console = Console()

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"


def configure_logging(verbose: bool = False) -> None:
    """Route loguru to stderr (and the optional rotating log file)."""
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else settings.log_level, format=LOG_FORMAT)
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB", retention=5)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show decision traces"),
) -> None:
    configure_logging(verbose)


def _load_bank(bank_file: Path, seed: int | None) -> tuple[InMemoryQuestionBank, random.Random]:
    rng = random.Random(seed)
    loader = QuestionBankLoader(bank_file)
    return InMemoryQuestionBank(loader.questions(), rng=rng), rng


def _fail(message: str) -> NoReturn:
    rprint(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)


# ========================================
# DATABASE COMMANDS
# ========================================

db_app = typer.Typer(help="Database management (init, import)")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    from src.db.database import init_db

    logger.info("Initializing database tables...")
    init_db()
    rprint("[green]✓[/green] Database initialized!")


@db_app.command("import-bank")
def db_import_bank(
    bank_file: Path = typer.Argument(..., help="JSON question bank"),
) -> None:
    """Import every question of a JSON bank into the questions table."""
    from src.db.database import init_db, session_scope
    from src.db.repository import SqlQuestionBank

    try:
        rows = QuestionBankLoader(bank_file).rows()
    except (AssessmentError, FileNotFoundError) as exc:
        _fail(str(exc))

    init_db()
    with session_scope() as session:
        count = SqlQuestionBank(session).add_questions(rows)
    rprint(f"[green]✓[/green] Imported {count} questions from {bank_file.name}")


# ========================================
# PLANNING COMMANDS
# ========================================


@app.command("plan")
def plan(
    bank_file: Path = typer.Argument(..., help="JSON question bank"),
    select: List[str] = typer.Option(
        ..., "--select", "-s", help="SUBJECT:TOPIC or SUBJECT:TOPIC:SUB1,SUB2 (repeatable)"
    ),
    total: Optional[int] = typer.Option(None, "--total", "-n", help="Total questions (default: suggested)"),
    focus: Optional[str] = typer.Option(None, "--focus", "-f", help="strengthen | improve | balanced"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    show_questions: bool = typer.Option(False, "--show-questions", help="List the planned sequence"),
) -> None:
    """Plan a multi-topic session: per-topic quotas, difficulty mix and shortfalls."""
    settings = get_settings()
    try:
        bank, rng = _load_bank(bank_file, seed if seed is not None else settings.random_seed)
        selections = [TopicSelectionRequest.parse(raw).to_selection() for raw in select]
        focus_area = FocusArea.parse(focus or settings.default_focus_area)
        if total is None:
            available = available_questions(bank, selections, settings.max_topic_selections)
            if sum(a.total for a in available) == 0:
                raise ScopeEmptyError("; ".join(s.label for s in selections))
            total = suggest_question_count(
                available, settings.min_questions_per_topic, settings.max_total_questions
            ).recommended
        engine = AdaptiveEngine(rng=rng)
        result = engine.plan_distribution(
            bank, selections, total, focus_area, oversample_factor=settings.oversample_factor
        )
    except (AssessmentError, FileNotFoundError) as exc:
        _fail(str(exc))

    table = Table(title=f"Plan: {len(result)}/{result.requested_total} questions ({focus_area.value})")
    table.add_column("Selection", style="cyan")
    table.add_column("Quota", justify="right")
    for tier in Tier.ordered():
        table.add_column(tier.value.capitalize(), justify="right")
    table.add_column("Planned", justify="right", style="green")

    for index, selection in enumerate(selections):
        planned = [e for e in result.entries if e.selection_index == index]
        per_tier = {tier: sum(1 for e in planned if e.tier == tier) for tier in Tier.ordered()}
        table.add_row(
            selection.label,
            str(result.sub_quotas[index]),
            *[str(per_tier[tier]) for tier in Tier.ordered()],
            str(len(planned)),
        )
    console.print(table)

    if result.shortfalls:
        shortfalls = Table(title="Question bank shortfalls")
        shortfalls.add_column("Topic", style="yellow")
        shortfalls.add_column("Difficulty")
        shortfalls.add_column("Requested", justify="right")
        shortfalls.add_column("Available", justify="right")
        for record in result.shortfalls:
            shortfalls.add_row(
                f"{record.subject} / {record.topic}" + (f" ({record.subtopic})" if record.subtopic else ""),
                record.difficulty.value if record.difficulty else "-",
                str(record.requested),
                str(record.available),
            )
        console.print(shortfalls)

    if show_questions:
        for position, entry in enumerate(result.entries, start=1):
            rprint(
                f"  {position:>3}. [dim]#{entry.question.id}[/dim] "
                f"{escape(entry.question.topic)} ({entry.tier.value}) {escape(entry.question.question_text)}"
            )


@app.command("capacity")
def capacity(
    bank_file: Path = typer.Argument(..., help="JSON question bank"),
    select: List[str] = typer.Option(..., "--select", "-s", help="SUBJECT:TOPIC[:SUB,SUB] (repeatable)"),
) -> None:
    """Show available questions per selection and tier, plus a suggested session length."""
    settings = get_settings()
    try:
        bank, _ = _load_bank(bank_file, None)
        selections = [TopicSelectionRequest.parse(raw).to_selection() for raw in select]
        available = available_questions(bank, selections, settings.max_topic_selections)
    except (AssessmentError, FileNotFoundError) as exc:
        _fail(str(exc))

    table = Table(title="Available questions")
    table.add_column("Selection", style="cyan")
    for tier in Tier.ordered():
        table.add_column(tier.value.capitalize(), justify="right")
    table.add_column("Total", justify="right", style="green")
    for item in available:
        table.add_row(
            item.selection.label,
            *[str(item.by_tier[tier]) for tier in Tier.ordered()],
            str(item.total),
        )
    console.print(table)

    suggestion = suggest_question_count(
        available, settings.min_questions_per_topic, settings.max_total_questions
    )
    rprint(
        f"\n[bold]Suggested:[/bold] {suggestion.recommended} questions "
        f"(min {suggestion.minimum}, max {suggestion.maximum}, ~{suggestion.estimated_minutes} min)"
    )
    rprint(f"[dim]{suggestion.reasoning}[/dim]")


# ========================================
# SIMULATION
# ========================================


def _answer_probability(skill: float, tier: Tier) -> float:
    offset = {Tier.EASY: 0.15, Tier.MEDIUM: 0.0, Tier.HARD: -0.15}[tier]
    return min(max(skill + offset, 0.0), 1.0)


@app.command("simulate")
def simulate(
    bank_file: Path = typer.Argument(..., help="JSON question bank"),
    focus: Optional[str] = typer.Option(None, "--focus", "-f", help="strengthen | improve | balanced"),
    questions: Optional[int] = typer.Option(None, "--questions", "-n", help="Session length"),
    skill: float = typer.Option(0.7, "--skill", min=0.0, max=1.0, help="Simulated student's base accuracy"),
    subject: Optional[str] = typer.Option(None, "--subject", help="Restrict to one subject"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Restrict to one topic"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
) -> None:
    """Run an adaptive session against a simulated student and show each decision."""
    settings = get_settings()
    try:
        bank, rng = _load_bank(bank_file, seed if seed is not None else settings.random_seed)
        focus_area = FocusArea.parse(focus or settings.default_focus_area)
    except (AssessmentError, FileNotFoundError) as exc:
        _fail(str(exc))

    pool = bank.fetch_question_pool(QuestionScope(subject=subject, topic=topic))
    if not pool:
        _fail(f"No questions available for scope: {QuestionScope(subject, topic)}")

    length = min(questions or settings.default_question_count, len(pool))
    engine = AdaptiveEngine(rng=rng)
    history_store = InMemoryResponseHistory()
    session_id = 1

    table = Table(title=f"Simulated session ({focus_area.value}, skill {skill:.0%})")
    table.add_column("#", justify="right")
    table.add_column("Question", style="dim")
    table.add_column("Topic", style="cyan")
    table.add_column("Tier")
    table.add_column("Rule")
    table.add_column("Fallback")
    table.add_column("Result")

    for index in range(length):
        history = history_store.fetch_response_history(session_id)
        decision = engine.decide_next(history, pool, focus_area, primary_topic=topic)
        if isinstance(decision, Exhausted):
            rprint(f"[yellow]⚠[/yellow] Pool exhausted after {decision.answered_count} questions")
            break

        question = decision.question
        correct = rng.random() < _answer_probability(skill, question.tier)
        history_store.record(
            session_id,
            Response(
                question_id=question.id,
                is_correct=correct,
                time_taken_seconds=round(rng.uniform(20, 90), 1),
                sequence_index=index,
            ),
        )
        table.add_row(
            str(index + 1),
            f"#{question.id}",
            decision.topic,
            question.tier.value,
            decision.difficulty_rule,
            decision.fallback_level,
            "[green]✓[/green]" if correct else "[red]✗[/red]",
        )
    console.print(table)

    final = engine.metrics.calculate(history_store.fetch_response_history(session_id), pool)
    rprint(
        f"\n[bold]Answered:[/bold] {final.questions_answered}  "
        f"[bold]Correct:[/bold] {final.correct_answers}  "
        f"[bold]Accuracy:[/bold] {final.overall_accuracy:.0%}  "
        f"[bold]Mastery:[/bold] {final.mastery_score}"
    )


@app.command("version")
def show_version() -> None:
    """Show version information."""
    rprint("[bold]quizpath[/bold] v0.1.0")
    rprint("  Adaptive question selection and multi-topic planning")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
