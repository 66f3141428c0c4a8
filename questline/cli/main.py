"""
Typer CLI for the questline progression engine.

Commands:
    questline start TOPIC [--tier T] [--language L]   - Issue a quest
    questline hint                                    - Buy a hint for the active quest
    questline submit --code-quality N ...             - Submit rubric scores for the active quest
    questline abandon                                 - Give up the active quest
    questline profile                                 - Show level, XP and languages
    questline achievements                            - List unlocked achievements
    questline history [--topic T]                     - Show resolved quests
    questline learners                                - List stored learner ids

Usage:
    questline --learner ada start python --tier apprentice
    questline --learner ada submit --code-quality 20 --problem-solving 25 \\
        --concepts 15 --best-practices 10 --creativity 5 --pattern strategy
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from questline.config import get_settings
from questline.core.errors import ProgressionError
from questline.core.models import SubScores
from questline.core.tiers import DifficultyTier
from questline.engine.service import ProgressionService
from questline.logging_config import configure_logging

app = typer.Typer(
    help="Questline: gamified quest progression for coding learners",
    no_args_is_help=True,
)
console = Console()


class _State:
    learner_id: str = "default"
    service: ProgressionService | None = None


state = _State()


def _service() -> ProgressionService:
    if state.service is None:
        state.service = ProgressionService()
    return state.service


def _fail(error: Exception) -> None:
    console.print(f"[red]✗ {escape(str(error))}[/red]")
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    learner: str = typer.Option(
        "default", "--learner", "-l", envvar="QUESTLINE_LEARNER", help="Learner identifier"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
):
    """Configure logging and select the learner."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)
    state.learner_id = learner


@app.command()
def start(
    topic: str = typer.Argument(..., help="Quest topic, e.g. 'python' or 'recursion'"),
    tier: DifficultyTier | None = typer.Option(None, "--tier", "-t", help="Override the recommended tier"),
    language: str | None = typer.Option(None, "--language", help="Language tag (defaults to topic)"),
    expected: int | None = typer.Option(None, "--expected", min=1, help="Expected duration in seconds"),
):
    """Start a new quest."""
    try:
        quest = _service().session(state.learner_id).start_quest(
            topic, tier, language=language, expected_duration_seconds=expected
        )
    except ProgressionError as e:
        _fail(e)
        return

    console.print(
        f"[bold cyan]⚔ Quest {quest.id}[/bold cyan] "
        f"[dim]|[/dim] topic [bold]{quest.topic}[/bold] "
        f"[dim]|[/dim] tier [yellow]{quest.difficulty_tier.display_name}[/yellow] "
        f"(x{quest.difficulty_tier.multiplier:g} XP)"
    )


@app.command()
def hint():
    """Request a hint for the active quest (costs XP)."""
    try:
        payload = _service().session(state.learner_id).request_hint()
    except ProgressionError as e:
        _fail(e)
        return

    console.print(
        f"[yellow]💡 Hint #{payload.hint_number}[/yellow] for quest {payload.quest_id}: "
        f"-{payload.xp_cost} XP (total {payload.total_xp})"
    )


@app.command()
def submit(
    code_quality: int = typer.Option(..., "--code-quality", help="0-25"),
    problem_solving: int = typer.Option(..., "--problem-solving", help="0-30"),
    concepts: int = typer.Option(..., "--concepts", help="Concept understanding, 0-20"),
    best_practices: int = typer.Option(..., "--best-practices", help="0-15"),
    creativity: int = typer.Option(..., "--creativity", help="0-10"),
    pattern: list[str] = typer.Option([], "--pattern", "-p", help="Design pattern tag (repeatable)"),
):
    """Submit rubric scores for the active quest."""
    sub_scores = SubScores(
        code_quality=code_quality,
        problem_solving=problem_solving,
        concept_understanding=concepts,
        best_practices=best_practices,
        creativity=creativity,
    )
    try:
        result = _service().session(state.learner_id).submit_solution(sub_scores, pattern)
    except ProgressionError as e:
        _fail(e)
        return

    console.print(f"[green]✓ Quest {result.quest_id} solved: +{result.awarded_xp} XP[/green]")
    if result.leveled_up:
        console.print(f"[bold magenta]▲ Level up! Now level {result.new_level}[/bold magenta]")
    for unlock in result.unlocked_achievements:
        console.print(f"  {unlock.icon} [bold]{unlock.name}[/bold] - {unlock.description}")
    console.print(
        f"[dim]Total XP {result.total_xp} | {result.language}: {result.language_level.value} | "
        f"next tier: {result.next_recommended_tier.value}[/dim]"
    )


@app.command()
def abandon():
    """Abandon the active quest (small XP penalty)."""
    try:
        result = _service().session(state.learner_id).abandon_quest()
    except ProgressionError as e:
        _fail(e)
        return

    console.print(
        f"[yellow]Quest {result.quest_id} abandoned: -{result.penalty_xp} XP "
        f"(total {result.total_xp}); next tier: {result.next_recommended_tier.value}[/yellow]"
    )


@app.command()
def profile():
    """Show the learner's progression."""
    try:
        learner = _service().get_profile(state.learner_id)
    except ProgressionError as e:
        _fail(e)
        return

    curve = _service().scoring.curve
    next_xp = curve.xp_for_level(learner.level + 1)
    console.print(f"[bold]{learner.learner_id}[/bold] - level {learner.level}, {learner.total_xp} XP")
    if next_xp is not None:
        console.print(f"[dim]{max(0, next_xp - learner.total_xp)} XP to level {learner.level + 1}[/dim]")
    if learner.active_quest:
        quest = learner.active_quest
        console.print(
            f"Active quest: {quest.id} ({quest.topic}, {quest.difficulty_tier.value}, "
            f"{quest.hints_used} hints)"
        )

    table = Table(title="Languages")
    table.add_column("Language", style="cyan")
    table.add_column("Rank")
    table.add_column("XP", justify="right")
    table.add_column("Last activity", style="dim")
    for name, progress in sorted(learner.per_language.items()):
        table.add_row(name, progress.level.value, str(progress.xp), progress.last_activity.strftime("%Y-%m-%d %H:%M"))
    console.print(table)


@app.command()
def achievements():
    """List unlocked achievements."""
    try:
        unlocked = _service().get_achievements(state.learner_id)
    except ProgressionError as e:
        _fail(e)
        return

    if not unlocked:
        console.print("[dim]No achievements yet.[/dim]")
        return
    for unlock in unlocked:
        console.print(f"{unlock.icon} [bold]{unlock.name}[/bold] - {unlock.description}")


@app.command()
def history(
    topic: str | None = typer.Option(None, "--topic", help="Only show this topic"),
):
    """Show resolved quests, oldest first."""
    try:
        outcomes = _service().get_history(state.learner_id, topic)
    except ProgressionError as e:
        _fail(e)
        return

    table = Table(title=f"History ({len(outcomes)} quests)")
    table.add_column("When", style="dim")
    table.add_column("Topic", style="cyan")
    table.add_column("Tier")
    table.add_column("Outcome")
    table.add_column("Hints", justify="right")
    table.add_column("XP", justify="right")
    for entry in outcomes:
        xp = f"+{entry.awarded_xp}" if entry.solved else f"-{entry.penalty_xp}"
        outcome = "[green]solved[/green]" if entry.solved else "[red]abandoned[/red]"
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            entry.topic,
            entry.difficulty_tier.value,
            outcome,
            str(entry.hints_used),
            xp,
        )
    console.print(table)


@app.command()
def learners():
    """List stored learner ids."""
    try:
        ids = _service().list_learners()
    except ProgressionError as e:
        _fail(e)
        return

    for learner_id in ids:
        console.print(learner_id)


def run() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    run()
