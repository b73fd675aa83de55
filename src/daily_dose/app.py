"""Interactive console application."""
from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from daily_dose.config import get_settings
from daily_dose.db import init_db
from daily_dose.errors import DailyDoseError
from daily_dose.log import configure_logging
from daily_dose.models import CardResult, ThemeRAG
from daily_dose.pathway import get_theme_overview
from daily_dose.questions import block_text
from daily_dose.seed import is_seeded, seed_sample
from daily_dose.sessions import complete_session, get_history, start_session

console = Console()

EXIT_WORDS = {"q", "quit", "menu"}

RAG_COLORS = {
    ThemeRAG.GREEN: "green",
    ThemeRAG.AMBER: "yellow",
    ThemeRAG.RED: "red",
    ThemeRAG.NOT_STARTED: "dim",
}


class SessionExitRequested(Exception):
    """Raised when the user types q/menu in the middle of a session."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]Daily Dose[/bold]\n[dim]Five minutes of practice learning a day[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("session", "Today's Daily Dose"),
        ("pathway", "Learning pathway progress"),
        ("history", "Streak, XP and review queue"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_card(card, index: int, total: int) -> None:
    texts = [t for t in (block_text(b) for b in card.content_blocks) if t]
    console.print(Panel("\n\n".join(texts) or "[dim]No reading for this card.[/dim]",
                        title=f"Card {index}/{total}: {card.title}", border_style="cyan"))


def run_warmup(recall_cards: list) -> None:
    if not recall_cards:
        return
    console.print("\n[bold]Warm-up[/bold] - do you remember these?\n")
    for card in recall_cards:
        console.print(f"  [magenta]*[/magenta] {card.title}")
    session_prompt("[dim]Press Enter to start today's cards[/dim]", default="")


def run_quiz(questions: list) -> list[CardResult]:
    """Ask every question and tally results per card, in the order cards first appear."""
    results: dict[str, CardResult] = {}
    if not questions:
        console.print("[yellow]No quiz questions for this session.[/yellow]")
        return []
    console.print(f"\n[bold]Quiz[/bold] - {len(questions)} questions\n")
    for q in questions:
        console.print(f"[bold]Q{q.order}.[/bold] {q.prompt}\n")
        choices = [str(i) for i in range(1, len(q.options) + 1)]
        for i, option in enumerate(q.options, 1):
            console.print(f"  [cyan]{i})[/cyan] {option}")
        picked = session_prompt("\nYour answer", choices=choices)
        is_correct = q.options[int(picked) - 1].strip().lower() == q.correct_answer.strip().lower()

        result = results.setdefault(q.card_id, CardResult(card_id=q.card_id, correct_count=0, question_count=0))
        result.question_count += 1
        result.question_ids.append(q.question_id)
        if is_correct:
            result.correct_count += 1
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{q.correct_answer}[/green]")
        if q.rationale:
            console.print(f"[dim]{q.rationale}[/dim]")
        console.print()
    return list(results.values())


def cmd_session(settings) -> None:
    now = datetime.now()
    started = start_session(
        settings.db_path, settings.user_id, settings.context_id, settings.role, now,
        topic_ids=settings.focus_topic_ids or None,
    )
    session = started["session"]
    if started["resumed"]:
        console.print("[dim]Picking up where you left off.[/dim]")

    run_warmup(started["recall_cards"])
    cards = started["cards"]
    for i, card in enumerate(cards, 1):
        show_card(card, i, len(cards))
        session_prompt("[dim]Press Enter for the next card[/dim]", default="")

    results = run_quiz(started["quiz"])
    if not results:
        return
    summary = complete_session(
        settings.db_path, session.id, settings.user_id, settings.context_id, results, datetime.now(),
    )
    correct, total = summary["correct_count"], summary["questions_attempted"]
    console.print(f"[bold]Score: {correct}/{total}[/bold]  [green]+{summary['xp_earned']} XP[/green]\n")


def cmd_pathway(settings) -> None:
    themes = get_theme_overview(settings.db_path, settings.user_id, settings.context_id)
    if not themes:
        console.print("[yellow]No pathway themes yet.[/yellow]")
        return
    table = Table(title="Learning Pathway")
    table.add_column("Theme", style="cyan")
    table.add_column("Status")
    table.add_column("Secure", justify="right")
    table.add_column("Next unit")
    for theme in themes:
        color = RAG_COLORS[theme["rag"]]
        table.add_row(
            theme["name"],
            f"[{color}]{theme['rag'].value.replace('_', ' ').upper()}[/{color}]",
            f"{theme['secure_unit_count']}/{theme['unit_count']} ({theme['secure_percentage']}%)",
            theme["recommended_unit_id"] or "-",
        )
    console.print(table)


def cmd_history(settings) -> None:
    history = get_history(
        settings.db_path, settings.user_id, settings.context_id, datetime.now(),
        weekday_only=settings.weekday_only_streak,
    )
    streak_unit = "weekdays" if history["weekday_only"] else "days"
    console.print(f"\n  Streak: [bold]{history['streak']}[/bold] {streak_unit}  |  "
                  f"Sessions: [bold]{history['completed_sessions']}[/bold]  |  "
                  f"XP: [bold]{history['total_xp']}[/bold]\n")

    queue = history["review_queue"]
    if not queue:
        console.print("[green]Nothing due for review.[/green]")
        return
    table = Table(title="Review Queue")
    table.add_column("Card")
    table.add_column("Topic")
    table.add_column("Box", justify="right")
    table.add_column("Due")
    for item in queue:
        table.add_row(item["title"], item["topic_name"] or "", str(item["box"]), item["due_at"].strftime("%d %b"))
    console.print(table)


def main():
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)
    init_db(settings.db_path)
    first_run = not is_seeded(settings.db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_sample(settings.db_path)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="session").strip().lower()
        try:
            if choice == "session":
                cmd_session(settings)
            elif choice == "pathway":
                cmd_pathway(settings)
            elif choice == "history":
                cmd_history(settings)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you tomorrow![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Session paused. Start again within a few hours to resume it.[/dim]")
        except DailyDoseError as e:
            console.print(f"[yellow]{e}[/yellow]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")


if __name__ == "__main__":
    main()
