"""CLI entrypoints for the practice sheet."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.tree import Tree as RichTree

from practicesheet.config import load_settings
from practicesheet.errors import SheetError
from practicesheet.logging import configure_logging, get_logger
from practicesheet.models.sheet import Difficulty
from practicesheet.progress import sheet_progress, subtopic_progress, topic_progress
from practicesheet.store import TreeStore, build_store

app = typer.Typer(add_completion=False, help="Practice sheet checklist CLI")
logger = get_logger(__name__)
console = Console()


def _store() -> TreeStore:
    settings = load_settings()
    configure_logging(settings.log_level)
    return build_store(settings)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except SheetError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def load(
    url: str | None = typer.Argument(None, help="Sheet source url (defaults to PRACTICESHEET_SHEET_URL)"),
) -> None:
    """Replace the sheet with data fetched from the sheet source."""

    store = _store()
    with _reporting_errors():
        try:
            tree = store.load_from(url)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Loaded {len(tree)} topics")


@app.command()
def show(ids: bool = typer.Option(False, "--ids", help="Print node ids")) -> None:
    """Print the sheet as a tree."""

    store = _store()
    root = RichTree("[bold]Practice sheet[/bold]")
    for topic in store.topics:
        tp = topic_progress(topic)
        label = f"[bold]{topic.title}[/bold] ({tp.solved}/{tp.total})"
        topic_node = root.add(f"{label} [dim]{topic.id}[/dim]" if ids else label)
        for subtopic in topic.sub_topics:
            sp = subtopic_progress(subtopic)
            label = f"{subtopic.title} ({sp.solved}/{sp.total})"
            sub_node = topic_node.add(f"{label} [dim]{subtopic.id}[/dim]" if ids else label)
            for question in subtopic.questions:
                mark = "[green]x[/green]" if question.solved else " "
                label = f"[{mark}] {question.title} [dim]{question.difficulty.value}, {question.platform}[/dim]"
                sub_node.add(f"{label} [dim]{question.id}[/dim]" if ids else label)
    console.print(root)


@app.command()
def progress() -> None:
    """Print solved/total counts per topic."""

    store = _store()
    for topic in store.topics:
        p = topic_progress(topic)
        typer.echo(f"{topic.title}: {p.solved}/{p.total} ({p.percent:.0f}%)")
    total = sheet_progress(store.topics)
    typer.echo(f"Total: {total.solved}/{total.total} ({total.percent:.0f}%)")


@app.command("add-topic")
def add_topic(title: str) -> None:
    """Add a topic with a "General" subtopic."""

    topic = _store().add_topic(title)
    typer.echo(topic.id)


@app.command("rename-topic")
def rename_topic(topic_id: str, title: str) -> None:
    _store().update_topic(topic_id, title)


@app.command("delete-topic")
def delete_topic(topic_id: str) -> None:
    """Delete a topic with everything under it."""

    _store().delete_topic(topic_id)


@app.command("move-topic")
def move_topic(from_index: int, to_index: int) -> None:
    """Move the topic at FROM_INDEX to TO_INDEX (0-based)."""

    store = _store()
    with _reporting_errors():
        store.reorder_topics(from_index, to_index)


@app.command("add-subtopic")
def add_subtopic(topic_id: str, title: str) -> None:
    subtopic = _store().add_subtopic(topic_id, title)
    if subtopic is None:
        typer.echo(f"Error: unknown topic {topic_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(subtopic.id)


@app.command("add-question")
def add_question(
    topic_id: str,
    subtopic_id: str,
    title: str,
    link: str = typer.Option("", "--link", help="Problem url"),
    difficulty: Difficulty = typer.Option(Difficulty.EASY, "--difficulty", case_sensitive=False),
    platform: str = typer.Option("", "--platform"),
) -> None:
    """Add a question to a subtopic."""

    question = _store().add_question(
        topic_id,
        subtopic_id,
        {"title": title, "link": link, "difficulty": difficulty, "platform": platform},
    )
    if question is None:
        typer.echo(f"Error: unknown subtopic {subtopic_id} in topic {topic_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(question.id)


@app.command()
def toggle(topic_id: str, subtopic_id: str, question_id: str) -> None:
    """Flip a question between solved and unsolved."""

    solved = _store().toggle_question_solved(topic_id, subtopic_id, question_id)
    if solved is None:
        typer.echo(f"Error: unknown question {question_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo("solved" if solved else "unsolved")


@app.command("delete-question")
def delete_question(topic_id: str, subtopic_id: str, question_id: str) -> None:
    _store().delete_question(topic_id, subtopic_id, question_id)


if __name__ == "__main__":
    app()
