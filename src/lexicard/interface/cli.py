"""lexicard CLI: study data from the terminal and the API server launcher."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, TypeVar

import typer
import pydantic

from lexicard.application.config import AppConfig, resolve_config
from lexicard.domain.errors import LexicardError
from lexicard.domain.ports import VocabularyRepository

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexicard: vocabulary flashcards with spaced review and study statistics.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Inspect lexicard configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    db: Annotated[
        Path | None, typer.Option("--db", help="SQLite database file. Defaults to config.")
    ] = None,
    backend: Annotated[
        str | None, typer.Option(help="Storage backend: sqlite or memory.")
    ] = None,
):
    """Global settings for lexicard."""
    logging.getLogger().setLevel(_LOG_LEVELS.get(verbose, logging.DEBUG))
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"database_path": db, "backend": backend}


def _config(ctx: typer.Context) -> AppConfig:
    overrides = (ctx.obj or {}).get("overrides", {})
    try:
        return resolve_config(overrides)
    except pydantic.ValidationError as e:
        typer.secho("Error: invalid configuration", fg="red", err=True)
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"]) or "config"
            typer.secho(f"  - {field}: {err['msg']}", fg="red", err=True)
        raise typer.Exit(1) from e


def _run(ctx: typer.Context, action: Callable[[VocabularyRepository], Awaitable[T]]) -> T:
    """Run an async action against a freshly opened repository."""
    from lexicard.application.factory import get_repository

    repo = get_repository(_config(ctx))
    try:
        return asyncio.run(action(repo))
    except LexicardError as e:
        typer.secho(f"Error: {e.message}", fg="red", err=True)
        for detail in getattr(e, "errors", []):
            typer.secho(f"  - {detail}", fg="red", err=True)
        raise typer.Exit(1) from e
    finally:
        repo.close()


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Interface to bind.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes.")] = False,
):
    """[bold green]Serve[/bold green] the HTTP API."""
    import uvicorn

    config = _config(ctx)
    uvicorn.run(
        "lexicard.server:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
    )


@app.command("import")
def import_words(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Word list file.")],
    book: Annotated[str, typer.Option("--book", "-b", help="Target book id.")],
    fmt: Annotated[
        str | None,
        typer.Option(
            "--format", help="Input format: csv, text or yaml. Detected from the suffix if omitted."
        ),
    ] = None,
):
    """Import a word list into a book.

    Nothing is stored if any row is malformed.
    """
    from lexicard.application.importer import load_word_file
    from lexicard.application.library_service import LibraryService
    from lexicard.application.utils.dates import utc_now

    async def run(repo: VocabularyRepository):
        drafts = load_word_file(file, fmt)
        return await LibraryService(repo).import_words(book, drafts, utc_now())

    words = _run(ctx, run)
    typer.secho(f"Imported {len(words)} words into {book}.", fg="green")


@app.command()
def due(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="User id.")],
):
    """List words that are due for review."""
    from lexicard.application.library_service import LibraryService
    from lexicard.application.utils.dates import utc_now

    async def run(repo: VocabularyRepository):
        return await LibraryService(repo).words_due(user, utc_now())

    words = _run(ctx, run)
    if not words:
        typer.secho("Nothing due.", fg="green")
        return

    typer.echo(f"Due words: {len(words)}")
    for word in words:
        typer.echo(
            f"  {word.word:<24} familiarity={word.familiarity}  "
            f"due={word.next_review_at:%Y-%m-%d %H:%M}"
        )


@app.command()
def stats(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="User id.")],
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON.")] = False,
):
    """Show overall study statistics."""
    from lexicard.application.stats import StatisticsService

    async def run(repo: VocabularyRepository):
        return await StatisticsService(repo).overall(user)

    overall = _run(ctx, run)
    if as_json:
        typer.echo(json.dumps(asdict(overall), indent=2))
        return

    typer.echo(f"Words: {overall.total_words} ({overall.known_words} known)")
    typer.echo(f"Mastery: {overall.mastery_rate}%")
    typer.echo(f"Study days: {overall.study_days}")
    typer.echo(f"Streak: {overall.current_streak} (longest {overall.longest_streak})")
    typer.echo(f"Words per day: {overall.average_words_per_day}")
    typer.echo(f"Study time: {overall.total_study_time // 60000} min")


@app.command()
def sessions(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="User id.")],
    limit: Annotated[int, typer.Option(min=1, help="Page size.")] = 10,
    skip: Annotated[int, typer.Option(min=0, help="Sessions to skip.")] = 0,
):
    """List study sessions, newest first."""
    from lexicard.application.study_service import StudyService

    async def run(repo: VocabularyRepository):
        return await StudyService(repo).user_sessions(user, limit=limit, skip=skip)

    page = _run(ctx, run)
    typer.echo(f"Sessions: {page.total} (page {skip // limit + 1}/{max(page.total_pages, 1)})")
    for s in page.sessions:
        state = "open" if s.end_time is None else f"{s.duration // 1000}s"
        typer.echo(
            f"  {s.start_time:%Y-%m-%d %H:%M}  {s.id}  book={s.book_id}  "
            f"{s.known_words}/{s.total_words} known  [{state}]"
        )


@app.command("new-book")
def new_book(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Owner user id.")],
    name: Annotated[str, typer.Argument(help="Book name.")],
    description: Annotated[str | None, typer.Option(help="Optional description.")] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag; repeatable.")] = None,
):
    """Create an empty vocabulary book and print its id."""
    from lexicard.application.library_service import LibraryService
    from lexicard.application.utils.dates import utc_now

    async def run(repo: VocabularyRepository):
        return await LibraryService(repo).create_book(
            user, name, utc_now(), description=description, tags=tag
        )

    book = _run(ctx, run)
    typer.echo(book.id)


@app.command()
def books(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="User id.")],
):
    """List a user's vocabulary books."""
    from lexicard.application.library_service import LibraryService

    async def run(repo: VocabularyRepository):
        return await LibraryService(repo).list_books(user)

    found = _run(ctx, run)
    if not found:
        typer.secho("No books found.", fg="yellow")
        return

    for book in found:
        typer.echo(
            f"  {book.id}  {book.name}  "
            f"{book.known_words}/{book.total_words} known"
        )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()
