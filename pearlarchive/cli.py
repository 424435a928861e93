"""Command-line interface for pearlarchive."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pearlarchive import Archive, ArchiveConfig, __version__
from pearlarchive.core.exporter import save_csv, save_json
from pearlarchive.core.ordering import SessionOrdering, SortMode
from pearlarchive.core.text import clean_text, split_ordinal
from pearlarchive.exceptions import ArchiveError
from pearlarchive.models.principal import Principal, Role
from pearlarchive.models.view import FilterState

app = typer.Typer(
    name="pearlarchive",
    help="Browse and curate the pearl thread archive",
    add_completion=False,
)
admin_app = typer.Typer(help="Admin curation commands (delete, restore, edit)")
app.add_typer(admin_app, name="admin")
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"pearlarchive version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    corpus: Optional[Path] = typer.Option(
        None, "--corpus", "-c", help="Path to threads.json"
    ),
    db: Optional[Path] = typer.Option(
        None, "--db", help="SQLite overlay database path"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """pearlarchive - curated archive of medical-education threads."""
    overrides = {}
    if corpus is not None:
        overrides["corpus_path"] = str(corpus)
    if db is not None:
        overrides["sqlite_path"] = str(db)
    ctx.obj = ArchiveConfig(**overrides)


def _run(config: ArchiveConfig, action):
    """Run an async action against an open archive, reporting archive errors."""

    async def run():
        async with Archive(config) as archive:
            return await action(archive)

    try:
        return asyncio.run(run())
    except ArchiveError as e:
        console.print(f"[red]✗[/red] {type(e).__name__}: {e}")
        raise typer.Exit(1)


@app.command()
def browse(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Text to search for"),
    category: str = typer.Option("All", "--category", help="Category label"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Publication year"),
    pearls: bool = typer.Option(False, "--pearls", help="Only pearl threads"),
    favorites: bool = typer.Option(False, "--favorites", help="Only the user's favorites"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User id for favorites"),
    sort: SortMode = typer.Option(SortMode.CORPUS, "--sort", help="corpus, newest or random"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Shuffle seed for random order"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum threads to print"),
):
    """List threads matching the filters."""
    state = FilterState(
        search_query=search,
        category=category,
        year=year if year is not None else "All",
        pearls_only=pearls,
        favorites_only=favorites,
    )
    principal = Principal(id=user) if user else None
    ordering = SessionOrdering(seed) if sort == SortMode.RANDOM else None

    view = _run(ctx.obj, lambda archive: archive.view(state, principal, sort, ordering))

    table = Table(title=f"{view.stats.filtered_count} of {view.stats.total_threads} threads")
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Tweets", justify="right")
    table.add_column("Categories")
    table.add_column("First tweet")

    for thread in view.threads[:limit]:
        first = clean_text(thread.tweets[0].text) if thread.tweets else ""
        pearl = "[yellow]★[/yellow] " if thread.is_pearl else ""
        table.add_row(
            thread.id,
            thread.date[:10],
            str(thread.tweet_count),
            ", ".join(thread.categories),
            pearl + (first[:60] + "..." if len(first) > 60 else first),
        )

    console.print(table)
    if view.stale:
        console.print("[yellow]Overlay data may be out of date (storage unavailable)[/yellow]")


@app.command()
def show(
    ctx: typer.Context,
    thread_id: str = typer.Argument(..., help="Thread identifier"),
):
    """Print one resolved thread, tweet by tweet."""
    thread = _run(ctx.obj, lambda archive: archive.get_thread(thread_id))
    if thread is None:
        console.print(f"[red]Thread {thread_id} not found or deleted[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]{thread.id}[/bold] [dim]{thread.date}[/dim]")
    if thread.categories:
        console.print(f"  [blue]{', '.join(thread.categories)}[/blue]")

    for tweet in thread.tweets:
        ordinal, body = split_ordinal(tweet.text)
        label = f"{ordinal}/" if ordinal is not None else "•"
        console.print(f"\n[bold]{label}[/bold] [dim](#{tweet.original_index})[/dim] {clean_text(body)}")
        for media in tweet.media:
            kind = "video" if media.is_video else "image"
            console.print(f"    [dim]{kind}: {media.src}[/dim]")


@app.command()
def stats(ctx: typer.Context):
    """Show archive counters and facets."""
    view = _run(ctx.obj, lambda archive: archive.view())

    table = Table(title="Archive", show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Threads", f"{view.stats.total_threads:,}")
    table.add_row("Tweets", f"{view.stats.total_tweets:,}")
    table.add_row("Pearls", f"{view.stats.total_pearls:,}")
    table.add_row("With media", f"{view.stats.total_with_media:,}")
    table.add_row("Years", ", ".join(str(y) for y in view.facets.years) or "-")
    table.add_row("Overlay version", str(view.overlay_version))
    console.print(table)

    counts = Table(title="Categories")
    counts.add_column("Category")
    counts.add_column("Threads", justify="right")
    for label, count in view.facets.category_counts.items():
        counts.add_row(label, str(count))
    console.print(counts)


@app.command()
def overlay(ctx: typer.Context):
    """List deletions and edits currently applied."""

    async def fetch(archive: Archive):
        return (
            await archive.gateway.get_deleted_items(),
            await archive.gateway.get_tweet_edits(),
        )

    deletions, edits = _run(ctx.obj, fetch)

    table = Table(title=f"Deletions ({len(deletions)})")
    table.add_column("Type")
    table.add_column("Thread")
    table.add_column("Tweet #", justify="right")
    table.add_column("By", style="dim")
    for record in deletions:
        index = "-" if record.tweet_index is None else str(record.tweet_index)
        table.add_row(record.item_type.value, record.thread_id, index, record.deleted_by or "-")
    console.print(table)

    table = Table(title=f"Edits ({len(edits)})")
    table.add_column("Thread")
    table.add_column("Tweet #", justify="right")
    table.add_column("Text")
    table.add_column("Hidden media", justify="right")
    for edit in edits:
        text = edit.edited_text if edit.edited_text is not None else "[dim](original)[/dim]"
        table.add_row(edit.thread_id, str(edit.tweet_index), text[:60], str(len(edit.hidden_media or [])))
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="Output file (.json or .csv)"),
    per_thread: bool = typer.Option(
        False, "--per-thread", help="CSV: one row per thread instead of per tweet"
    ),
):
    """Export the resolved corpus."""
    threads = _run(ctx.obj, lambda archive: archive.resolved())

    if output.suffix.lower() == ".csv":
        try:
            path = save_csv(threads, output, tweets=not per_thread)
        except ImportError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
    else:
        path = save_json(threads, output)

    console.print(f"[green]✓[/green] Exported {len(threads)} threads to {path}")


@app.command()
def favorite(
    ctx: typer.Context,
    thread_id: str = typer.Argument(..., help="Thread identifier"),
    user: str = typer.Option(..., "--user", "-u", help="User id"),
):
    """Toggle a thread in a user's favorites."""
    principal = Principal(id=user)
    added = _run(ctx.obj, lambda archive: archive.gateway.toggle_favorite(principal, thread_id))
    state = "added to" if added else "removed from"
    console.print(f"[green]✓[/green] {thread_id} {state} favorites of {user}")


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
):
    """Run the HTTP API."""
    import uvicorn

    from pearlarchive.api import create_app

    uvicorn.run(create_app(ctx.obj), host=host, port=port)


def _admin(actor: str) -> Principal:
    return Principal(id=actor, role=Role.ADMIN)


ACTOR_OPTION = typer.Option("cli-admin", "--as", help="Admin user id recorded in the audit fields")


@admin_app.command("delete-thread")
def delete_thread(
    ctx: typer.Context,
    thread_id: str = typer.Argument(...),
    actor: str = ACTOR_OPTION,
):
    """Hide a whole thread."""
    _run(ctx.obj, lambda archive: archive.gateway.delete_thread(_admin(actor), thread_id))
    console.print(f"[green]✓[/green] Deleted thread {thread_id}")


@admin_app.command("delete-tweet")
def delete_tweet(
    ctx: typer.Context,
    thread_id: str = typer.Argument(...),
    tweet_index: int = typer.Argument(..., help="Original zero-based tweet index"),
    actor: str = ACTOR_OPTION,
):
    """Hide one tweet of a thread."""
    _run(ctx.obj, lambda archive: archive.gateway.delete_tweet(_admin(actor), thread_id, tweet_index))
    console.print(f"[green]✓[/green] Deleted tweet #{tweet_index} of {thread_id}")


@admin_app.command("restore-thread")
def restore_thread(
    ctx: typer.Context,
    thread_id: str = typer.Argument(...),
    actor: str = ACTOR_OPTION,
):
    """Undo a thread deletion."""
    _run(ctx.obj, lambda archive: archive.gateway.restore_thread(_admin(actor), thread_id))
    console.print(f"[green]✓[/green] Restored thread {thread_id}")


@admin_app.command("restore-tweet")
def restore_tweet(
    ctx: typer.Context,
    thread_id: str = typer.Argument(...),
    tweet_index: int = typer.Argument(...),
    actor: str = ACTOR_OPTION,
):
    """Undo a tweet deletion."""
    _run(ctx.obj, lambda archive: archive.gateway.restore_tweet(_admin(actor), thread_id, tweet_index))
    console.print(f"[green]✓[/green] Restored tweet #{tweet_index} of {thread_id}")


@admin_app.command("edit")
def edit(
    ctx: typer.Context,
    thread_id: str = typer.Argument(...),
    tweet_index: int = typer.Argument(...),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Replacement text"),
    hide: Optional[list[str]] = typer.Option(None, "--hide", help="Media path to hide (repeatable)"),
    actor: str = ACTOR_OPTION,
):
    """Replace a tweet's text and/or hide some of its media."""
    _run(
        ctx.obj,
        lambda archive: archive.gateway.save_tweet_edit(
            _admin(actor), thread_id, tweet_index, text, hide or None
        ),
    )
    console.print(f"[green]✓[/green] Saved edit for tweet #{tweet_index} of {thread_id}")


@admin_app.command("unedit")
def unedit(
    ctx: typer.Context,
    thread_id: str = typer.Argument(...),
    tweet_index: int = typer.Argument(...),
    actor: str = ACTOR_OPTION,
):
    """Drop a tweet's edit and show the original again."""
    _run(ctx.obj, lambda archive: archive.gateway.delete_tweet_edit(_admin(actor), thread_id, tweet_index))
    console.print(f"[green]✓[/green] Restored original tweet #{tweet_index} of {thread_id}")


if __name__ == "__main__":
    app()
