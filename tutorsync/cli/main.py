"""
tutor-sync command line interface.

Commands:
- tutorsync tutorials list      : List tutorials grouped by level
- tutorsync tutorials show ID   : Show the sections of one tutorial
- tutorsync progress show       : Show local and server progress
- tutorsync progress complete   : Mark a section complete and sync it
- tutorsync progress current    : Move the last-viewed pointer (local only)
- tutorsync run FILE            : Run a Go file on the server sandbox
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import Settings, get_settings
from tutorsync.api.client import ExecutionApiClient, ProgressApiClient, TutorialApiClient
from tutorsync.content.cache import TutorialCache
from tutorsync.content.loader import TutorialLoader
from tutorsync.execution.runner import CodeRunner
from tutorsync.progress.store import ProgressStore
from tutorsync.storage.local_storage import SQLiteStorage

console = Console()

app = typer.Typer(
    name="tutorsync",
    help="Tutorial progress client with offline-first sync",
    no_args_is_help=True,
)

tutorials_app = typer.Typer(name="tutorials", help="Browse tutorial content", no_args_is_help=True)
progress_app = typer.Typer(name="progress", help="Track and sync progress", no_args_is_help=True)

app.add_typer(tutorials_app)
app.add_typer(progress_app)


def _configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="5 MB", retention=3)


def _build_store(settings: Settings, api: ProgressApiClient, storage: SQLiteStorage) -> ProgressStore:
    return ProgressStore(
        api,
        storage,
        storage_key=settings.storage_key,
        retry_options=settings.get_retry_options(),
    )


# ============================================================================
# TUTORIAL COMMANDS
# ============================================================================


@tutorials_app.command("list")
def tutorials_list(
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Ignore the cached listing"),
):
    """List tutorials grouped by level."""
    settings = get_settings()

    async def run() -> TutorialLoader:
        async with TutorialApiClient(settings.get_api_config()) as api:
            loader = TutorialLoader(
                api,
                TutorialCache(ttl_seconds=settings.cache_ttl_seconds),
                settings.get_retry_options(),
            )
            await loader.load_tutorials(force_refresh=refresh)
            return loader

    loader = asyncio.run(run())
    if loader.error and not loader.tutorials:
        console.print(Panel(f"[bold red]{loader.error}[/bold red]", title="Error"))
        raise typer.Exit(1)

    table = Table(title="Tutorials")
    table.add_column("Level")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Sections", justify="right")
    table.add_column("Duration")

    for level, items in loader.tutorials_by_level().items():
        for item in items:
            table.add_row(level, item.id, item.title, str(item.section_count), item.duration)

    console.print(table)


@tutorials_app.command("show")
def tutorials_show(tutorial_id: str = typer.Argument(..., help="Tutorial id")):
    """Show the sections of one tutorial."""
    settings = get_settings()

    async def run():
        async with TutorialApiClient(settings.get_api_config()) as api:
            loader = TutorialLoader(api, retry_options=settings.get_retry_options())
            tutorial = await loader.load_tutorial(tutorial_id)
            return tutorial, loader.error

    tutorial, error = asyncio.run(run())
    if tutorial is None:
        console.print(Panel(f"[bold red]{error}[/bold red]", title="Error"))
        raise typer.Exit(1)

    table = Table(title=f"{tutorial.title} ({tutorial.level or 'Beginner'})")
    table.add_column("#", justify="right")
    table.add_column("Section", style="cyan")
    table.add_column("Title")
    for section in sorted(tutorial.sections, key=lambda s: s.order):
        table.add_row(str(section.order), section.id, section.title)
    console.print(table)


# ============================================================================
# PROGRESS COMMANDS
# ============================================================================


@progress_app.command("show")
def progress_show(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User id"),
    tutorial: Optional[str] = typer.Option(None, "--tutorial", "-t", help="Summarize one tutorial"),
    total: int = typer.Option(0, "--total", "-n", help="Section count for --tutorial"),
    offline: bool = typer.Option(False, "--offline", help="Only read local storage"),
):
    """Show progress, preferring the server and falling back to local storage."""
    settings = get_settings()
    user_id = user or settings.default_user_id

    async def run() -> ProgressStore:
        async with ProgressApiClient(settings.get_api_config()) as api:
            with SQLiteStorage(settings.storage_path) as storage:
                store = _build_store(settings, api, storage)
                store.load_from_local_storage()
                if not offline:
                    await store.load_progress(user_id)
                return store

    store = asyncio.run(run())
    if store.error:
        console.print(f"[yellow]{store.error} (showing local copy)[/yellow]")
    if store.progress is None:
        console.print("[dim]No progress recorded yet.[/dim]")
        return

    if tutorial:
        summary = store.get_tutorial_progress(tutorial, total)
        console.print(
            f"{tutorial}: {summary.completed_count}/{summary.total_sections} "
            f"({summary.progress_percent:.0f}%)"
        )
        return

    table = Table(title=f"Progress for {store.progress.user_id}")
    table.add_column("Tutorial", style="cyan")
    table.add_column("Completed sections")
    for tutorial_id, sections in sorted(store.progress.completed_sections.items()):
        table.add_row(tutorial_id, ", ".join(sections))
    console.print(table)
    if store.progress.current_tutorial:
        console.print(
            f"Last viewed: {store.progress.current_tutorial}/{store.progress.current_section}"
        )


@progress_app.command("complete")
def progress_complete(
    tutorial_id: str = typer.Argument(..., help="Tutorial id"),
    section_id: str = typer.Argument(..., help="Section id"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User id"),
):
    """Mark a section complete locally, then wait for the server sync."""
    settings = get_settings()
    user_id = user or settings.default_user_id

    async def run() -> ProgressStore:
        async with ProgressApiClient(settings.get_api_config()) as api:
            with SQLiteStorage(settings.storage_path) as storage:
                store = _build_store(settings, api, storage)
                store.load_from_local_storage()
                await store.mark_section_complete(tutorial_id, section_id, user_id)
                await store.drain()
                return store

    store = asyncio.run(run())
    console.print(f"[green]Marked {tutorial_id}/{section_id} complete[/green]")
    if store.error:
        console.print(f"[yellow]Saved locally; server sync failed: {store.error}[/yellow]")


@progress_app.command("current")
def progress_current(
    tutorial_id: str = typer.Argument(..., help="Tutorial id"),
    section_id: str = typer.Argument(..., help="Section id"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User id"),
):
    """Set the last-viewed section. Local only."""
    settings = get_settings()
    with SQLiteStorage(settings.storage_path) as storage:
        store = _build_store(settings, ProgressApiClient(settings.get_api_config()), storage)
        store.load_from_local_storage()
        store.set_current_section(tutorial_id, section_id, user or settings.default_user_id)
    console.print(f"Current section: {tutorial_id}/{section_id}")


# ============================================================================
# CODE EXECUTION
# ============================================================================


@app.command("run")
def run_code(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Go source file"),
    snippet: bool = typer.Option(False, "--snippet", "-s", help="Wrap a bare snippet in a main package"),
):
    """Run a Go file on the tutorial server's sandbox."""
    settings = get_settings()
    code = source.read_text(encoding="utf-8")

    async def run() -> CodeRunner:
        async with ExecutionApiClient(settings.get_api_config()) as api:
            runner = CodeRunner(api)
            await runner.execute_code(code, snippet=snippet)
            return runner

    runner = asyncio.run(run())
    result = runner.result
    if result is None:
        console.print(Panel(f"[bold red]{runner.error}[/bold red]", title="Error"))
        raise typer.Exit(1)

    if result.output:
        console.print(result.output, markup=False, highlight=False, end="")
    if runner.error:
        console.print(f"[red]{runner.error}[/red]")
    console.print(f"[dim]exit code {result.exit_code} in {result.duration}[/dim]")
    if not result.succeeded:
        raise typer.Exit(result.exit_code or 1)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    _configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
