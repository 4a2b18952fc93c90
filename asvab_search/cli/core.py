# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""CLI commands: init-db, search, semantic, similar, suggest."""

from __future__ import annotations

from pathlib import Path

import click
from rich.panel import Panel
from rich.table import Table

from asvab_search import __version__, config
from asvab_search.cli import DEFAULT_DB, cli, console, run_async
from asvab_search.exceptions import SearchError
from asvab_search.search.models import (
    ContentType,
    SearchFilters,
    SearchPagination,
    SearchQuery,
    SearchSorting,
    SortField,
    SortOrder,
)
from asvab_search.services import open_services


def _truncate(text: str, width: int = 70) -> str:
    return text[:width] + "..." if len(text) > width else text


@cli.command("init-db")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def init_db(db) -> None:
    """Create the search database schema."""
    Path(db).expanduser().parent.mkdir(parents=True, exist_ok=True)

    async def _init():
        async with open_services(db):
            pass

    run_async(_init())
    console.print(
        Panel(
            f"[bold green]✓ ASVAB Search v{__version__} initialized[/]\nDatabase: {db}",
            title="ASVAB Search",
            border_style="green",
        )
    )


@cli.command()
@click.argument("query", default="")
@click.option(
    "--type",
    "content_type",
    type=click.Choice([c.value for c in ContentType], case_sensitive=False),
    default=ContentType.ALL.value,
    help="Content type to search",
)
@click.option("--category", "-c", multiple=True, help="Restrict to category (repeatable)")
@click.option("--difficulty", "-d", multiple=True, help="Restrict to difficulty (repeatable)")
@click.option(
    "--sort",
    type=click.Choice([f.value for f in SortField], case_sensitive=False),
    default=SortField.RELEVANCE.value,
)
@click.option("--asc", is_flag=True, help="Ascending order")
@click.option("--page", default=1, help="Page number")
@click.option("--limit", "-k", default=10, help="Results per page (max 100)")
@click.option("--user", default=None, help="Personalize for this user id")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def search(query, content_type, category, difficulty, sort, asc, page, limit, user, db) -> None:
    """Advanced search across questions, flashcards, jobs and groups."""
    search_query = SearchQuery(
        query=query,
        filters=SearchFilters(
            categories=tuple(category),
            difficulties=tuple(d.upper() for d in difficulty),
            content_type=ContentType(content_type.upper()),
        ),
        sorting=SearchSorting(
            field=SortField(sort.upper()), order=SortOrder.ASC if asc else SortOrder.DESC
        ),
        pagination=SearchPagination.clamped(page, limit, config.ADVANCED_MAX_LIMIT),
        user_id=user,
    )

    async def _search():
        async with open_services(db) as services:
            return await services.advanced.search(search_query)

    try:
        with console.status("[bold blue]Searching...[/]"):
            result = run_async(_search())
    except SearchError as e:
        raise click.ClickException(str(e)) from e

    if not result.items:
        console.print("[yellow]No results found.[/]")
        return
    table = Table(title=f"Results for: '{query}' ({result.total_count} total, {result.search_time_ms}ms)")
    table.add_column("ID", style="dim", width=12)
    table.add_column("Type", style="magenta", width=12)
    table.add_column("Title", width=50)
    table.add_column("Category", style="cyan", width=18)
    table.add_column("Score", style="green", width=6)
    for item in result.items:
        table.add_row(
            item.id, item.type.value, _truncate(item.title), item.category or "",
            f"{item.relevance_score:.2f}",
        )
    console.print(table)
    if result.has_more:
        console.print(f"[dim]More results: --page {search_query.pagination.page + 1}[/]")


@cli.command()
@click.argument("query")
@click.option("--category", "-c", default=None, help="Restrict to category")
@click.option("--limit", "-k", default=10, help="Number of results (max 50)")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def semantic(query, category, limit, db) -> None:
    """Concept-aware search ranked by semantic similarity."""

    async def _semantic():
        async with open_services(db) as services:
            return await services.semantic.search(query, category=category, limit=limit)

    try:
        results = run_async(_semantic())
    except SearchError as e:
        raise click.ClickException(str(e)) from e
    if not results:
        console.print("[yellow]No results found.[/]")
        return
    table = Table(title=f"Semantic results for: '{query}'")
    table.add_column("ID", style="dim", width=12)
    table.add_column("Type", style="magenta", width=12)
    table.add_column("Content", width=56)
    table.add_column("Similarity", style="green", width=10)
    for r in results:
        table.add_row(r.id, r.type.value, _truncate(r.content), f"{r.semantic_similarity:.2f}")
    console.print(table)


@cli.command()
@click.argument("item_id")
@click.option("--limit", "-k", default=10, help="Number of results (max 20)")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def similar(item_id, limit, db) -> None:
    """List content similar to ITEM_ID."""

    async def _similar():
        async with open_services(db) as services:
            return await services.semantic.similar(item_id, limit=limit)

    try:
        results = run_async(_similar())
    except SearchError as e:
        raise click.ClickException(str(e)) from e
    if not results:
        console.print(f"[yellow]Nothing similar to {item_id}.[/]")
        return
    for r in results:
        console.print(f"  [dim]{r.id}[/] [magenta]{r.type.value}[/] {_truncate(r.content)} "
                      f"[green]{r.semantic_similarity:.2f}[/]")


@cli.command()
@click.argument("partial")
@click.option("--semantic", "use_semantic", is_flag=True, help="Concept-based suggestions")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def suggest(partial, use_semantic, db) -> None:
    """Autocomplete suggestions for PARTIAL."""

    async def _suggest():
        async with open_services(db) as services:
            if use_semantic:
                return await services.semantic.suggestions(partial)
            return await services.suggestions.suggest(partial)

    suggestions = run_async(_suggest())
    if not suggestions:
        console.print("[yellow]No suggestions.[/]")
        return
    for s in suggestions:
        console.print(f"  • {s}")
