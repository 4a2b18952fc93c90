# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""CLI commands: create-key, list-keys, revoke-key, trends, quality, serve."""

from __future__ import annotations

import json

import click
from rich.panel import Panel
from rich.table import Table

from asvab_search.auth import AuthManager
from asvab_search.cli import DEFAULT_DB, cli, console, run_async
from asvab_search.services import open_services


@cli.command("create-key")
@click.argument("name")
@click.option("--user", "user_id", required=True, help="User id the key acts as")
@click.option(
    "--permissions", default="read,write", help="Comma-separated permissions (read,write,admin)"
)
@click.option("--db", default=DEFAULT_DB, help="Database path")
def create_key(name, user_id, permissions, db) -> None:
    """Issue an API key. The raw key is printed once."""
    try:
        raw_key, api_key = AuthManager(db).create_key(name, user_id, permissions.split(","))
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    console.print(
        Panel(
            f"[bold]{raw_key}[/]\n\nUser: {api_key.user_id}\n"
            f"Permissions: {', '.join(api_key.permissions)}",
            title=f"API key '{name}'",
            border_style="green",
        )
    )


@cli.command("list-keys")
@click.option("--user", "user_id", default=None, help="Only keys for this user")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def list_keys(user_id, db) -> None:
    keys = AuthManager(db).list_keys(user_id)
    if not keys:
        console.print("[yellow]No API keys.[/]")
        return
    table = Table(title="API keys")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Prefix", style="cyan")
    table.add_column("User")
    table.add_column("Permissions")
    table.add_column("Active")
    for k in keys:
        table.add_row(
            str(k.id), k.name, k.key_prefix, k.user_id, ",".join(k.permissions),
            "✓" if k.is_active else "✗",
        )
    console.print(table)


@cli.command("revoke-key")
@click.argument("key_id", type=int)
@click.option("--db", default=DEFAULT_DB, help="Database path")
def revoke_key(key_id, db) -> None:
    """Revoke an API key by id."""
    if not AuthManager(db).revoke_key(key_id):
        raise click.ClickException(f"No active API key with id {key_id}")
    console.print(f"[green]Revoked API key {key_id}.[/]")


@cli.command()
@click.option("--days", default=30, help="Trailing window in days")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def trends(days, json_output, db) -> None:
    """Global search trends."""

    async def _trends():
        async with open_services(db) as services:
            return await services.analytics.global_trends(days=days)

    report = run_async(_trends())
    if json_output:
        click.echo(json.dumps(report, indent=2))
        return
    console.print(
        f"Success rate: [green]{report['overallSuccessRate']:.0%}[/]  "
        f"Avg results: [cyan]{report['avgResultsPerSearch']:.1f}[/]"
    )
    table = Table(title=f"Trending queries (last {days} days)")
    table.add_column("Query")
    table.add_column("Searches", style="green")
    for t in report["trendingQueries"]:
        table.add_row(t["query"], str(t["searchCount"]))
    console.print(table)


@cli.command()
@click.option("--days", default=30, help="Trailing window in days")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.option("--db", default=DEFAULT_DB, help="Database path")
def quality(days, json_output, db) -> None:
    """Search quality metrics from user feedback."""

    async def _quality():
        async with open_services(db) as services:
            return await services.analytics.quality_metrics(days=days)

    report = run_async(_quality())
    if json_output:
        click.echo(json.dumps(report, indent=2))
        return
    q = report["qualityMetrics"]
    console.print(
        Panel(
            f"Average rating: {q['averageRating']}/5\n"
            f"Helpful: {q['helpfulPercentage']}%\n"
            f"Feedback received: {q['totalFeedbackCount']}",
            title="Search quality",
            border_style="cyan",
        )
    )
    zero = report["improvementOpportunities"]["zeroResultQueries"]
    if zero:
        console.print("[bold]Zero-result queries:[/] " + ", ".join(zero[:10]))


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, help="Bind port")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host, port, reload) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("asvab_search.api:app", host=host, port=port, reload=reload)
