# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search CLI — Package init.

Re-exports the main CLI group and shared utilities.
"""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console

from asvab_search import __version__
from asvab_search.config import DB_PATH

console = Console()
DEFAULT_DB = DB_PATH


def run_async(coro):
    """Helper to run async coroutines from sync CLI."""
    return asyncio.run(coro)


# ─── Main Group ──────────────────────────────────────────────────


@click.group()
@click.version_option(__version__, prog_name="asvab-search")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """ASVAB Search — advanced and semantic search for ASVAB prep content."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ─── Register all sub-modules ───────────────────────────────────
from asvab_search.cli import core  # noqa: E402, F401
from asvab_search.cli import admin_cmds  # noqa: E402, F401


if __name__ == "__main__":
    cli()
