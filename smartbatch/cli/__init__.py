"""CLI entry point for the smartbatch engine."""

from __future__ import annotations

import click

from smartbatch.cli.commands import create, delete, init_db, update


@click.group()
def cli() -> None:
    """Adaptive bulk create, update and delete against a SQLite store."""


cli.add_command(init_db)
cli.add_command(create)
cli.add_command(update)
cli.add_command(delete)
