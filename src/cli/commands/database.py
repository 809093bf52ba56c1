"""Database setup commands."""

import click
from rich.console import Console

from cli.utils import get_db_path

console = Console()


@click.group()
def db():
    """Manage the scorecard database."""
    pass


@db.command("init")
def db_init():
    """Create tables if they don't exist."""
    from web.user_store import init_db

    path = get_db_path()
    init_db(path)
    console.print(f"[green]✓[/] Database ready: {path}")
