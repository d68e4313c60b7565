"""Database management commands for the Sitewatch CLI."""
import asyncio
from pathlib import Path

import click
from alembic import command
from alembic.config import Config

from sitewatch.core.database import Base, engine
from sitewatch.db import models  # noqa: F401  (registers tables on Base.metadata)


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def get_alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(get_project_root() / "alembic"))
    return config


async def create_tables(drop: bool = False) -> None:
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@click.group()
def db_group() -> None:
    """Database management commands."""
    pass


@db_group.command()
@click.option("--drop", is_flag=True, help="Drop existing tables first.")
def init(drop: bool) -> None:
    """Create all tables directly from the models."""
    if drop:
        click.confirm("This deletes all data. Continue?", abort=True)
    click.echo(click.style("Creating tables...", fg="yellow"))
    asyncio.run(create_tables(drop=drop))
    click.echo(click.style("✓ Tables created", fg="green"))


@db_group.command()
@click.option("--revision", default="head", show_default=True)
def migrate(revision: str) -> None:
    """Run Alembic migrations."""
    click.echo(click.style(f"Upgrading database to {revision}...", fg="yellow"))
    command.upgrade(get_alembic_config(), revision)
    click.echo(click.style("✓ Migrations applied", fg="green"))
