"""Main CLI entry point for Sitewatch commands."""
import asyncio
from typing import Optional
from uuid import UUID

import click

from sitewatch.cli import db
from sitewatch.core.config import settings
from sitewatch.db.enums import UserRole


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Sitewatch - website audits, schedules and monitoring."""
    pass


cli.add_command(db.db_group, name="db")


async def _run_schedules() -> dict:
    from sitewatch.core.database import AsyncSessionLocal, engine
    from sitewatch.services.scheduled_audit_service import ScheduledAuditService

    try:
        async with AsyncSessionLocal() as session:
            summary = await ScheduledAuditService().process_due_schedules(session)
        return summary.to_dict()
    finally:
        await engine.dispose()


async def _run_monitoring() -> int:
    from sitewatch.core.database import AsyncSessionLocal, engine
    from sitewatch.services.monitoring_service import MonitoringService

    try:
        async with AsyncSessionLocal() as session:
            return await MonitoringService().run_scheduled_checks(session)
    finally:
        await engine.dispose()


@cli.command("run-schedules")
def run_schedules() -> None:
    """Run every due audit schedule once."""
    click.echo(click.style("Processing due schedules...", fg="yellow"))
    summary = asyncio.run(_run_schedules())
    color = "green" if summary["failed"] == 0 else "red"
    click.echo(click.style(
        f"✓ {summary['processed']} processed, {summary['succeeded']} succeeded, "
        f"{summary['failed']} failed",
        fg=color,
    ))
    if summary["next_scheduled"]:
        click.echo(f"Next scheduled run: {summary['next_scheduled']}")


@cli.command("run-monitoring")
def run_monitoring() -> None:
    """Run every due monitoring check once."""
    click.echo(click.style("Running monitoring checks...", fg="yellow"))
    checked = asyncio.run(_run_monitoring())
    click.echo(click.style(f"✓ Checked {checked} websites", fg="green"))


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload/--no-reload", default=None, help="Defaults to on outside production.")
def serve(host: str, port: int, reload: Optional[bool]) -> None:
    """Start the API server."""
    import uvicorn

    if reload is None:
        reload = settings.environment != "production"
    uvicorn.run("sitewatch.main:app", host=host, port=port, reload=reload,
                log_level=settings.log_level.lower())


@cli.command()
@click.argument("user_id", type=click.UUID)
@click.option("--admin", is_flag=True, help="Issue an admin token.")
@click.option("--minutes", default=None, type=int, help="Lifetime (defaults to settings).")
def token(user_id: UUID, admin: bool, minutes: Optional[int]) -> None:
    """Generate a JWT bearer token for a user."""
    from datetime import timedelta

    from sitewatch.core.auth import create_user_token

    role = UserRole.ADMIN.value if admin else UserRole.USER.value
    expires = timedelta(minutes=minutes) if minutes else None
    click.echo(create_user_token(user_id, role=role, expires_delta=expires))


if __name__ == "__main__":
    cli()
