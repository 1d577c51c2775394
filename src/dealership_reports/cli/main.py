import asyncio
import logging
from typing import Optional

import typer
from tortoise import Tortoise
from tortoise.exceptions import IntegrityError

from ..core.config import TORTOISE_ORM_CONFIG
from ..core.logging_config import configure_logging
from ..features.auth.models import User as AuthUser
from ..features.auth.security import get_password_hash
from ..features.reports.errors import NotFoundError
from ..features.reports.filters import build_scope
from ..features.reports.registry import REPORTS, get_report
from ..features.reports.responses import format_report_response, handle_report_error
from ..features.reports.sources import DEFAULT_SOURCES

logger = logging.getLogger(__name__)

app = typer.Typer(name="dealership-reports", help="CLI for the Dealership Reports application.")


# Shared async context manager for database connection
class DBConnection:
    """Opens the platform database. Reports only read it, so tables are
    created only when asked for, e.g. for a local development database."""

    def __init__(self, create_schemas: bool = False):
        self.create_schemas = create_schemas

    async def __aenter__(self):
        await Tortoise.init(config=TORTOISE_ORM_CONFIG)
        if self.create_schemas:
            logger.info("Creating missing tables")
            await Tortoise.generate_schemas(safe=True)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await Tortoise.close_connections()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log report generation at DEBUG level.")):
    configure_logging(reports_level="DEBUG" if verbose else "WARNING")


# Report commands
reports_app = typer.Typer(name="reports", help="List and run reports.")
app.add_typer(reports_app)


@reports_app.command("list")
def list_reports_command():
    """Lists every available report type with its route."""
    for report in REPORTS:
        typer.echo(f"{report.report_type:<36} /api/v1/reports{report.route:<48} {report.label}")


@reports_app.command("run")
def run_report_command(
    report_type: str = typer.Argument(..., help="Report type, see `reports list`."),
    username: str = typer.Option(..., help="Run the report as this user, with their company and dealership scope."),
    start_date: Optional[str] = typer.Option(None, "--start-date", help="Start of the creation date range."),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="End of the creation date range."),
):
    """Runs a report and prints its envelope as JSON."""
    try:
        report = get_report(report_type)
    except NotFoundError as e:
        typer.secho(f"Error: {e.detail}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    exit_code = asyncio.run(_run_report(report, username, start_date, end_date))
    raise typer.Exit(code=exit_code)


async def _run_report(report, username: str, start_date: Optional[str], end_date: Optional[str]) -> int:
    """Async implementation for running a report, returns the exit code."""
    async with DBConnection():
        user = await AuthUser.get_or_none(username=username)
        if not user:
            typer.secho(f"Error: User with username '{username}' not found.", fg=typer.colors.RED)
            return 1
        try:
            scope = build_scope(user, start_date, end_date)
            data = await report.service(scope, DEFAULT_SOURCES)
        except Exception as e:
            failure = handle_report_error(e, report.report_type, report.label)
            typer.secho(failure.body.decode(), fg=typer.colors.RED)
            return 1
        envelope = format_report_response(data, report.report_type, scope)
        typer.echo(envelope.model_dump_json(by_alias=True, indent=2))
        return 0


# User management commands
user_app = typer.Typer(name="users", help="Manage report users.")
app.add_typer(user_app)


@user_app.command("create-admin")
def create_admin_user_command(
    username: str = typer.Option(..., prompt=True, help="Username for the new admin."),
    email: str = typer.Option(..., prompt=True, help="Email for the new admin."),
    company_id: str = typer.Option(..., prompt=True, help="Company the admin belongs to."),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password for the new admin."),
    create_schemas: bool = typer.Option(False, "--create-schemas", help="Create missing tables first (local databases only)."),
):
    """Creates the primary admin of a company, who sees every dealership."""
    asyncio.run(_create_admin_user(username, email, company_id, password, create_schemas))


async def _create_admin_user(username: str, email: str, company_id: str, password: str, create_schemas: bool = False):
    """Async implementation for creating a primary admin."""
    async with DBConnection(create_schemas=create_schemas):
        typer.echo(f"Attempting to create admin user: {username} ({email})...")
        if await AuthUser.filter(username=username).exists():
            typer.secho(f"Error: User with username '{username}' already exists.", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        try:
            admin_user = await AuthUser.create(
                username=username,
                email=email,
                company_id=company_id,
                hashed_password=get_password_hash(password),
                role="company_super_admin",
                is_primary_admin=True,
            )
        except IntegrityError as e:
            typer.secho(f"Error creating admin user: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        typer.secho(f"Admin user '{admin_user.username}' created successfully with ID: {admin_user.public_id}", fg=typer.colors.GREEN)


@app.command("test-db-connection")
def test_db_connection_command_sync():
    """Tests the database connection and counts users."""
    asyncio.run(test_db_connection_command())


async def test_db_connection_command():
    async with DBConnection():
        typer.echo("Successfully connected to the database.")
        user_count = await AuthUser.all().count()
        typer.echo(f"Found {user_count} user(s) in the database.")


if __name__ == "__main__":
    app()
