"""Operator CLI: run maintenance jobs on demand and provision tenants."""

import asyncio
from collections.abc import Callable
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core import __version__
from clinic_core.core.errors import AppException
from clinic_core.core.logging import configure_logging
from clinic_core.modules.billing.models import PlanTier


console = Console()

app = typer.Typer(
    name="clinic-core",
    help="Maintenance and provisioning commands for the clinic platform.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _session_factory() -> Callable[[], AsyncSession]:
    from clinic_core.core.database import async_session_factory

    return async_session_factory


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
) -> None:
    """Clinic Core CLI - maintenance and provisioning."""
    if version:
        console.print(f"[bold cyan]clinic-core[/bold cyan] version {__version__}")
        raise typer.Exit()
    configure_logging()


@app.command(name="sweep")
def sweep() -> None:
    """Apply due plan changes and cancellations now.

    Runs the same sweep as the daily scheduled job.
    """
    from clinic_core.modules.billing.transitions import SubscriptionTransitioner

    transitioner = SubscriptionTransitioner(_session_factory())
    report = asyncio.run(transitioner.run())

    table = Table(title="Subscription Sweep", show_header=True)
    table.add_column("Sweep", style="cyan", no_wrap=True)
    table.add_column("Candidates", justify="right")
    table.add_column("Processed", style="green", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", style="red", justify="right")
    for label, stats in (
        ("plan changes", report.plan_changes),
        ("cancellations", report.cancellations),
    ):
        table.add_row(
            label,
            str(stats.candidates),
            str(stats.processed),
            str(stats.skipped),
            str(stats.failed),
        )

    console.print()
    console.print(table)
    console.print()

    if report.plan_changes.failed or report.cancellations.failed:
        raise typer.Exit(code=1)


@app.command(name="cleanup-tokens")
def cleanup_tokens() -> None:
    """Delete expired refresh and invitation tokens."""
    from clinic_core.core.jobs.tasks.cleanup import purge_expired_credentials

    counts = asyncio.run(purge_expired_credentials(_session_factory()))
    console.print(
        f"[green]✓[/green] Deleted {counts['refresh_tokens_deleted']} refresh "
        f"and {counts['invitation_tokens_deleted']} invitation tokens"
    )


async def _provision(**kwargs: Any) -> Any:
    from clinic_core.modules.tenants.provisioning import provision_tenant

    async with _session_factory()() as session, session.begin():
        return await provision_tenant(session, **kwargs)


@app.command(name="seed")
def seed(
    slug: str = typer.Option("default", "--slug", "-s", help="Tenant slug"),
    name: str = typer.Option("Default Clinic", "--name", "-n", help="Clinic name"),
    admin_email: str = typer.Option(
        ..., "--admin-email", "-e", help="Email of the first ADMIN staff member"
    ),
    admin_name: str = typer.Option("Administrator", "--admin-name", help="Admin display name"),
    plan: PlanTier = typer.Option(PlanTier.BASIC, "--plan", "-p", help="Plan tier"),
    domain: str | None = typer.Option(None, "--domain", "-d", help="Custom domain"),
) -> None:
    """Create a tenant with an invited ADMIN and print the invitation token."""
    try:
        result = asyncio.run(
            _provision(
                slug=slug,
                name=name,
                admin_email=admin_email,
                admin_name=admin_name,
                plan_tier=plan,
                custom_domain=domain,
            )
        )
    except AppException as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1) from None

    console.print(f"[green]✓[/green] Created tenant [bold]{result.slug}[/bold] ({result.tenant_id})")
    console.print(f"  Admin staff id:   {result.admin_staff_id}")
    console.print(f"  Invitation token: [bold]{result.invitation_token}[/bold]")
    console.print(f"  Expires at:       {result.invitation_expires_at.isoformat()}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
