"""CLI interface for ledger sync.

Commands:
    sync [--api-key KEY]  Mirror the local ledger onto Portfolio Report
    status                Show the linked remote portfolio and local counts
"""

import logging
import os

import click
from dotenv import load_dotenv

from prsync.api_client import (
    DEFAULT_BASE_URL,
    PortfolioReportClient,
    RemoteUnavailable,
)
from prsync.converter import ConversionError
from prsync.database import Database, DatabaseError, SQLiteError
from prsync.models import AccountRecord, ActiveModelError, PortfolioRecord, SecurityRecord, TransactionRecord
from prsync.store import DatabasePropertyStore, LedgerIntegrityError, load_ledger
from prsync.sync import PORTFOLIO_ID_KEY, SyncOrchestrator

# Load environment variables
load_dotenv()

# Configure logging for CLI
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)


def open_database() -> Database:
    """Open the ledger from the environment and bring its schema up to date."""
    if not os.getenv("DB_ENCRYPTION_KEY"):
        click.echo(
            "Warning: DB_ENCRYPTION_KEY not set. Using unencrypted database.",
            err=True,
        )

    database = Database.from_env()
    database.migrate()
    return database


@click.group()
def cli():
    """prsync - mirror a local ledger onto Portfolio Report."""
    pass


@cli.command()
@click.option(
    "--api-key",
    help="Portfolio Report API key. "
    "If not provided, uses PORTFOLIO_REPORT_API_KEY from .env",
)
def sync(api_key: str | None):
    """Mirror securities, accounts and transactions to the remote portfolio.

    Local data always wins: remote records are overwritten or deleted to
    match the local ledger.
    """
    if not api_key:
        api_key = os.getenv("PORTFOLIO_REPORT_API_KEY")
        if not api_key:
            click.echo(
                "Error: API key required. "
                "Provide --api-key or set PORTFOLIO_REPORT_API_KEY in .env",
                err=True,
            )
            raise SystemExit(2)

    client = PortfolioReportClient(
        api_key=api_key,
        base_url=os.getenv("PORTFOLIO_REPORT_URL", DEFAULT_BASE_URL),
        timeout=int(os.getenv("PRSYNC_TIMEOUT", "30")),
        max_attempts=int(os.getenv("PRSYNC_MAX_ATTEMPTS", "3")),
    )

    # Quick connection check (no retries for fast failure)
    click.echo("Checking connection to Portfolio Report...")
    try:
        client.check_connection()
    except RemoteUnavailable as e:
        click.echo(f"✗ Connection failed: {str(e)}", err=True)
        raise SystemExit(1)
    click.echo("✓ Connected")

    try:
        database = open_database()
        ledger = load_ledger(database)
        orchestrator = SyncOrchestrator(
            client, ledger, properties=DatabasePropertyStore(database)
        )
        result = orchestrator.sync()
    except (
        RemoteUnavailable,
        ConversionError,
        LedgerIntegrityError,
        DatabaseError,
        SQLiteError,
        ActiveModelError,
    ) as e:
        click.echo(f"✗ Sync failed: {str(e)}", err=True)
        click.echo(
            "Changes made before the failure remain on the remote side; "
            "run sync again to converge.",
            err=True,
        )
        raise SystemExit(1)

    click.echo(f"✓ Synced with remote portfolio {result['portfolio_id']}")
    for section in ("securities", "accounts", "transactions"):
        counts = result[section]
        click.echo(
            f"  {section}: {counts['created']} created, "
            f"{counts['updated']} updated, {counts['deleted']} deleted"
        )


@cli.command()
def status():
    """Show the linked remote portfolio and local ledger counts."""
    try:
        database = open_database()
        portfolio_id = DatabasePropertyStore(database).get_property(PORTFOLIO_ID_KEY)
        revision = database.schema_revision()
        counts = [
            (label, model.count(database))
            for label, model in (
                ("Securities", SecurityRecord),
                ("Accounts", AccountRecord),
                ("Portfolios", PortfolioRecord),
                ("Transactions", TransactionRecord),
            )
        ]
    except (DatabaseError, SQLiteError, ActiveModelError) as e:
        click.echo(f"✗ Status failed: {str(e)}", err=True)
        raise SystemExit(1)

    click.echo(f"Remote portfolio: {portfolio_id or 'not linked yet'}")
    click.echo(f"Schema revision: {revision}")
    for label, count in counts:
        click.echo(f"{label}: {count}")


if __name__ == "__main__":
    cli()
