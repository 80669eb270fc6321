"""
CLI interface for Velocity Guard.

Provides command-line access to batch and single load evaluation.
"""

import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from velocity_guard.config.loader import StoreBackend, StoreConfig, VelocityGuardConfig, load_config
from velocity_guard.config.logger_config import setup_logging
from velocity_guard.core.evaluator import LoadOutcome
from velocity_guard.core.service import AccountService
from velocity_guard.handler.batch import BatchSummary, process_file
from velocity_guard.handler.fund_handler import LoadHandler
from velocity_guard.handler.parsing import parse_amount, parse_timestamp
from velocity_guard.storage.db import DEFAULT_DB_PATH
from velocity_guard.storage.models import LoadRequest
from velocity_guard.storage.repository import SqliteAccountStore, initialize_schema
from velocity_guard.storage.store import AccountStore, InMemoryAccountStore

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1


def _load_settings(config_path: Optional[str]) -> VelocityGuardConfig:
    if config_path is None:
        return VelocityGuardConfig()
    return load_config(config_path)


def _build_store(store_config: StoreConfig, db_path: Optional[str] = None) -> AccountStore:
    """Create the configured store; an explicit db path always selects SQLite."""
    if db_path is not None or store_config.backend == StoreBackend.SQLITE:
        path = db_path or store_config.db_path
        initialize_schema(path)
        return SqliteAccountStore(path, ttl_seconds=store_config.ttl_seconds)
    return InMemoryAccountStore(ttl_seconds=store_config.ttl_seconds)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Velocity Guard CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Velocity Guard - Use --help to see available commands")


@app.command()
def init(
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")
):
    """Initialize the account state database."""
    try:
        initialize_schema(db)
        console.print(f"[green]✓[/] Database initialized at {db}")
        sys.exit(EXIT_CODE_OK)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def process(
    input_path: str = typer.Argument(..., help="File with one JSON load request per line"),
    output: str = typer.Option(
        "output.txt",
        "--output",
        "-o",
        help="File to write JSON responses to"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file with limit and store settings"
    ),
    workers: int = typer.Option(
        1,
        "--workers",
        "-w",
        min=1,
        help="Threads used to evaluate different customers in parallel"
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="Keep account state in this SQLite database instead of memory"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every evaluation"),
    log_file: Optional[str] = typer.Option(
        None,
        "--log-file",
        help="Also write log records to this file"
    )
):
    """
    Evaluate a file of load requests against the velocity limits.

    Writes one response per accepted or rejected load. Duplicate load ids
    and malformed lines produce no response.
    """
    if verbose or log_file:
        setup_logging(logging.DEBUG if verbose else logging.INFO, log_file=log_file)
    try:
        settings = _load_settings(config)
        store = _build_store(settings.store, db)
        handler = LoadHandler(AccountService(store, settings.limits))

        summary = process_file(input_path, output, handler, workers=workers)

        if isinstance(store, InMemoryAccountStore):
            store.flush()
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_summary(summary, output)
    sys.exit(EXIT_CODE_OK)


@app.command()
def check(
    load_id: str = typer.Argument(..., help="Load id"),
    customer_id: str = typer.Argument(..., help="Customer id"),
    amount: str = typer.Argument(..., help="Load amount, e.g. $120.50"),
    time: str = typer.Argument(..., help="RFC 3339 timestamp"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML settings file")
):
    """Evaluate a single load against the account state kept in SQLite."""
    try:
        settings = _load_settings(config)
        request = LoadRequest(
            id=load_id,
            customer_id=customer_id,
            amount=parse_amount(amount),
            timestamp=parse_timestamp(time)
        )
        initialize_schema(db)
        store = SqliteAccountStore(db, ttl_seconds=settings.store.ttl_seconds)
        result = AccountService(store, settings.limits).load_funds(request)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    color = "green" if result.outcome == LoadOutcome.ACCEPTED else "yellow"
    console.print(f"[bold]Verdict:[/bold] [{color}]{result.outcome.name}[/]")
    if result.reason:
        console.print(f"[dim]{result.reason}[/]")
    sys.exit(EXIT_CODE_OK)


def _display_summary(summary: BatchSummary, output_path: str) -> None:
    """Display batch counts in a table."""
    table = Table(title="Load Processing Summary")
    table.add_column("Result")
    table.add_column("Count", justify="right")
    table.add_row("Accepted", str(summary.accepted))
    table.add_row("Rejected", str(summary.rejected))
    table.add_row("Suppressed", str(summary.suppressed))
    table.add_row("Total", str(summary.total))
    console.print(table)
    console.print(f"Responses written to {output_path}")


if __name__ == "__main__":
    app()
