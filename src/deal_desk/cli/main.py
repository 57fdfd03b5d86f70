"""Main CLI entry point for the dealdesk command."""

import functools
import json
import logging
import click
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from typing import Optional

from pydantic import ValidationError

from ..config import settings
from ..storage.database import DealDatabase
from ..transactions.errors import DealDeskError
from ..transactions.service import TransactionService
from ..transactions.stages import TransactionStatus, next_stage

console = Console()

STATUS_COLORS = {
    "agreement": "blue",
    "earnest_money": "yellow",
    "title_deed": "magenta",
    "completed": "green",
}


def get_db(db_path: Optional[str] = None) -> DealDatabase:
    """Get database instance."""
    path = Path(db_path) if db_path else None
    return DealDatabase(path)


def get_service(db_path: Optional[str] = None) -> TransactionService:
    return TransactionService(get_db(db_path))


def reports_errors(func):
    """Print engine and validation errors instead of a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            for err in e.errors():
                field = ".".join(str(p) for p in err["loc"])
                console.print(f"[red]Invalid {field}: {err['msg']}[/red]")
            raise SystemExit(1)
        except DealDeskError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
    return wrapper


def _status_label(status: TransactionStatus) -> str:
    color = STATUS_COLORS.get(status.value, "")
    return f"[{color}]{status.value}[/{color}]"


@click.group()
@click.version_option(version="1.0.0", prog_name="dealdesk")
def cli():
    """Deal Desk - real-estate transaction lifecycle and commission splits.

    \b
    Quick Start:
      dealdesk init                                     # Create database
      dealdesk agent add "Alice Smith"                  # Register agents
      dealdesk deal create --address "12 Oak St" \\
          --price 450000 --fee 13500 --listing ID1 --selling ID2
      dealdesk deal advance DEAL_ID earnest_money       # Move it forward
      dealdesk deal financials DEAL_ID                  # After completion

    \b
    Stages: agreement -> earnest_money -> title_deed -> completed
    """
    logging.basicConfig(level=settings.log_level)


@cli.command()
@click.option("--db", "db_path", help="Custom database path")
def init(db_path: Optional[str]):
    """Initialize the deals database."""
    db = get_db(db_path)

    console.print(Panel.fit(
        f"[green]✓ Database initialized![/green]\n\n"
        f"Location: [cyan]{db.db_path}[/cyan]\n\n"
        f"[bold]Next:[/bold]\n"
        f"1. [yellow]dealdesk agent add \"Agent Name\"[/yellow]\n"
        f"2. [yellow]dealdesk deal create --help[/yellow]",
        title="Deal Desk"
    ))


# ============================================================================
# AGENTS
# ============================================================================

@cli.group()
def agent():
    """Register and list agents."""
    pass


@agent.command("add")
@click.argument("name")
@click.option("--email", default="", help="Agent email")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def agent_add(name: str, email: str, db_path: Optional[str]):
    """Register an agent."""
    new_agent = get_service(db_path).register_agent(name, email)

    console.print(f"[green]✓ Agent {new_agent.name} registered[/green] (ID: [cyan]{new_agent.id}[/cyan])")


@agent.command("list")
@click.option("--db", "db_path", help="Custom database path")
def agent_list(db_path: Optional[str]):
    """List registered agents."""
    agents = get_service(db_path).list_agents()

    if not agents:
        console.print("[yellow]No agents registered.[/yellow]")
        return

    table = Table(title=f"Agents ({len(agents)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email")

    for a in agents:
        table.add_row(a.id, a.name, a.email)

    console.print(table)


# ============================================================================
# DEALS
# ============================================================================

@cli.group()
def deal():
    """Create and track sale transactions."""
    pass


@deal.command("create")
@click.option("--address", required=True, help="Property address")
@click.option("--price", required=True, help="Contract price")
@click.option("--fee", required=True, help="Total service fee")
@click.option("--listing", "listing_agent_id", required=True, help="Listing agent ID")
@click.option("--selling", "selling_agent_id", required=True, help="Selling agent ID")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def deal_create(address: str, price: str, fee: str, listing_agent_id: str,
                selling_agent_id: str, db_path: Optional[str]):
    """Open a new transaction at the agreement stage."""
    txn = get_service(db_path).create(
        property_address=address,
        contract_price=price,
        total_service_fee=fee,
        listing_agent_id=listing_agent_id,
        selling_agent_id=selling_agent_id,
    )
    console.print(f"[green]✓ Transaction created[/green] (ID: [cyan]{txn.id}[/cyan])")


@deal.command("list")
@click.option("--db", "db_path", help="Custom database path")
def deal_list(db_path: Optional[str]):
    """List all transactions, newest first."""
    service = get_service(db_path)
    transactions = service.list_transactions()

    if not transactions:
        console.print("[yellow]No transactions yet.[/yellow]")
        return

    names = {a.id: a.name for a in service.list_agents()}

    table = Table(title=f"Transactions ({len(transactions)})")
    table.add_column("ID", style="dim")
    table.add_column("Property", style="cyan", max_width=30)
    table.add_column("Price", justify="right")
    table.add_column("Fee", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Listing")
    table.add_column("Selling")

    for t in transactions:
        table.add_row(
            t.id,
            t.property_address[:30],
            f"{t.contract_price:,.2f}",
            f"{t.total_service_fee:,.2f}",
            _status_label(t.status),
            names.get(t.listing_agent_id, t.listing_agent_id),
            names.get(t.selling_agent_id, t.selling_agent_id),
        )

    console.print(table)


@deal.command("show")
@click.argument("txn_id")
@click.option("--json", "as_json", is_flag=True, help="Print the raw record as JSON")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def deal_show(txn_id: str, as_json: bool, db_path: Optional[str]):
    """Show one transaction."""
    service = get_service(db_path)
    txn = service.get_transaction(txn_id)

    if as_json:
        click.echo(json.dumps(txn.to_dict(), indent=2))
        return

    names = {a.id: a.name for a in service.list_agents()}

    upcoming = next_stage(txn.status)
    console.print(Panel.fit(
        f"[bold]{txn.property_address}[/bold]\n\n"
        f"Status: {_status_label(txn.status)}"
        + (f"  (next: {upcoming.value})" if upcoming else "") + "\n"
        f"Contract price: {txn.contract_price:,.2f}\n"
        f"Service fee: {txn.total_service_fee:,.2f}\n"
        f"Listing agent: {names.get(txn.listing_agent_id, txn.listing_agent_id)}\n"
        f"Selling agent: {names.get(txn.selling_agent_id, txn.selling_agent_id)}\n"
        f"Created: {txn.created_at:%Y-%m-%d %H:%M}",
        title=f"Transaction {txn.id}"
    ))


@deal.command("advance")
@click.argument("txn_id")
@click.argument("status", type=click.Choice([s.value for s in TransactionStatus]))
@click.option("--note", help="Note stored with the history entry")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def deal_advance(txn_id: str, status: str, note: Optional[str], db_path: Optional[str]):
    """Move a transaction to its next stage."""
    metadata = {"note": note} if note else None
    txn = get_service(db_path).update_status(txn_id, status, metadata=metadata)

    console.print(f"[green]✓ {txn.id} is now {_status_label(txn.status)}[/green]")
    if txn.financial_breakdown:
        console.print("[dim]Commission computed. Run 'dealdesk deal financials' to view it.[/dim]")


@deal.command("update")
@click.argument("txn_id")
@click.option("--address", help="Property address")
@click.option("--price", help="Contract price")
@click.option("--fee", help="Total service fee")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def deal_update(txn_id: str, address: Optional[str], price: Optional[str],
                fee: Optional[str], db_path: Optional[str]):
    """Edit a transaction's address, price or fee."""
    txn = get_service(db_path).update_details(
        txn_id,
        property_address=address,
        contract_price=price,
        total_service_fee=fee,
    )
    console.print(f"[green]✓ Transaction {txn.id} updated[/green]")


@deal.command("financials")
@click.argument("txn_id")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def deal_financials(txn_id: str, db_path: Optional[str]):
    """Show the commission split of a completed transaction."""
    breakdown = get_service(db_path).get_financials(txn_id)

    table = Table(title=f"Financials {txn_id}")
    table.add_column("Recipient", style="cyan")
    table.add_column("Role")
    table.add_column("Amount", justify="right", style="bold")

    table.add_row("Agency", "-", f"{breakdown.agency_amount:,.2f}")
    for d in breakdown.distributions:
        table.add_row(d.agent_name, d.role.value, f"{d.amount:,.2f}")

    console.print(table)
    console.print(f"Agent pool: [bold]{breakdown.agent_pool_amount:,.2f}[/bold]")


@deal.command("history")
@click.argument("txn_id")
@click.option("--db", "db_path", help="Custom database path")
@reports_errors
def deal_history(txn_id: str, db_path: Optional[str]):
    """Show status changes, most recent first."""
    entries = get_service(db_path).get_history(txn_id)

    if not entries:
        console.print("[yellow]No status changes yet.[/yellow]")
        return

    table = Table(title=f"History {txn_id}")
    table.add_column("When", style="dim")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Note", max_width=40)

    for e in entries:
        table.add_row(
            f"{e.created_at:%Y-%m-%d %H:%M:%S}",
            _status_label(e.previous_status),
            _status_label(e.new_status),
            (e.metadata or {}).get("note", ""),
        )

    console.print(table)


if __name__ == "__main__":
    cli()
