"""CLI: cloudpay tx status|confirm|watch"""

import asyncio
import json
import time
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from cloudpay.models.transaction import SUCCESS_TOKENS, TransactionStatus
from cloudpay.poller import POLL_INTERVAL_S
from cloudpay.transactions import extract_confirm_status

console = Console()

STATUS_STYLES = {
    TransactionStatus.PENDING: "yellow",
    TransactionStatus.PROCESSING: "cyan",
    TransactionStatus.COMPLETED: "green",
    TransactionStatus.FAILED: "red",
    TransactionStatus.EXPIRED: "red",
}


def _get_client():
    from cloudpay.cli.main import _get_client
    return _get_client()


def _run(coro):
    from cloudpay.cli.main import _run
    return _run(coro)


@click.group()
def tx():
    """Transaction payment commands."""


@tx.command("status")
@click.argument("transaction_id")
@click.option("--json-output", "--json", is_flag=True)
def tx_status(transaction_id, json_output):
    """Show the backend status of a transaction."""

    async def _status():
        client = _get_client()
        try:
            return await client.transactions.status(transaction_id)
        finally:
            await client.close()

    result = _run(_status())
    if json_output:
        click.echo(json.dumps(result, indent=2))
        return
    data = result.get("data") or {}
    table = Table(title=f"Transaction {transaction_id}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Status", str(data.get("status", "unknown")))
    table.add_row("Accounts", str(len(data.get("accounts") or [])))
    console.print(table)


@tx.command("confirm")
@click.argument("transaction_id")
@click.option("--gateway", required=True, help="Gateway key, e.g. Paystack or Paystack_Card")
@click.option("--card", "card_identifier", default=None, help="Saved card identifier to charge")
@click.option("--save-card/--no-save-card", default=None, help="Ask the backend to store the card")
def tx_confirm(transaction_id, gateway, card_identifier: Optional[str], save_card: Optional[bool]):
    """Ask the backend to confirm a payment with its gateway."""

    async def _confirm():
        client = _get_client()
        body = {"card_identifier": card_identifier} if card_identifier else None
        try:
            with console.status("Confirming..."):
                return await client.transactions.confirm(transaction_id, gateway, body, save_card)
        finally:
            await client.close()

    status = extract_confirm_status(_run(_confirm()))
    if status in SUCCESS_TOKENS:
        console.print(f"[green]Transaction confirmed ({status}).[/green]")
    else:
        console.print(f"[yellow]Not confirmed yet (status: {status or 'unknown'}).[/yellow]")
        raise SystemExit(2)


@tx.command("watch")
@click.argument("transaction_id")
@click.option("--interval", default=POLL_INTERVAL_S, type=float, help="Seconds between status checks")
def tx_watch(transaction_id, interval):
    """Follow a transaction until it completes, fails or expires."""

    async def _watch():
        client = _get_client()
        engine = await client.open_transaction(transaction_id, poll_interval=interval)
        try:
            await engine.check_status_now()
            last_check = time.monotonic()
            with console.status("Waiting for payment...") as spinner:
                while not engine.state.is_terminal:
                    remaining = engine.time_remaining
                    suffix = f", expires in {remaining}" if remaining else ""
                    spinner.update(f"{engine.status.value}{suffix}")
                    await asyncio.sleep(1.0)
                    # The engine only polls on its own while a channel is open.
                    if not engine.poller.running and time.monotonic() - last_check >= interval:
                        await engine.check_status_now()
                        last_check = time.monotonic()
        finally:
            await engine.close()
            await client.close()
        return engine

    engine = _run(_watch())
    style = STATUS_STYLES[engine.status]
    console.print(f"[{style}]{engine.status.value}[/{style}] {engine.status_message}")
    if engine.status == TransactionStatus.COMPLETED:
        console.print(f"[dim]Next: {engine.completion_target()}[/dim]")
