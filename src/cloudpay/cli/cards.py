"""CLI: cloudpay cards list|remove"""

import json

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _get_client():
    from cloudpay.cli.main import _get_client
    return _get_client()


def _run(coro):
    from cloudpay.cli.main import _run
    return _run(coro)


@click.group()
def cards():
    """Saved card management."""


@cards.command("list")
@click.option("--json-output", "--json", is_flag=True)
def cards_list(json_output):
    """List saved cards."""

    async def _list():
        client = _get_client()
        try:
            return await client.cards.list()
        finally:
            await client.close()

    result = _run(_list())
    if json_output:
        click.echo(json.dumps([c.model_dump() for c in result], indent=2))
        return
    table = Table(title=f"Saved cards ({len(result)})")
    table.add_column("ID", style="bold")
    table.add_column("Card")
    table.add_column("Expires")
    table.add_column("Bank")
    table.add_column("Gateway")
    for index, card in enumerate(result):
        table.add_row(
            card.resolve_identifier(str(index)),
            card.label,
            f"{card.exp_month or '--'}/{card.exp_year or '--'}",
            card.bank or "",
            card.payment_gateway or "Paystack",
        )
    console.print(table)


@cards.command("remove")
@click.argument("card_id")
def cards_remove(card_id):
    """Remove a saved card."""

    async def _remove():
        client = _get_client()
        try:
            with console.status("Removing..."):
                await client.cards.delete(card_id)
        finally:
            await client.close()

    _run(_remove())
    console.print(f"[green]Card {card_id} removed.[/green]")
