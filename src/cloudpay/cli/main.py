"""
cloudpay CLI — `cloudpay` command.

Commands:
  cloudpay auth login          Save an access token for a console scope
  cloudpay tx status <id>      Backend status of a transaction
  cloudpay tx confirm <id>     Ask the backend to confirm a payment
  cloudpay tx watch <id>       Follow a transaction until it settles or expires
  cloudpay cards <cmd>         Saved card management
"""

import asyncio
import json
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install cloudpay[cli]")

from cloudpay.client import AsyncCloudPay
from cloudpay.errors import CloudPayError
from cloudpay.transport.http import DEFAULT_BASE_URL

console = Console()
CONFIG_FILE = Path.home() / ".cloudpay" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client() -> AsyncCloudPay:
    cfg = _load_config()
    if not cfg.get("access_token"):
        console.print("[red]Not logged in. Run `cloudpay auth login` first.[/red]")
        raise SystemExit(1)
    return AsyncCloudPay(
        access_token=cfg["access_token"],
        base_url=cfg.get("base_url", DEFAULT_BASE_URL),
        scope=cfg.get("scope", "client"),
        tenant=cfg.get("tenant"),
        email=cfg.get("email"),
    )


def _run(coro):
    try:
        return asyncio.run(coro)
    except CloudPayError as e:
        console.print(f"[red]{e.code}: {e}[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity")
def main(verbose):
    """cloudpay CLI — confirm and follow console payments."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


# Register subcommands from separate modules
from cloudpay.cli.auth import auth
from cloudpay.cli.cards import cards
from cloudpay.cli.transactions import tx

main.add_command(auth)
main.add_command(cards)
main.add_command(tx)


if __name__ == "__main__":
    main()
