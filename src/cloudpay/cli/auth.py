"""CLI: cloudpay auth login|status|logout"""

from typing import Optional

import click
from rich.console import Console

from cloudpay.client import AsyncCloudPay
from cloudpay.transport.http import DEFAULT_BASE_URL

console = Console()


def _load_config() -> dict:
    from cloudpay.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from cloudpay.cli.main import _save_config
    _save_config(cfg)


def _run(coro):
    from cloudpay.cli.main import _run
    return _run(coro)


@click.group()
def auth():
    """Authentication commands."""


@auth.command("login")
@click.option("--base-url", default=None, help="Console API base URL")
@click.option("--scope", type=click.Choice(["admin", "tenant", "client"]), default=None)
@click.option("--tenant", default=None, help="Tenant id sent with every request")
def auth_login(base_url: Optional[str], scope: Optional[str], tenant: Optional[str]):
    """Store an access token after checking it against the API."""
    cfg = _load_config()
    url = base_url or cfg.get("base_url", DEFAULT_BASE_URL)
    scope = scope or cfg.get("scope", "client")
    token = click.prompt("Access token", hide_input=True)
    email = click.prompt("Email", default=cfg.get("email", ""), show_default=False)

    async def _login():
        client = AsyncCloudPay(access_token=token, base_url=url, scope=scope, tenant=tenant, email=email or None)
        try:
            with console.status("Verifying token..."):
                cards = await client.cards.list()
        finally:
            await client.close()
        return cards

    cards = _run(_login())
    console.print(f"[green]Logged in ({scope}). {len(cards)} saved card(s) on file.[/green]")
    _save_config({**cfg, "access_token": token, "base_url": url, "scope": scope,
                  "tenant": tenant, "email": email or None})
    console.print("[dim]Token saved to ~/.cloudpay/config.json[/dim]")


@auth.command("status")
def auth_status():
    """Show current auth status."""
    cfg = _load_config()
    if cfg.get("access_token"):
        console.print(f"[green]Logged in[/green] as {cfg.get('email') or 'unknown'} "
                      f"({cfg.get('scope', 'client')} @ {cfg.get('base_url', DEFAULT_BASE_URL)})")
    else:
        console.print("[yellow]Not logged in. Run `cloudpay auth login`.[/yellow]")


@auth.command("logout")
def auth_logout():
    """Clear saved credentials."""
    _save_config({})
    console.print("[green]Logged out.[/green]")
