# marketsync/cli.py
import asyncio
import json
from dataclasses import asdict

import click

from marketsync.core.exceptions import ValidationError
from marketsync.core.logging_config import configure_logging
from marketsync.schemas.sync import MarketplaceCredentials
from marketsync.services.repricing_service import (
    configured_credentials,
    configured_repricing_settings,
    get_repricing_engine,
)
from marketsync.services.sync_orchestrator import get_sync_orchestrator


@click.group()
def cli():
    """Marketplace listing sync commands"""
    configure_logging()


@cli.command("run-sync")
@click.option('--user-id', required=True, help='Owner of the listings')
@click.option('--marketplace', 'marketplace_id', required=True, help='Marketplace id, e.g. walmart')
@click.option('--client-id', default=None, help='Overrides MARKETPLACE_CREDENTIALS')
@click.option('--client-secret', default=None, help='Overrides MARKETPLACE_CREDENTIALS')
@click.option('--wait-inventory/--no-wait-inventory', default=True,
              help='Wait for the background stock verification before exiting')
def run_sync(user_id, marketplace_id, client_id, client_secret, wait_inventory):
    """Reconcile one marketplace catalog into the listing store"""

    if client_id and client_secret:
        credentials = MarketplaceCredentials(client_id=client_id, client_secret=client_secret)
    else:
        credentials = configured_credentials().get(marketplace_id)

    async def _run():
        orchestrator = get_sync_orchestrator()
        result = await orchestrator.run_sync(user_id, marketplace_id, credentials)
        click.echo(json.dumps(asdict(result), indent=2))

        # asyncio.run() cancels whatever is still pending when _run returns
        pending = orchestrator.inventory_worker.pending_tasks
        if wait_inventory and pending:
            click.echo(f"Waiting for stock verification of {result.total_synced} listings...")
            await asyncio.gather(*pending)
        return result

    try:
        result = asyncio.run(_run())
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not result.success:
        raise SystemExit(1)


@cli.command("reprice-below-minimum")
@click.option('--user-id', required=True, help='Owner of the listings')
@click.option('--automated/--notify-only', default=None,
              help='Overrides REPRICING_AUTOMATED')
def reprice_below_minimum(user_id, automated):
    """Push listings priced below their stored minimum up to it"""

    settings = configured_repricing_settings()
    if automated is not None:
        settings = settings.model_copy(update={"automated_repricing_enabled": automated})

    async def _run():
        engine = get_repricing_engine()
        return await engine.reprice_below_minimum(user_id, settings)

    summary = asyncio.run(_run())
    click.echo(json.dumps(summary.to_dict(), indent=2))


if __name__ == "__main__":
    cli()
