"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

CLI commands for wireless networks.
"""

import json
import sys
from typing import Optional

import click

from serval.cli.clients import site_option
from serval.cli.context import controller_session
from serval.exceptions import ServalError


@click.command('list')
@site_option
@click.option(
    '--format',
    '-f',
    type=click.Choice(['table', 'json'], case_sensitive=False),
    default='table',
    help='Output format (default: table)',
)
@click.pass_context
def list_networks(ctx, site: Optional[str], format: str):
    """
    List wireless networks of a site.

    Examples:

        serval wlan list
    """
    try:
        cli_ctx = ctx.obj
        site = cli_ctx.site_or_default(site)

        with controller_session(cli_ctx) as api:
            networks = api.list_wireless_networks(site)

        if format.lower() == 'json':
            click.echo(json.dumps([network.to_dict() for network in networks], indent=2))
            return

        if not networks:
            click.echo(f"No wireless networks on site '{site}'.")
            return

        id_width = max(max(len(n.id) for n in networks), len("ID"))
        name_width = max(max(len(n.name) for n in networks), len("SSID"))

        header = f"{'ID':<{id_width}}  {'SSID':<{name_width}}  Enabled"
        click.echo(header)
        click.echo("-" * len(header))
        for network in networks:
            enabled = "yes" if network.enabled else "no"
            click.echo(f"{network.id:<{id_width}}  {network.name:<{name_width}}  {enabled}")

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


def _set_enabled(ctx, network_id: str, site: Optional[str], enabled: bool) -> None:
    try:
        cli_ctx = ctx.obj
        site = cli_ctx.site_or_default(site)

        with controller_session(cli_ctx) as api:
            api.enable_wireless_network(site, network_id, enabled)

        state = "enabled" if enabled else "disabled"
        click.echo(f"✓ Wireless network {network_id} {state} on site '{site}'")

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@click.command('enable')
@click.argument('network_id')
@site_option
@click.pass_context
def enable(ctx, network_id: str, site: Optional[str]):
    """Enable a wireless network by ID."""
    _set_enabled(ctx, network_id, site, True)


@click.command('disable')
@click.argument('network_id')
@site_option
@click.pass_context
def disable(ctx, network_id: str, site: Optional[str]):
    """Disable a wireless network by ID."""
    _set_enabled(ctx, network_id, site, False)
