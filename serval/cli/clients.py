"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

CLI commands for controller clients.
"""

import json
import sys
from typing import Optional

import click

from serval.cli.context import controller_session
from serval.exceptions import ServalError


site_option = click.option(
    '--site',
    '-s',
    default=None,
    help='Controller site name (default: from configuration)',
)


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
def list_clients(ctx, site: Optional[str], format: str):
    """
    List active clients of a site.

    Examples:

        serval clients list

        serval clients list --site branch --format json
    """
    try:
        cli_ctx = ctx.obj
        site = cli_ctx.site_or_default(site)

        with controller_session(cli_ctx) as api:
            found = api.list_clients(site)

        if format.lower() == 'json':
            click.echo(json.dumps([client.to_dict() for client in found], indent=2))
            return

        if not found:
            click.echo(f"No clients on site '{site}'.")
            return

        click.echo(f"Total clients: {len(found)}")
        click.echo()

        mac_width = max(max(len(c.mac) for c in found), len("MAC"))
        name_width = max(max(len(c.display_name) for c in found), len("Name"))
        ip_width = max(max(len(c.ip or "-") for c in found), len("IP"))

        header = f"{'MAC':<{mac_width}}  {'Name':<{name_width}}  {'IP':<{ip_width}}  Status"
        click.echo(header)
        click.echo("-" * len(header))

        for client in found:
            state = "blocked" if client.blocked else ("wired" if client.is_wired else "wireless")
            click.echo(
                f"{client.mac:<{mac_width}}  {client.display_name:<{name_width}}  "
                f"{(client.ip or '-'):<{ip_width}}  {state}"
            )

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


def _station_command(ctx, site: Optional[str], mac: str, block_station: bool) -> None:
    try:
        cli_ctx = ctx.obj
        site = cli_ctx.site_or_default(site)

        with controller_session(cli_ctx) as api:
            if block_station:
                api.block_client(site, mac)
            else:
                api.unblock_client(site, mac)

        action = "Blocked" if block_station else "Unblocked"
        click.echo(f"✓ {action} {mac.upper()} on site '{site}'")

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@click.command('block')
@click.argument('mac')
@site_option
@click.pass_context
def block(ctx, mac: str, site: Optional[str]):
    """
    Block a client by MAC address.

    Examples:

        serval clients block aa:bb:cc:dd:ee:ff
    """
    _station_command(ctx, site, mac, block_station=True)


@click.command('unblock')
@click.argument('mac')
@site_option
@click.pass_context
def unblock(ctx, mac: str, site: Optional[str]):
    """
    Unblock a client by MAC address.

    Examples:

        serval clients unblock aa:bb:cc:dd:ee:ff --site default
    """
    _station_command(ctx, site, mac, block_station=False)
