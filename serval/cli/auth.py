"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

CLI commands for controller credentials.

Provides commands for writing the credentials file, logging in, and
showing what is stored.
"""

import sys

import click

from serval.cli.context import controller_session
from serval.core.session_store import Credentials, JSONFileAuthStore, SessionStore
from serval.exceptions import ServalError


def get_auth_store(config) -> JSONFileAuthStore:
    """
    Create JSONFileAuthStore instance from configuration.

    Args:
        config: Configuration object

    Returns:
        JSONFileAuthStore instance
    """
    return JSONFileAuthStore(
        config.storage.auth_store,
        backup_count=config.storage.backup_count,
    )


@click.command('init')
@click.option(
    '--host',
    '-H',
    required=True,
    help='Controller host name or address (without scheme or port)',
)
@click.option(
    '--username',
    '-u',
    required=True,
    help='Controller user name',
)
@click.option(
    '--password',
    '-p',
    prompt=True,
    hide_input=True,
    help='Controller password (prompted if omitted)',
)
@click.option(
    '--force',
    is_flag=True,
    help='Overwrite an existing credentials file',
)
@click.pass_context
def init(ctx, host: str, username: str, password: str, force: bool):
    """
    Write a fresh credentials file.

    Examples:

        serval auth init --host unifi.lan --username admin
    """
    try:
        cli_ctx = ctx.obj
        store = get_auth_store(cli_ctx.get_config())

        if store.path.exists() and not force:
            click.echo(
                f"Error: Credentials file {store.path} already exists (use --force to overwrite)",
                err=True
            )
            sys.exit(1)

        host = host.strip()
        if "://" in host or not host:
            click.echo("Error: --host takes a bare host name or address", err=True)
            sys.exit(1)

        store.save(Credentials(username=username, password=password, controller_host=host))

        click.echo("✓ Credentials saved")
        click.echo(f"Controller:  {host}")
        click.echo(f"Username:    {username}")
        click.echo(f"File:        {store.path}")

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.command('login')
@click.pass_context
def login(ctx):
    """
    Log in to the controller and save the new session cookie.

    Examples:

        serval auth login
    """
    try:
        cli_ctx = ctx.obj
        with controller_session(cli_ctx) as api:
            api.login()
            credentials = api.store.credentials

        click.echo(f"✓ Logged in to {credentials.controller_host} as {credentials.username}")

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@click.command('status')
@click.pass_context
def status(ctx):
    """
    Show the stored controller, user name and session cookies.

    Does not contact the controller.
    """
    try:
        cli_ctx = ctx.obj
        auth_store = get_auth_store(cli_ctx.get_config())
        credentials = SessionStore(auth_store).load()

        click.echo(f"Controller:  {credentials.controller_host}")
        click.echo(f"Username:    {credentials.username}")
        click.echo(f"Cookies:     {len(credentials.cookies)}")
        for cookie in credentials.cookies:
            expiry = "session" if cookie.expires is None else str(cookie.expires)
            click.echo(f"  {cookie.name} (domain={cookie.domain or '-'}, expires={expiry})")
        click.echo(f"File:        {auth_store.path}")

    except ServalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
