"""
CLI entry point for Serval.

Provides command-line interface for credential management, client
management and wireless network management on a UniFi controller.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from serval._version import __version__
from serval.cli.context import CLIContext, pass_context
from serval.config.settings import get_default_config_path, load_config
from serval.exceptions import InvalidConfigurationError
from serval.logging_config import setup_logging


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help=f'Path to configuration file (default: {get_default_config_path()})',
)
@click.option(
    '--log-level',
    '-l',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help='Set logging level (default: from configuration)',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output',
)
@click.version_option(version=__version__, prog_name='serval')
@pass_context
def cli(ctx: CLIContext, config: Optional[Path], log_level: Optional[str], verbose: bool):
    """
    Serval - Client for UniFi network controllers.

    Manages clients and wireless networks through the controller's
    session-authenticated API, keeping the login session between runs.
    """
    ctx.verbose = verbose
    ctx.config_path = str(config) if config else None

    try:
        ctx.config = load_config(ctx.config_path)
    except InvalidConfigurationError as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(1)

    try:
        effective_log_level = log_level.upper() if log_level else ctx.config.logging.level
        log_file = Path(ctx.config.logging.file) if ctx.config.logging.file else None
        setup_logging(
            level=effective_log_level,
            log_file=log_file,
            json_format=ctx.config.logging.format == "json",
        )

        if verbose:
            logger = logging.getLogger("serval")
            logger.info(f"Loaded configuration from: {ctx.config_path or 'defaults'}")
            logger.info(f"Log level: {effective_log_level}")
    except OSError as e:
        click.echo(f"Error: Failed to set up logging: {e}", err=True)
        sys.exit(1)


@cli.group()
def auth():
    """Manage controller credentials and the login session."""
    pass


from serval.cli.auth import init, login, status
auth.add_command(init)
auth.add_command(login)
auth.add_command(status)


@cli.group()
def clients():
    """List, block and unblock clients."""
    pass


from serval.cli.clients import block, list_clients, unblock
clients.add_command(list_clients, name='list')
clients.add_command(block)
clients.add_command(unblock)


@cli.group()
def wlan():
    """List, enable and disable wireless networks."""
    pass


from serval.cli.wlan import disable, enable, list_networks
wlan.add_command(list_networks, name='list')
wlan.add_command(enable)
wlan.add_command(disable)


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
