"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

CLI context for Serval.

Provides shared context object and helpers for CLI commands.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import click

from serval.api import ControllerAPI
from serval.config.settings import ServalConfig, get_default_config


class CLIContext:
    """Context object for CLI commands."""

    def __init__(self):
        self.config: Optional[ServalConfig] = None
        self.config_path: Optional[str] = None
        self.verbose = False

    def get_config(self) -> ServalConfig:
        if self.config is None:
            self.config = get_default_config()
        return self.config

    def site_or_default(self, site: Optional[str]) -> str:
        return site or self.get_config().controller.default_site


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


@contextmanager
def controller_session(cli_ctx: CLIContext) -> Iterator[ControllerAPI]:
    """
    Open the controller API for one command and save the session afterwards.

    The session is saved only when the command body completes, so the next
    invocation reuses a cookie refreshed by a login during this one.
    """
    api = ControllerAPI.from_config(cli_ctx.get_config())
    try:
        yield api
        api.write_config()
    finally:
        api.close()
