# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""distroctl CLI package."""

from pathlib import Path

import click

from distroctl import __version__
from distroctl.utils.logging import configure_logging, log_startup_info


@click.group()
@click.version_option(version=__version__, prog_name="distroctl")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.config/distroctl/config.yml)",
)
@click.option(
    "--backend",
    type=click.Choice(["auto", "docker", "wsl"]),
    help="Backend to use (overrides config)",
)
@click.option("--debug", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config_path, backend, debug):
    """distroctl - Boot Linux distros and check their systemd user daemon."""
    configure_logging(debug=debug)
    log_startup_info()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {"backend": backend} if backend else {}


def main():
    cli(obj={})


# Register commands
from distroctl.cli.commands import distro  # noqa: E402,F401
