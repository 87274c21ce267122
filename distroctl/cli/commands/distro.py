# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Distro lifecycle commands (boot, wait, run, check, remove, info)."""

import sys

import click
from rich.table import Table

from distroctl.cli import cli
from distroctl.cli.helpers import console, get_distro, get_harness_config, handle_errors
from distroctl.config import resolve_backend
from distroctl.paths import HostPaths
from distroctl.utils.logging import get_logger

logger = get_logger(__name__)


@cli.command()
@click.option("--name", help="Instance name (default: generated)")
@click.option("--wait/--no-wait", "wait_ready", default=False, help="Wait for the user daemon")
@click.pass_context
@handle_errors
def boot(ctx, name, wait_ready):
    """Boot a distro instance and print its name."""
    distro = get_distro(ctx, name=name)
    distro.start()
    if wait_ready and not distro.wait_for_user_daemon():
        logger.error(f"User daemon in {distro.name} did not become ready")
        sys.exit(1)
    logger.success(f"Booted {distro.name} ({distro.backend})")
    click.echo(distro.name)


@cli.command()
@click.argument("name")
@click.option("--timeout", type=float, help="Seconds to wait (default: ready_timeout)")
@click.option("--system", is_flag=True, help="Wait for the system manager instead")
@click.pass_context
@handle_errors
def wait(ctx, name, timeout, system):
    """Wait until the user daemon (or system manager) in NAME is ready."""
    distro = get_distro(ctx, name=name)
    if system:
        what, ready = "System manager", distro.wait_for_system(timeout)
    else:
        what, ready = "User daemon", distro.wait_for_user_daemon(timeout)

    if not ready:
        logger.error(f"{what} in {name} not ready")
        sys.exit(1)
    logger.success(f"{what} in {name} ready")


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("name")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--user", "-u", help="User to run as")
@click.pass_context
@handle_errors
def run(ctx, name, command, user):
    """Run COMMAND in NAME and exit with its exit code.

    A single argument runs through sh -c; several run as argv.

    Example: distroctl run my-distro -- systemctl --user status
    """
    distro = get_distro(ctx, name=name)
    result = distro.run(command[0] if len(command) == 1 else list(command), user=user)
    if result.stdout:
        click.echo(result.stdout, nl=False)
    if result.stderr:
        click.echo(result.stderr, nl=False, err=True)
    sys.exit(result.exit_code)


@cli.command()
@click.option("--name", help="Instance name (default: generated)")
@click.option("--timeout", type=float, help="Readiness timeout (default: ready_timeout)")
@click.option("--keep", is_flag=True, help="Keep the instance after the check")
@click.pass_context
@handle_errors
def check(ctx, name, timeout, keep):
    """Boot, wait for the user daemon, run the status command, tear down."""
    distro = get_distro(ctx, name=name, ready_timeout=timeout)
    config = distro.config
    # A failed boot removes only what it created; an existing instance is left alone
    distro.start()
    passed = False
    try:
        logger.info(f"Waiting up to {config.ready_timeout}s for the user daemon")
        if not distro.wait_for_user_daemon():
            logger.error(f"User daemon in {distro.name} not ready after {config.ready_timeout}s")
        else:
            result = distro.run(config.status_command)
            if result.ok:
                passed = True
                logger.success(f"'{config.status_command}' succeeded in {distro.name}")
            else:
                logger.error(f"'{config.status_command}' exited {result.exit_code}")
                logger.print(result.output.strip(), style="dim")
    finally:
        if keep:
            logger.warning(
                f"Keeping {distro.name}; remove it with: distroctl remove {distro.name}"
            )
        else:
            distro.uninstall()

    if not passed:
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.pass_context
@handle_errors
def remove(ctx, name):
    """Stop and remove the distro instance NAME."""
    get_distro(ctx, name=name).uninstall()
    logger.success(f"Removed {name}")


@cli.command()
@click.pass_context
@handle_errors
def info(ctx):
    """Show the effective configuration and resolved backend."""
    config = get_harness_config(ctx)

    table = Table(title="distroctl", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    config_path = ctx.find_root().obj.get("config_path") or HostPaths.config_file()
    table.add_row("Config file", str(config_path))
    table.add_row("Backend", f"{config.backend} -> {resolve_backend(config)}")
    table.add_row("Ready timeout", f"{config.ready_timeout}s")
    table.add_row("Poll interval", f"{config.poll_interval}s")
    table.add_row("Readiness command", config.readiness_command)
    table.add_row("Status command", config.status_command)
    table.add_row("Docker image", config.docker.image)
    table.add_row("Docker user", config.docker.user)
    table.add_row("WSL tarball", config.wsl.tarball or "-")
    table.add_row("WSL user", config.wsl.user or "(default)")
    console.print(table)
