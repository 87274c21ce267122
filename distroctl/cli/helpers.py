# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared helpers for the distroctl CLI."""

import functools
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from distroctl.config import load_config
from distroctl.distro import Distro, create_distro
from distroctl.errors import BackendUnavailableError, ConfigError, DistroctlError
from distroctl.models.config import HarnessConfig

console = Console()


def show_error_panel(title: str, message: str, hint: Optional[str] = None) -> None:
    """Display a formatted error panel.

    Args:
        title: Panel title (shown in red)
        message: Main error message
        hint: Optional hint text (shown with blue "Hint:" prefix)
    """
    content = message
    if hint:
        content += f"\n\n[blue]Hint:[/blue] {hint}"
    console.print(Panel(content, title=f"[red]{title}[/red]", border_style="red"))


def handle_errors(func: Callable) -> Callable:
    """Decorator that wraps CLI commands with standard error handling.

    Catches exceptions, prints error with nice formatting, and exits with code 1.
    Special handling for:
    - BackendUnavailableError: "Backend Unavailable" panel with hint
    - ConfigError: "Configuration Error" panel with hint
    - DistroctlError: "Distro Error" panel with hint and command output
    - ClickException: left to Click
    - Other exceptions: generic error panel
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except click.ClickException:
            raise
        except BackendUnavailableError as exc:
            show_error_panel("Backend Unavailable", escape(str(exc)), exc.hint)
            sys.exit(1)
        except ConfigError as exc:
            show_error_panel("Configuration Error", escape(str(exc)), exc.hint)
            sys.exit(1)
        except DistroctlError as exc:
            message = escape(str(exc))
            output = getattr(exc, "output", "")
            if output:
                message += f"\n\n[dim]{escape(output.strip())}[/dim]"
            show_error_panel("Distro Error", message, exc.hint)
            sys.exit(1)
        except Exception as exc:
            show_error_panel("Error", escape(str(exc)))
            sys.exit(1)

    return wrapper


def get_harness_config(ctx: click.Context, **overrides: Any) -> HarnessConfig:
    """Load config honoring the group's --config/--backend and command flags."""
    obj: Dict[str, Any] = ctx.find_root().obj or {}
    merged = dict(obj.get("overrides", {}))
    merged.update({key: value for key, value in overrides.items() if value is not None})
    config_path: Optional[Path] = obj.get("config_path")
    return load_config(path=config_path, overrides=merged)


def get_distro(ctx: click.Context, name: Optional[str] = None, **overrides: Any) -> Distro:
    """Build a Distro for the current CLI invocation."""
    return create_distro(get_harness_config(ctx, **overrides), name=name)
