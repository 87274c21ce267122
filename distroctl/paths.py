# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized path definitions for distroctl.

Paths are organized by context:

- HostPaths: Paths on the host machine (where distroctl and pytest run)
- GuestPaths: Paths inside the booted distro

Usage:
    from distroctl.paths import HostPaths, GuestPaths

    config_file = HostPaths.config_file()
    runtime_dir = GuestPaths.user_runtime_dir(1000)
"""

import os
from pathlib import Path


class HostPaths:
    """Paths on the host machine."""

    @staticmethod
    def config_dir() -> Path:
        """~/.config/distroctl/"""
        return Path.home() / ".config" / "distroctl"

    @staticmethod
    def config_file() -> Path:
        """Config file, overridable with DISTROCTL_CONFIG."""
        env_config = os.environ.get("DISTROCTL_CONFIG")
        if env_config:
            return Path(env_config).expanduser()
        return HostPaths.config_dir() / "config.yml"

    @staticmethod
    def data_dir() -> Path:
        """~/.local/share/distroctl/"""
        return Path.home() / ".local" / "share" / "distroctl"

    @staticmethod
    def wsl_install_dir(name: str) -> Path:
        """~/.local/share/distroctl/distros/<name> - Imported WSL distro disks."""
        return HostPaths.data_dir() / "distros" / name

    @staticmethod
    def state_dir() -> Path:
        """~/.local/state/distroctl/"""
        return Path.home() / ".local" / "state" / "distroctl"

    @staticmethod
    def log_dir() -> Path:
        """~/.local/state/distroctl/logs/"""
        return HostPaths.state_dir() / "logs"

    # Kernel release string, used to detect WSL
    OSRELEASE = "/proc/sys/kernel/osrelease"


class GuestPaths:
    """Paths inside the booted distro."""

    CGROUP_ROOT = "/sys/fs/cgroup"

    @staticmethod
    def user_runtime_dir(uid: int) -> str:
        """/run/user/<uid> - XDG runtime dir of a user session."""
        return f"/run/user/{uid}"

    @staticmethod
    def user_bus(uid: int) -> str:
        """D-Bus address of the user service manager."""
        return f"unix:path={GuestPaths.user_runtime_dir(uid)}/bus"
