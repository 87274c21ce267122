# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Distro lifecycle contract shared by all backends.

A Distro is a bootable Linux instance under test. Backends implement
_boot(), run() and uninstall(); readiness polling, diagnostics and the
context manager protocol live here.

Usage:
    with create_distro(config) as distro:
        assert distro.wait_for_user_daemon(timeout=30)
        assert distro.launch("systemctl --user status") == 0
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from distroctl.errors import DistroctlError
from distroctl.models.config import HarnessConfig
from distroctl.polling import wait_until

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]

# Exit code reported when a command exceeds its timeout (same as timeout(1))
TIMEOUT_EXIT_CODE = 124

# systemctl is-system-running states that mean boot has finished
SYSTEM_READY_STATES = ("running", "degraded")

DIAGNOSTIC_COMMANDS = [
    ("Failed system units", "systemctl --failed --no-pager", "root"),
    ("Failed user units", "systemctl --user --failed --no-pager", None),
    ("Journal (last 100 lines)", "journalctl -b --no-pager -n 100", "root"),
]


@dataclass
class CommandResult:
    """Result of a command run inside a distro."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return self.stdout + self.stderr


def shell_argv(command: Command) -> List[str]:
    """Turn a command into argv; strings run through sh -c."""
    if isinstance(command, str):
        return ["sh", "-c", command]
    return [str(part) for part in command]


class Distro(ABC):
    """A bootable Linux environment instance."""

    backend = "base"

    def __init__(self, name: str, config: HarnessConfig):
        self.name = name
        self.config = config
        self._booted = False
        self._owned = False
        self._user_session_prepared = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @property
    def default_user(self) -> Optional[str]:
        """User commands run as when none is given (None = distro default)."""
        return None

    # ========== Lifecycle ==========

    def boot(self) -> None:
        """Create and start the instance. No-op if already booted."""
        if self._booted:
            return
        logger.info(f"Booting {self.backend} distro {self.name}")
        self._boot()
        self._booted = True
        self._owned = True
        logger.info(f"Distro {self.name} booted")

    @abstractmethod
    def _boot(self) -> None:
        """Backend-specific create/import and start.

        Must call _claim() once the name is known to be free and before
        creating anything, so a failed boot only cleans up what it made.
        """

    @abstractmethod
    def uninstall(self) -> None:
        """Stop and remove the instance.

        Must be safe to call repeatedly and after a partial boot.
        """

    @property
    def owned(self) -> bool:
        """True once this object created the instance or booted it."""
        return self._owned

    def _claim(self) -> None:
        self._owned = True

    def _forget(self) -> None:
        """Reset lifecycle state after the instance is gone."""
        self._booted = False
        self._owned = False
        self._user_session_prepared = False

    def start(self) -> "Distro":
        """Boot, removing whatever this boot created if it fails."""
        try:
            self.boot()
        except Exception:
            self._cleanup_after_failed_boot()
            raise
        return self

    def __enter__(self) -> "Distro":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.uninstall()
        return False

    def _cleanup_after_failed_boot(self) -> None:
        if not self._owned:
            logger.debug(f"Boot of {self.name} created nothing, skipping cleanup")
            return
        try:
            self.uninstall()
        except DistroctlError as e:
            # The boot error is the one worth reporting
            logger.warning(f"Cleanup after failed boot of {self.name} failed: {e}")

    # ========== Commands ==========

    @abstractmethod
    def run(
        self,
        command: Command,
        user: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run a command inside the distro.

        Args:
            command: Shell string (run via sh -c) or argv list
            user: User to run as (defaults to default_user)
            timeout: Seconds before the command counts as failed with
                TIMEOUT_EXIT_CODE

        Raises:
            DistroError: If the backend cannot execute the command at all
        """

    def launch(self, command: Command, user: Optional[str] = None) -> int:
        """Run a command and return its exit code."""
        result = self.run(command, user=user)
        logger.debug(f"{self.name}: {command!r} exited {result.exit_code}")
        return result.exit_code

    # ========== Readiness ==========

    def _prepare_user_session(self) -> bool:
        """Make sure a user service manager gets started.

        Returns True when done. Called on every poll attempt until it
        succeeds.
        """
        return True

    def _user_daemon_ready(self) -> bool:
        if not self._user_session_prepared:
            self._user_session_prepared = self._prepare_user_session()
            if not self._user_session_prepared:
                return False
        result = self.run(self.config.readiness_command, timeout=self.config.probe_timeout)
        return result.ok

    def _system_ready(self) -> bool:
        result = self.run(
            "systemctl is-system-running", user="root", timeout=self.config.probe_timeout
        )
        return result.stdout.strip() in SYSTEM_READY_STATES

    def wait_for_user_daemon(self, timeout: Optional[float] = None) -> bool:
        """Wait until the user service manager answers on its bus.

        Args:
            timeout: Seconds to wait (defaults to config.ready_timeout)

        Returns:
            True if ready, False on timeout
        """
        timeout = timeout or self.config.ready_timeout
        ready = wait_until(
            self._user_daemon_ready,
            timeout=timeout,
            interval=self.config.poll_interval,
            description=f"user daemon in {self.name}",
        )
        if not ready:
            self._report_timeout("user daemon", timeout)
        return ready

    def wait_for_system(self, timeout: Optional[float] = None) -> bool:
        """Wait until the system manager reports running or degraded."""
        timeout = timeout or self.config.ready_timeout
        ready = wait_until(
            self._system_ready,
            timeout=timeout,
            interval=self.config.poll_interval,
            description=f"system manager in {self.name}",
        )
        if not ready:
            self._report_timeout("system manager", timeout)
        return ready

    def _report_timeout(self, what: str, timeout: float) -> None:
        logger.warning(f"{what} in {self.name} not ready after {timeout}s")
        if self.config.collect_diagnostics:
            logger.warning(f"Diagnostics for {self.name}:\n{self.collect_diagnostics()}")

    def collect_diagnostics(self) -> str:
        """Gather failed units and the journal tail for failure reports."""
        sections = []
        for title, command, user in DIAGNOSTIC_COMMANDS:
            try:
                result = self.run(command, user=user, timeout=self.config.probe_timeout)
                body = result.output.strip() or f"(no output, exit {result.exit_code})"
            except DistroctlError as e:
                body = f"(unavailable: {e})"
            sections.append(f"== {title} ==\n{body}")
        return "\n\n".join(sections)
