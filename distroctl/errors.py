# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Exception classes for distroctl.

These bubble up to the CLI's handle_errors decorator, which formats them
as panels, or to pytest where they fail the test with their message.
"""

from typing import Optional


class DistroctlError(Exception):
    """Base class for all distroctl errors."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class ConfigError(DistroctlError):
    """Raised when the configuration file is unreadable or invalid."""


class BackendUnavailableError(DistroctlError):
    """Raised when a backend cannot be used on this host.

    Covers an unreachable Docker daemon, a missing wsl.exe, and missing
    inputs like the distro tarball.
    """


class DistroError(DistroctlError):
    """Raised when a lifecycle operation (import, create, start) fails."""

    def __init__(self, message: str, hint: Optional[str] = None, output: str = ""):
        super().__init__(message, hint=hint)
        self.output = output
