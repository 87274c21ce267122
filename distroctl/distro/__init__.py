# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Distro backends and the factory that picks one."""

import uuid
from typing import Optional

from distroctl.config import get_config, resolve_backend
from distroctl.distro.base import CommandResult, Distro, TIMEOUT_EXIT_CODE
from distroctl.distro.docker_distro import DockerDistro
from distroctl.distro.wsl_distro import WslDistro
from distroctl.errors import ConfigError
from distroctl.models.config import HarnessConfig

BACKENDS = {
    "docker": DockerDistro,
    "wsl": WslDistro,
}


def generate_name(prefix: str) -> str:
    """Unique instance name like 'distroctl-test-1a2b3c4d'."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def create_distro(
    config: Optional[HarnessConfig] = None,
    name: Optional[str] = None,
) -> Distro:
    """Build a (not yet booted) Distro for the configured backend.

    Args:
        config: Harness configuration (defaults to the global config)
        name: Instance name (defaults to a generated unique name)
    """
    config = config or get_config()
    backend = resolve_backend(config)
    try:
        distro_cls = BACKENDS[backend]
    except KeyError:
        raise ConfigError(f"Unknown backend: {backend}") from None
    return distro_cls(name or generate_name(config.name_prefix), config)


__all__ = [
    "BACKENDS",
    "CommandResult",
    "Distro",
    "DockerDistro",
    "TIMEOUT_EXIT_CODE",
    "WslDistro",
    "create_distro",
    "generate_name",
]
