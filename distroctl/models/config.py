# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT

"""Pydantic models for harness configuration (~/.config/distroctl/config.yml)."""

import re
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Docker container names and WSL distro names share this safe subset
VALID_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")


class DockerSettings(BaseModel):
    """Docker backend settings.

    The image must run systemd as PID 1. With enable_linger the user's
    service manager is started through logind lingering, since a container
    has no login session that would start it.
    """

    model_config = ConfigDict(extra="forbid")

    image: str = "jrei/systemd-ubuntu:22.04"
    user: str = "root"
    privileged: bool = True
    enable_linger: bool = True
    command: Optional[Union[str, List[str]]] = None  # None = image default init


class WslSettings(BaseModel):
    """WSL backend settings."""

    model_config = ConfigDict(extra="forbid")

    executable: str = "wsl.exe"
    tarball: Optional[str] = None
    install_dir: Optional[str] = None  # default ~/.local/share/distroctl/distros/<name>
    version: Literal[1, 2] = 2
    user: Optional[str] = None  # distro default user
    reuse_existing: bool = False


class HarnessConfig(BaseModel):
    """Top-level harness configuration."""

    model_config = ConfigDict(extra="forbid")

    backend: Literal["auto", "docker", "wsl"] = "auto"
    name_prefix: str = "distroctl-test"
    ready_timeout: float = Field(default=30.0, gt=0)
    poll_interval: float = Field(default=1.0, gt=0)
    probe_timeout: float = Field(default=10.0, gt=0)
    readiness_command: str = "systemctl --user show-environment"
    status_command: str = "systemctl --user status"
    collect_diagnostics: bool = True
    docker: DockerSettings = Field(default_factory=DockerSettings)
    wsl: WslSettings = Field(default_factory=WslSettings)

    @field_validator("name_prefix")
    @classmethod
    def validate_name_prefix(cls, v: str) -> str:
        """Prefix ends up in container and distro names."""
        if not VALID_NAME_PATTERN.match(v):
            raise ValueError(f"Invalid name prefix: {v!r}")
        return v

    @field_validator("readiness_command", "status_command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Command must not be empty")
        return v
