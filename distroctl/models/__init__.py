# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT

"""Pydantic models for distroctl."""

from distroctl.models.config import DockerSettings, HarnessConfig, WslSettings

__all__ = ["DockerSettings", "HarnessConfig", "WslSettings"]
