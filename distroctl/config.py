# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Harness configuration loading and backend resolution."""

import logging
import os
import platform
import shutil
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from distroctl.errors import ConfigError
from distroctl.models.config import HarnessConfig
from distroctl.paths import HostPaths

logger = logging.getLogger(__name__)

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "DISTROCTL_BACKEND": "backend",
    "DISTROCTL_DOCKER_IMAGE": "docker.image",
    "DISTROCTL_WSL_TARBALL": "wsl.tarball",
    "DISTROCTL_READY_TIMEOUT": "ready_timeout",
}


def _set_dotted(config: Dict[str, Any], dotted_key: str, value: Any) -> None:
    """Set a nested key like 'docker.image' in a raw config dict."""
    *parents, leaf = dotted_key.split(".")
    node = config
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[leaf] = value


def apply_env_overrides(
    raw_config: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Apply DISTROCTL_* environment overrides to a raw config dict."""
    environ = os.environ if environ is None else environ
    for var, key in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            logger.debug(f"Config override from {var}: {key}={value}")
            _set_dotted(raw_config, key, value)
    return raw_config


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> HarnessConfig:
    """Load harness configuration.

    Precedence (lowest to highest): model defaults, YAML file, environment,
    explicit overrides (dotted keys, e.g. from CLI flags).

    Raises:
        ConfigError: If the file cannot be parsed or values are invalid
    """
    config_path = path or HostPaths.config_file()
    raw_config: Dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                raw_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config {config_path}: {e}") from e
        if not isinstance(raw_config, dict):
            raise ConfigError(f"Config {config_path} must be a mapping")
        logger.debug(f"Loaded config from {config_path}")

    apply_env_overrides(raw_config, environ)
    for key, value in (overrides or {}).items():
        if value is not None:
            _set_dotted(raw_config, key, value)

    try:
        return HarnessConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration: {e}",
            hint=f"Check {config_path} and DISTROCTL_* environment variables",
        ) from e


def is_wsl() -> bool:
    """Check if we are running inside a WSL distro."""
    if os.environ.get("WSL_INTEROP"):
        return True
    try:
        return "microsoft" in Path(HostPaths.OSRELEASE).read_text().lower()
    except OSError:
        return False


def can_use_wsl(executable: str = "wsl.exe") -> bool:
    """Check if this host can drive wsl.exe (Windows, or WSL interop)."""
    if platform.system() != "Windows" and not is_wsl():
        return False
    return shutil.which(executable) is not None


def resolve_backend(config: HarnessConfig) -> str:
    """Resolve 'auto' into a concrete backend name."""
    if config.backend != "auto":
        return config.backend
    if config.wsl.tarball and can_use_wsl(config.wsl.executable):
        return "wsl"
    return "docker"


_config: Optional[HarnessConfig] = None


def get_config() -> HarnessConfig:
    """Get the global harness configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
