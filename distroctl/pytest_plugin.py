# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""pytest plugin providing booted distro fixtures.

Enable it from a conftest.py:

    pytest_plugins = ["distroctl.pytest_plugin"]

Then request the `distro` fixture:

    def test_user_daemon(distro):
        assert distro.wait_for_user_daemon(timeout=30)
        assert distro.launch("systemctl --user status") == 0
"""

from typing import Generator

import docker
import pytest

from distroctl.config import can_use_wsl, load_config, resolve_backend
from distroctl.distro import Distro, create_distro
from distroctl.models.config import HarnessConfig
from distroctl.utils.logging import configure_logging


# ============================================================================
# pytest configuration
# ============================================================================


def pytest_addoption(parser):
    group = parser.getgroup("distroctl", "distro instances under test")
    group.addoption(
        "--distro-backend",
        choices=["auto", "docker", "wsl"],
        default=None,
        help="Backend for booted distros (default: config or auto)",
    )
    group.addoption("--distro-image", default=None, help="Docker image with systemd")
    group.addoption("--distro-tarball", default=None, help="Root filesystem tarball for WSL")
    group.addoption(
        "--distro-ready-timeout",
        type=float,
        default=None,
        help="Seconds to wait for readiness",
    )


def pytest_configure(config):
    """Configure pytest markers and logging."""
    config.addinivalue_line("markers", "integration: boots a real distro instance")
    config.addinivalue_line("markers", "slow: marks tests as slow (>30s)")
    configure_logging()


# ============================================================================
# Session-wide fixtures
# ============================================================================


@pytest.fixture(scope="session")
def harness_config(pytestconfig) -> HarnessConfig:
    """Harness configuration: config file, environment, then command line."""
    return load_config(
        overrides={
            "backend": pytestconfig.getoption("--distro-backend"),
            "docker.image": pytestconfig.getoption("--distro-image"),
            "wsl.tarball": pytestconfig.getoption("--distro-tarball"),
            "ready_timeout": pytestconfig.getoption("--distro-ready-timeout"),
        }
    )


@pytest.fixture(scope="session")
def backend_available(harness_config) -> str:
    """Resolved backend name. Skips tests if it cannot run on this host."""
    backend = resolve_backend(harness_config)

    if backend == "docker":
        try:
            docker.from_env().ping()
        except docker.errors.DockerException:
            pytest.skip("Docker not available")
    elif backend == "wsl":
        if not can_use_wsl(harness_config.wsl.executable):
            pytest.skip("wsl.exe not available")
        if not harness_config.wsl.tarball:
            pytest.skip("No WSL tarball configured")

    return backend


# ============================================================================
# Function-scoped fixtures
# ============================================================================


@pytest.fixture
def distro(harness_config, backend_available) -> Generator[Distro, None, None]:
    """A freshly booted distro instance.

    The instance is uninstalled after the test whether it passed or not.
    """
    with create_distro(harness_config) as instance:
        yield instance
