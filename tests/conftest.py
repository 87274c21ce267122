# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pytest fixtures for distroctl tests.

Unit tests fake the backends (Docker SDK client, wsl.exe via subprocess).
Integration tests request the `distro` fixture from distroctl.pytest_plugin
and boot a real instance; they skip when the backend is unavailable.
"""

import subprocess
from typing import Callable, Iterable, List, Optional
from unittest.mock import patch

import pytest

from distroctl.distro.base import CommandResult, Distro
from distroctl.distro.wsl_distro import USER_BUS_SCRIPT
from distroctl.models.config import HarnessConfig

pytest_plugins = ["distroctl.pytest_plugin", "pytester"]

WSL_EXE = "/mnt/c/Windows/system32/wsl.exe"


class ScriptedDistro(Distro):
    """In-memory Distro whose command results are scripted per command.

    With creates=False, _boot fails (if told to) before creating anything,
    like a backend refusing a name that is already taken.
    """

    backend = "scripted"

    def __init__(self, name: str, config: HarnessConfig, results: Optional[dict] = None):
        super().__init__(name, config)
        self.results = {key: list(value) for key, value in (results or {}).items()}
        self.calls: List[tuple] = []
        self.boot_count = 0
        self.uninstall_count = 0
        self.fail_boot: Optional[Exception] = None
        self.creates = True

    def _boot(self) -> None:
        self.boot_count += 1
        if self.creates:
            self._claim()
        if self.fail_boot is not None:
            raise self.fail_boot

    def uninstall(self) -> None:
        self.uninstall_count += 1
        self._forget()

    def run(self, command, user=None, timeout=None) -> CommandResult:
        self.calls.append((command, user, timeout))
        key = command if isinstance(command, str) else " ".join(command)
        queue = self.results.get(key)
        if not queue:
            return CommandResult(0)
        # Last scripted result repeats
        return queue.pop(0) if len(queue) > 1 else queue[0]


@pytest.fixture
def config() -> HarnessConfig:
    """Config with short timings for unit tests."""
    return HarnessConfig(ready_timeout=1.0, poll_interval=0.01, probe_timeout=5.0)


@pytest.fixture
def make_distro(config) -> Callable[..., ScriptedDistro]:
    """Factory for scripted distros: make_distro({"cmd": [CommandResult, ...]})."""

    def _make(results: Optional[dict] = None, name: str = "scripted-1") -> ScriptedDistro:
        return ScriptedDistro(name, config, results)

    return _make


def results(*exit_codes: int, stdout: str = "") -> Iterable[CommandResult]:
    return [CommandResult(code, stdout) for code in exit_codes]


@pytest.fixture
def exit_codes() -> Callable[..., Iterable[CommandResult]]:
    """Shorthand for a list of CommandResults with the given exit codes."""
    return results


# ============================================================================
# Fake wsl.exe
# ============================================================================


def utf16(text: str) -> bytes:
    return text.encode("utf-16-le")


class FakeWsl:
    """Stands in for wsl.exe, tracking registered distros.

    Commands run inside a distro are recorded in `executed` without the
    user bus wrapper; exec_results is keyed by the space-joined argv.
    """

    def __init__(self):
        self.registered = set()
        self.calls = []
        self.executed = []
        self.exec_results = {}
        self.import_returncode = 0
        self.unregister_returncode = 0
        self.list_failure: Optional[tuple] = None

    def __call__(self, cmd, capture_output=True, timeout=None, env=None, **kwargs):
        assert cmd[0] == WSL_EXE
        assert env["WSL_UTF8"] == "1"
        args = cmd[1:]
        self.calls.append(args)

        if args[:2] == ["--list", "--quiet"]:
            if self.list_failure is not None:
                return self._done(cmd, *self.list_failure)
            if not self.registered:
                message = utf16("Windows Subsystem for Linux has no installed distributions.\r\n")
                return self._done(cmd, -1, message)
            listing = "".join(f"{name}\r\n" for name in sorted(self.registered))
            return self._done(cmd, 0, utf16(listing))
        if args[0] == "--import":
            if self.import_returncode == 0:
                self.registered.add(args[1])
            return self._done(cmd, self.import_returncode, b"", utf16("Import failed\r\n"))
        if args[0] == "--terminate":
            return self._done(cmd, 0)
        if args[0] == "--unregister":
            if self.unregister_returncode == 0:
                self.registered.discard(args[1])
            return self._done(cmd, self.unregister_returncode)
        if args[0] == "-d":
            exec_args = args[args.index("--exec") + 1 :]
            assert exec_args[:4] == ["sh", "-c", USER_BUS_SCRIPT, "sh"]
            exec_args = exec_args[4:]
            self.executed.append(exec_args)
            result = self.exec_results.get(" ".join(exec_args), (0, b"", b""))
            if isinstance(result, Exception):
                raise result
            return self._done(cmd, *result)
        raise AssertionError(f"unexpected wsl.exe call: {args}")

    @staticmethod
    def _done(cmd, returncode, stdout=b"", stderr=b""):
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


@pytest.fixture
def wsl():
    """Patch wsl.exe with a FakeWsl on a non-WSL Linux host."""
    fake = FakeWsl()
    with patch("distroctl.distro.wsl_distro.shutil.which", return_value=WSL_EXE), patch(
        "distroctl.distro.wsl_distro.subprocess.run", side_effect=fake
    ), patch("distroctl.distro.wsl_distro.is_wsl", return_value=False):
        yield fake


@pytest.fixture
def tarball(tmp_path):
    path = tmp_path / "nixos.wsl"
    path.write_bytes(b"rootfs")
    return path
