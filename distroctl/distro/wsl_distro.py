# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""WSL backend: a distro imported from a root filesystem tarball."""

import logging
import os
import platform
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from distroctl.config import is_wsl
from distroctl.distro.base import TIMEOUT_EXIT_CODE, Command, CommandResult, Distro, shell_argv
from distroctl.errors import BackendUnavailableError, DistroError
from distroctl.models.config import HarnessConfig
from distroctl.paths import HostPaths

logger = logging.getLogger(__name__)

# Importing unpacks the whole tarball
IMPORT_TIMEOUT = 600
# First start of a distro includes systemd coming up
START_TIMEOUT = 120
MANAGE_TIMEOUT = 60

# wsl.exe --list fails with this when nothing is installed
NO_DISTROS_MARKERS = ("WSL_E_DEFAULT_DISTRO_NOT_FOUND", "no installed distributions")

# Runs "$@" with the user bus variables of whoever runs it. WSLg points
# XDG_RUNTIME_DIR at its own directory, where systemctl --user finds no bus.
USER_BUS_SCRIPT = (
    'XDG_RUNTIME_DIR="/run/user/$(id -u)"; '
    'DBUS_SESSION_BUS_ADDRESS="unix:path=$XDG_RUNTIME_DIR/bus"; '
    'export XDG_RUNTIME_DIR DBUS_SESSION_BUS_ADDRESS; exec "$@"'
)


def decode_wsl_output(data: Optional[bytes]) -> str:
    """Decode wsl.exe output.

    wsl.exe writes its own messages as UTF-16LE unless WSL_UTF8 is honored;
    output of commands inside the distro is UTF-8.
    """
    if not data:
        return ""
    if b"\x00" in data:
        return data.decode("utf-16-le", errors="replace").replace("\x00", "")
    return data.decode("utf-8", errors="replace")


class WslDistro(Distro):
    """Distro managed through wsl.exe."""

    backend = "wsl"

    def __init__(self, name: str, config: HarnessConfig):
        super().__init__(name, config)
        self.settings = config.wsl

    @property
    def default_user(self) -> Optional[str]:
        return self.settings.user

    @property
    def install_dir(self) -> Path:
        if self.settings.install_dir:
            return Path(self.settings.install_dir).expanduser() / self.name
        return HostPaths.wsl_install_dir(self.name)

    def _executable(self) -> str:
        executable = shutil.which(self.settings.executable)
        if executable is None:
            raise BackendUnavailableError(
                f"{self.settings.executable} not found",
                hint="The WSL backend needs Windows or a WSL distro with interop enabled",
            )
        return executable

    def _wsl(self, *args: str, timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        """Run wsl.exe with raw (bytes) output."""
        cmd = [self._executable(), *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        env = {**os.environ, "WSL_UTF8": "1"}
        return subprocess.run(cmd, capture_output=True, timeout=timeout, env=env)

    def _host_path(self, path: Path) -> str:
        """Path as wsl.exe (a Windows program) understands it."""
        if platform.system() == "Windows" or not is_wsl():
            return str(path)
        result = subprocess.run(
            ["wslpath", "-w", str(path)], capture_output=True, text=True, timeout=10
        )
        if result.returncode != 0:
            raise DistroError(f"Cannot translate {path} to a Windows path", output=result.stderr)
        return result.stdout.strip()

    # ========== Lifecycle ==========

    def registered_distros(self) -> List[str]:
        """Names of all registered WSL distros."""
        result = self._wsl("--list", "--quiet", timeout=MANAGE_TIMEOUT)
        output = decode_wsl_output(result.stdout)
        if result.returncode != 0:
            message = output + decode_wsl_output(result.stderr)
            if any(marker in message for marker in NO_DISTROS_MARKERS):
                return []
            raise DistroError(
                f"wsl --list failed (exit {result.returncode})",
                output=message,
            )
        return [line.strip() for line in output.splitlines() if line.strip()]

    def is_registered(self) -> bool:
        return self.name in self.registered_distros()

    def _boot(self) -> None:
        if self.is_registered():
            if not self.settings.reuse_existing:
                raise DistroError(
                    f"WSL distro {self.name} already exists",
                    hint=f"Remove it with 'distroctl remove {self.name}' or set wsl.reuse_existing",
                )
            logger.info(f"Reusing registered WSL distro {self.name}")
        else:
            self._claim()
            self._import()

        result = self.run(["true"], timeout=START_TIMEOUT)
        if not result.ok:
            raise DistroError(
                f"WSL distro {self.name} failed to start (exit {result.exit_code})",
                output=result.output,
            )

    def _import(self) -> None:
        if not self.settings.tarball:
            raise BackendUnavailableError(
                "No WSL tarball configured",
                hint="Set wsl.tarball in the config or DISTROCTL_WSL_TARBALL",
            )
        tarball = Path(self.settings.tarball).expanduser()
        if not tarball.is_file():
            raise BackendUnavailableError(f"WSL tarball not found: {tarball}")

        install_dir = self.install_dir
        install_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Importing {tarball} into {install_dir}")

        result = self._wsl(
            "--import",
            self.name,
            self._host_path(install_dir),
            self._host_path(tarball),
            "--version",
            str(self.settings.version),
            timeout=IMPORT_TIMEOUT,
        )
        if result.returncode != 0:
            output = decode_wsl_output(result.stdout) + decode_wsl_output(result.stderr)
            raise DistroError(
                f"wsl --import failed for {self.name} (exit {result.returncode})",
                output=output,
            )

    def uninstall(self) -> None:
        self._forget()

        if self.is_registered():
            logger.info(f"Unregistering WSL distro {self.name}")
            self._wsl("--terminate", self.name, timeout=MANAGE_TIMEOUT)
            result = self._wsl("--unregister", self.name, timeout=MANAGE_TIMEOUT)
            if result.returncode != 0:
                raise DistroError(
                    f"wsl --unregister failed for {self.name} (exit {result.returncode})",
                    output=decode_wsl_output(result.stdout) + decode_wsl_output(result.stderr),
                )
        else:
            logger.debug(f"WSL distro {self.name} not registered")

        if self.install_dir.exists():
            shutil.rmtree(self.install_dir, ignore_errors=True)

    # ========== Commands ==========

    def run(
        self,
        command: Command,
        user: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        user = user or self.default_user
        args = ["-d", self.name]
        if user:
            args += ["-u", user]
        args += ["--exec", "sh", "-c", USER_BUS_SCRIPT, "sh", *shell_argv(command)]

        try:
            result = self._wsl(*args, timeout=timeout)
        except subprocess.TimeoutExpired:
            return CommandResult(TIMEOUT_EXIT_CODE, "", f"Timed out after {timeout}s")

        return CommandResult(
            result.returncode,
            decode_wsl_output(result.stdout),
            decode_wsl_output(result.stderr),
        )
