# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Docker backend: a container running systemd as PID 1."""

import logging
import math
from typing import Dict, Optional

import docker
from docker.models.containers import Container

from distroctl.distro.base import Command, CommandResult, Distro, shell_argv
from distroctl.errors import BackendUnavailableError, DistroError
from distroctl.models.config import HarnessConfig
from distroctl.paths import GuestPaths

logger = logging.getLogger(__name__)

MANAGED_LABEL = "distroctl.managed"


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class DockerDistro(Distro):
    """Distro backed by a privileged systemd container."""

    backend = "docker"

    def __init__(
        self,
        name: str,
        config: HarnessConfig,
        client: Optional[docker.DockerClient] = None,
    ):
        super().__init__(name, config)
        self.settings = config.docker
        self._client = client
        self._container: Optional[Container] = None
        self._uids: Dict[str, int] = {"root": 0}

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
            except docker.errors.DockerException as e:
                raise BackendUnavailableError(
                    f"Could not connect to Docker: {e}",
                    hint="Is the Docker daemon running and is your user allowed to use it?",
                ) from e
        return self._client

    @property
    def default_user(self) -> Optional[str]:
        return self.settings.user

    def _find_container(self) -> Optional[Container]:
        try:
            return self.client.containers.get(self.name)
        except docker.errors.NotFound:
            return None
        except docker.errors.APIError as e:
            raise DistroError(f"Failed to look up container {self.name}: {e}") from e

    @property
    def container(self) -> Container:
        if self._container is None:
            self._container = self._find_container()
        if self._container is None:
            raise DistroError(
                f"Container {self.name} does not exist",
                hint="Boot it first with: distroctl boot",
            )
        return self._container

    # ========== Lifecycle ==========

    def _boot(self) -> None:
        existing = self._find_container()
        if existing is not None:
            logger.info(f"Attaching to existing container {self.name} ({existing.status})")
            if existing.status != "running":
                try:
                    existing.start()
                except docker.errors.APIError as e:
                    raise DistroError(f"Failed to start container {self.name}: {e}") from e
            self._container = existing
            return

        logger.debug(f"Creating container {self.name} from {self.settings.image}")
        self._claim()
        try:
            self._container = self.client.containers.run(
                self.settings.image,
                command=self.settings.command,
                name=self.name,
                detach=True,
                tty=True,
                privileged=self.settings.privileged,
                cgroupns="host",
                volumes={GuestPaths.CGROUP_ROOT: {"bind": GuestPaths.CGROUP_ROOT, "mode": "rw"}},
                tmpfs={"/run": "", "/run/lock": "", "/tmp": ""},
                labels={MANAGED_LABEL: "true"},
            )
        except docker.errors.ImageNotFound as e:
            raise DistroError(
                f"Image {self.settings.image} not found: {e}",
                hint="Set docker.image or DISTROCTL_DOCKER_IMAGE to an image with systemd",
            ) from e
        except docker.errors.APIError as e:
            raise DistroError(f"Failed to start container {self.name}: {e}") from e

    def uninstall(self) -> None:
        container = self._container or self._find_container()
        self._container = None
        self._forget()
        if container is None:
            logger.debug(f"Container {self.name} already gone")
            return

        logger.info(f"Removing container {self.name}")
        try:
            container.remove(force=True)
        except docker.errors.NotFound:
            logger.debug(f"Container {self.name} vanished during removal")
        except docker.errors.APIError as e:
            raise DistroError(f"Failed to remove container {self.name}: {e}") from e

    # ========== Commands ==========

    def _uid(self, user: str) -> int:
        if user not in self._uids:
            try:
                exit_code, output = self.container.exec_run(["id", "-u", user], user="root")
            except docker.errors.APIError as e:
                raise DistroError(f"Failed to look up user {user} in {self.name}: {e}") from e
            if exit_code != 0:
                raise DistroError(
                    f"Unknown user {user} in {self.name}", output=_decode(output)
                )
            self._uids[user] = int(_decode(output).strip())
        return self._uids[user]

    def _user_environment(self, user: str) -> Dict[str, str]:
        """Session variables systemctl --user needs to find the user bus."""
        uid = self._uid(user)
        return {
            "XDG_RUNTIME_DIR": GuestPaths.user_runtime_dir(uid),
            "DBUS_SESSION_BUS_ADDRESS": GuestPaths.user_bus(uid),
        }

    def run(
        self,
        command: Command,
        user: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        user = user or self.default_user or "root"
        argv = shell_argv(command)
        if timeout is not None:
            # exec has no timeout of its own; coreutils timeout exits 124 like ours
            argv = ["timeout", str(max(1, math.ceil(timeout)))] + argv

        try:
            exit_code, output = self.container.exec_run(
                argv,
                user=user,
                environment=self._user_environment(user),
                demux=True,
            )
        except docker.errors.APIError as e:
            raise DistroError(f"Failed to exec in {self.name}: {e}") from e

        stdout, stderr = output if output else (None, None)
        return CommandResult(exit_code, _decode(stdout), _decode(stderr))

    # ========== Readiness ==========

    def _prepare_user_session(self) -> bool:
        if not self.settings.enable_linger:
            return True
        user = self.default_user or "root"
        result = self.run(
            ["loginctl", "enable-linger", user], user="root", timeout=self.config.probe_timeout
        )
        if result.ok:
            logger.debug(f"Enabled lingering for {user} in {self.name}")
        return result.ok

    def collect_diagnostics(self) -> str:
        report = super().collect_diagnostics()
        try:
            logs = _decode(self.container.logs(tail=50))
        except (DistroError, docker.errors.APIError) as e:
            logs = f"(unavailable: {e})"
        return f"{report}\n\n== Container output (last 50 lines) ==\n{logs.strip()}"
