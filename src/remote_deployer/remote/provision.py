"""Idempotent installation of Docker and Nginx on the remote host."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import DeploymentConfig
from ..errors import DeploymentError, ErrorKind
from ..ssh import RemoteProbe, SSHSession

logger = logging.getLogger(__name__)

INSTALL_COMMANDS = {
    "apt-get": [
        "sudo apt-get update -y",
        "sudo DEBIAN_FRONTEND=noninteractive apt-get install -y docker.io nginx",
    ],
    "dnf": [
        "sudo dnf makecache -y",
        "sudo dnf install -y docker nginx",
    ],
    "yum": [
        "sudo yum makecache -y",
        "sudo yum install -y docker nginx",
    ],
}


class HostProvisioner:
    """Installs and enables the container engine and reverse proxy.

    Every command is safe to repeat: package managers skip installed
    packages and ``systemctl enable --now`` is a no-op for running units.
    """

    def __init__(
        self,
        session: SSHSession,
        deployment: DeploymentConfig,
        probe: Optional[RemoteProbe] = None,
    ) -> None:
        self.session = session
        self.deployment = deployment
        self.probe = probe or RemoteProbe()

    def resolve_package_manager(self) -> str:
        configured = self.deployment.package_manager
        if configured != "auto":
            if configured not in INSTALL_COMMANDS:
                raise DeploymentError(
                    ErrorKind.REMOTE, f"Unsupported package manager: {configured}"
                )
            return configured
        detected = self.probe.package_manager(self.session)
        if not detected:
            raise DeploymentError(
                ErrorKind.REMOTE, "No supported package manager (apt-get, dnf, yum) found on host."
            )
        return detected

    def provision(self, username: str) -> str:
        manager = self.resolve_package_manager()
        logger.info("Preparing remote environment with %s...", manager)
        commands = INSTALL_COMMANDS[manager] + ["sudo systemctl enable --now docker nginx"]
        for command in commands:
            result = self.session.run(command, timeout=self.deployment.command_timeout)
            if not result.ok:
                raise DeploymentError(
                    ErrorKind.REMOTE, f"Remote provisioning failed: {result.describe()}"
                )

        result = self.session.run(f"sudo usermod -aG docker {username}")
        if not result.ok:
            logger.warning("Could not add %s to the docker group: %s", username, result.describe())
        logger.info("Remote server setup complete.")
        return manager
