"""Transfer build files and (re)build the application container."""

from __future__ import annotations

import logging
import posixpath
import shlex
from pathlib import Path
from typing import List

import paramiko

from ..config import DeploymentConfig
from ..errors import DeploymentError, ErrorKind
from ..ssh import SSHSession

logger = logging.getLogger(__name__)


def find_build_file(repo_dir: Path, candidates: List[str]) -> Path:
    """Return the first build descriptor present in ``repo_dir``."""
    for name in candidates:
        path = repo_dir / name
        if path.is_file():
            return path
    raise DeploymentError(
        ErrorKind.MISSING_ARTIFACT,
        f"{candidates[0] if candidates else 'Build file'} not found in repository.",
    )


def collect_deploy_files(repo_dir: Path, build_file: Path, names: List[str]) -> List[Path]:
    """Return the build file followed by every listed file; all must exist locally."""
    files = [build_file]
    missing = []
    for name in names:
        path = repo_dir / name
        if path == build_file:
            continue
        if not path.is_file():
            missing.append(name)
        files.append(path)
    if missing:
        raise DeploymentError(
            ErrorKind.MISSING_ARTIFACT,
            f"Files required for deployment not found in repository: {', '.join(missing)}",
        )
    return files


class ContainerDeployer:
    """Runs the application as a single named container on the remote host."""

    def __init__(self, session: SSHSession, deployment: DeploymentConfig) -> None:
        self.session = session
        self.deployment = deployment

    @property
    def image(self) -> str:
        return f"{self.deployment.container_name}:latest"

    def _docker(self, args: str) -> str:
        return f"{self.deployment.docker_command} {args}"

    def remote_app_dir(self) -> str:
        configured = self.deployment.remote_app_dir
        if posixpath.isabs(configured):
            return configured
        return posixpath.join(self.session.home_directory(), configured)

    def _check(self, command: str, what: str) -> None:
        result = self.session.run(command, timeout=self.deployment.command_timeout)
        if not result.ok:
            raise DeploymentError(ErrorKind.REMOTE, f"{what} failed: {result.describe()}")

    def remove_container(self) -> None:
        """Stop and remove the container; missing containers are ignored."""
        name = shlex.quote(self.deployment.container_name)
        self.session.run(self._docker(f"stop {name} 2>/dev/null || true"))
        self.session.run(self._docker(f"rm {name} 2>/dev/null || true"))

    def deploy(self, files: List[Path], app_port: int) -> str:
        """Upload files, rebuild the image and start the container.

        ``files`` comes from :func:`collect_deploy_files`; its first entry is
        the build file. Returns the remote application directory.
        """
        build_file = files[0]
        app_dir = self.remote_app_dir()
        quoted_dir = shlex.quote(app_dir)

        logger.info("Deploying Dockerized app to %s...", app_dir)
        self._check(f"mkdir -p {quoted_dir}", "Creating application directory")
        try:
            self.session.upload(files, app_dir)
        except (OSError, paramiko.SSHException) as exc:
            raise DeploymentError(ErrorKind.REMOTE, f"File transfer failed: {exc}") from exc

        # Clean up old containers/images
        self.remove_container()
        self.session.run(self._docker(f"rmi {shlex.quote(self.image)} 2>/dev/null || true"))

        build_flag = ""
        if build_file.name != "Dockerfile":
            build_flag = f"-f {shlex.quote(build_file.name)} "
        self._check(
            f"cd {quoted_dir} && " + self._docker(f"build {build_flag}-t {shlex.quote(self.image)} ."),
            "Docker build",
        )
        self._check(
            self._docker(
                f"run -d --name {shlex.quote(self.deployment.container_name)} "
                f"-p {app_port}:{app_port} {shlex.quote(self.image)}"
            ),
            "Docker run",
        )
        logger.info("Docker container deployed.")
        return app_dir
