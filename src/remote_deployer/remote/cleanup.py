"""Teardown of a deployment created by this tool."""

from __future__ import annotations

import logging
import shlex

from ..errors import DeploymentError, ErrorKind
from .container import ContainerDeployer
from .nginx import NginxConfigurator

logger = logging.getLogger(__name__)


def teardown(container: ContainerDeployer, nginx: NginxConfigurator, app_dir: str) -> None:
    """Remove the container, application directory and proxy config.

    Nginx is reloaded afterwards so it keeps serving without the site.
    """
    logger.info("Cleaning up deployment...")
    container.remove_container()
    result = container.session.run(
        f"sudo rm -rf {shlex.quote(app_dir)} {shlex.quote(nginx.conf_path)}"
    )
    if not result.ok:
        raise DeploymentError(ErrorKind.REMOTE, f"Cleanup failed: {result.describe()}")
    nginx.reload()
    logger.info("Cleanup completed.")
