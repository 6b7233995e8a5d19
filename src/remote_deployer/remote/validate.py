"""Post-deployment reachability checks."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from ..errors import DeploymentError, ErrorKind
from ..ssh import SSHSession

logger = logging.getLogger(__name__)


def _healthy(status: int) -> bool:
    # Any HTTP answer counts except "no answer" and server errors
    return 0 < status < 500


class HttpProbe:
    """Issues HEAD requests from the machine running the deployer."""

    def __init__(self, timeout: int = 10, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self._session = session or requests.Session()

    def status(self, url: str) -> int:
        """Return the HTTP status for ``url``; 0 when nothing answered."""
        try:
            response = self._session.head(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            logger.warning("HTTP probe to %s failed: %s", url, exc)
            return 0
        return response.status_code


class DeploymentValidator:
    """Checks the app from the remote host and from the deployer's network."""

    def __init__(self, session: SSHSession, http_probe: HttpProbe, timeout: int = 10) -> None:
        self.session = session
        self.http_probe = http_probe
        self.timeout = timeout

    def check_internal(self, app_port: int) -> int:
        command = (
            "curl -s -o /dev/null -w '%{http_code}' "
            f"--max-time {self.timeout} http://localhost:{app_port}"
        )
        result = self.session.run(command)
        try:
            status = int(result.stdout.strip() or 0)
        except ValueError:
            status = 0
        if not _healthy(status):
            raise DeploymentError(
                ErrorKind.VALIDATION,
                f"App not responding internally on port {app_port} (status {status}).",
            )
        logger.info("App responds internally on port %d (HTTP %d).", app_port, status)
        return status

    def check_external(self, domain: str) -> int:
        url = f"http://{domain}"
        status = self.http_probe.status(url)
        if not _healthy(status):
            raise DeploymentError(
                ErrorKind.VALIDATION, f"App not reachable via Nginx at {url} (status {status})."
            )
        logger.info("App reachable via Nginx at %s (HTTP %d).", url, status)
        return status

    def validate(self, app_port: int, domain: str) -> None:
        logger.info("Validating deployment...")
        self.check_internal(app_port)
        self.check_external(domain)
