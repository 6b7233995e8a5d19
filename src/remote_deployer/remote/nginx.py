"""Nginx reverse-proxy configuration on the remote host."""

from __future__ import annotations

import logging
import shlex
from string import Template

from ..config import DeploymentConfig
from ..errors import DeploymentError, ErrorKind
from ..ssh import SSHSession

logger = logging.getLogger(__name__)

SERVER_BLOCK = Template(
    """server {
    listen 80;
    server_name $server_name;

    location / {
        proxy_pass http://127.0.0.1:$app_port;
        proxy_set_header Host $$host;
        proxy_set_header X-Real-IP $$remote_addr;
        proxy_set_header X-Forwarded-For $$proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $$scheme;
    }
}
"""
)


def render_server_block(server_name: str, app_port: int) -> str:
    """Return the Nginx server block forwarding ``server_name`` to the app port."""
    return SERVER_BLOCK.substitute(server_name=server_name, app_port=app_port)


class NginxConfigurator:
    """Writes, validates and activates the proxy configuration file."""

    def __init__(self, session: SSHSession, deployment: DeploymentConfig) -> None:
        self.session = session
        self.deployment = deployment

    @property
    def conf_path(self) -> str:
        return self.deployment.nginx_conf_path

    def _check(self, command: str, what: str, **kwargs) -> None:
        result = self.session.run(command, **kwargs)
        if not result.ok:
            raise DeploymentError(ErrorKind.PROXY, f"{what} failed: {result.describe()}")

    def reload(self) -> None:
        self._check("sudo systemctl reload nginx", "Nginx reload")

    def configure(self, server_name: str, app_port: int) -> str:
        logger.info("Configuring Nginx reverse proxy...")
        content = render_server_block(server_name, app_port)
        self._check(
            f"sudo tee {shlex.quote(self.conf_path)} > /dev/null",
            "Writing Nginx configuration",
            input_data=content,
        )
        self._check("sudo nginx -t", "Nginx configuration test")
        self.reload()
        logger.info("Nginx configured to forward traffic to port %d.", app_port)
        return content
