"""Deployment parameters and their interactive collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .config import DeploymentConfig
from .gitops import authenticated_url, repo_name_from_url
from .interaction import InputType, InteractionRequest, UserInteractionHandler
from .errors import DeploymentError, ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


@dataclass
class DeploymentParameters:
    """Operator-supplied values for one run. Never persisted."""

    repo_url: str
    token: str
    branch: str
    username: str
    host: str
    key_path: str
    app_port: int
    domain: Optional[str] = None
    ssh_port: int = 22

    @property
    def repo_name(self) -> str:
        return repo_name_from_url(self.repo_url)

    @property
    def authenticated_url(self) -> str:
        return authenticated_url(self.repo_url, self.token)

    def __repr__(self) -> str:
        return (
            f"DeploymentParameters(repo_url={self.repo_url!r}, branch={self.branch!r}, "
            f"username={self.username!r}, host={self.host!r}, key_path={self.key_path!r}, "
            f"app_port={self.app_port!r}, domain={self.domain!r})"
        )


_PROMPTS = (
    InteractionRequest("repo_url", "Enter Git repository URL"),
    InteractionRequest("token", "Enter Personal Access Token (PAT)", InputType.SECRET),
    InteractionRequest("branch", "Enter branch name", default=DEFAULT_BRANCH),
    InteractionRequest("username", "Enter remote SSH username"),
    InteractionRequest("host", "Enter remote server IP address"),
    InteractionRequest("key_path", "Enter SSH key path"),
    InteractionRequest("app_port", "Enter application internal port", hint="e.g. 5000 or 8080"),
    InteractionRequest("domain", "Enter domain name", hint="press Enter to use server IP"),
)

_REQUIRED_MESSAGES = {
    "repo_url": "Repository URL cannot be empty.",
    "token": "PAT cannot be empty.",
    "username": "Username cannot be empty.",
    "host": "Server IP cannot be empty.",
    "key_path": "SSH key path cannot be empty.",
    "app_port": "App port cannot be empty.",
}


class ParameterCollector:
    """Gathers and validates DeploymentParameters.

    Values given up front (CLI flags, environment defaults) are used as-is;
    anything missing is asked for through the interaction handler. Every
    check happens here, so an invalid value stops the run before any remote
    host is contacted.
    """

    def __init__(
        self,
        handler: UserInteractionHandler,
        deployment: Optional[DeploymentConfig] = None,
    ) -> None:
        self.handler = handler
        self.deployment = deployment or DeploymentConfig()

    def _preset(self, overrides: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
        deployment = self.deployment
        defaults = {
            "repo_url": deployment.default_repo_url,
            "token": deployment.default_token,
            "branch": deployment.default_branch,
            "username": deployment.default_username,
            "host": deployment.default_host,
            "key_path": deployment.default_key_path,
            "app_port": (
                str(deployment.default_app_port) if deployment.default_app_port else None
            ),
            "domain": deployment.default_domain,
        }
        for key, value in overrides.items():
            if value not in (None, ""):
                defaults[key] = str(value)
        return defaults

    def collect(self, overrides: Optional[Dict[str, Optional[str]]] = None) -> DeploymentParameters:
        values = self._preset(overrides or {})
        for request in _PROMPTS:
            if values.get(request.key):
                continue
            response = self.handler.ask(request)
            if response.cancelled:
                raise DeploymentError(ErrorKind.INPUT, "Input cancelled by operator.")
            values[request.key] = response.value
            self._check(request.key, response.value)

        for key in _REQUIRED_MESSAGES:
            self._check(key, values.get(key))

        branch = values.get("branch") or DEFAULT_BRANCH
        key_path = str(Path(values["key_path"] or "").expanduser())
        domain = (values.get("domain") or "").strip() or None

        params = DeploymentParameters(
            repo_url=(values["repo_url"] or "").strip(),
            token=values["token"] or "",
            branch=branch.strip(),
            username=(values["username"] or "").strip(),
            host=(values["host"] or "").strip(),
            key_path=key_path,
            app_port=_parse_port(values["app_port"] or ""),
            domain=domain,
            ssh_port=self.deployment.default_ssh_port,
        )
        if domain:
            logger.info("Using provided domain: %s", domain)
        else:
            logger.info("No domain entered. Server public IP will be used.")
        return params

    def _check(self, key: str, value: Optional[str]) -> None:
        if key in _REQUIRED_MESSAGES and not (value or "").strip():
            raise DeploymentError(ErrorKind.INPUT, _REQUIRED_MESSAGES[key])
        if key == "key_path" and not Path(value or "").expanduser().is_file():
            raise DeploymentError(ErrorKind.INPUT, f"SSH key not found at: {value}")
        if key == "app_port":
            _parse_port(value or "")


def _parse_port(value: str) -> int:
    try:
        port = int(str(value).strip())
    except ValueError:
        raise DeploymentError(ErrorKind.INPUT, f"App port must be a number, got: {value}") from None
    if not 1 <= port <= 65535:
        raise DeploymentError(ErrorKind.INPUT, f"App port out of range: {port}")
    return port
