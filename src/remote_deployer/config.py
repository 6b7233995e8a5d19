"""Configuration loading utilities for remote-deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .errors import DeploymentError, ErrorKind
from .paths import LOGS_DIR, WORKSPACE_DIR

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")

ENV_PREFIX = "REMOTE_DEPLOYER_"


@dataclass
class ProbeConfig:
    """Settings for the SSH reachability probe."""

    enabled: bool = True
    attempts: int = 3
    backoff_seconds: float = 2.0      # sleep = backoff_seconds * attempt number
    connect_timeout: int = 10


@dataclass
class DeploymentConfig:
    """Settings related to deployment execution."""

    workspace_root: str = str(WORKSPACE_DIR)
    log_dir: str = str(LOGS_DIR)
    container_name: str = "myapp"
    remote_app_dir: str = "app"        # relative paths live under the remote home
    build_files: List[str] = field(default_factory=lambda: ["Dockerfile", "dockerfile"])
    # The detected build file is always uploaded in addition to these
    deploy_files: List[str] = field(
        default_factory=lambda: ["app.py", "requirements.txt", "docker-compose.yml"]
    )
    nginx_conf_dir: str = "/etc/nginx/conf.d"
    docker_command: str = "sudo docker"
    package_manager: str = "auto"      # "auto" | "apt-get" | "dnf" | "yum"
    command_timeout: int = 900
    http_timeout: int = 10

    # Parameter defaults, usually filled from REMOTE_DEPLOYER_* variables
    default_repo_url: Optional[str] = None
    default_token: Optional[str] = None
    default_branch: Optional[str] = None
    default_username: Optional[str] = None
    default_host: Optional[str] = None
    default_key_path: Optional[str] = None
    default_app_port: Optional[int] = None
    default_domain: Optional[str] = None
    default_ssh_port: int = 22

    @property
    def nginx_conf_path(self) -> str:
        return f"{self.nginx_conf_dir.rstrip('/')}/{self.container_name}.conf"


@dataclass
class InteractionConfig:
    """Configuration for operator prompts."""

    enabled: bool = True
    mode: str = "cli"  # "cli" | "auto"
    hide_token: bool = True


@dataclass
class AppConfig:
    """Top-level configuration."""

    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        deployment_payload = _strip_comments(payload.get("deployment", {}) or {})
        probe_payload = _strip_comments(payload.get("probe", {}) or {})
        interaction_payload = _strip_comments(payload.get("interaction", {}) or {})

        return cls(
            deployment=DeploymentConfig(
                **{**DeploymentConfig().__dict__, **deployment_payload}
            ),
            probe=ProbeConfig(**{**ProbeConfig().__dict__, **probe_payload}),
            interaction=InteractionConfig(
                **{**InteractionConfig().__dict__, **interaction_payload}
            ),
        )


def _strip_comments(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Keys starting with an underscore are comments in the JSON files
    return {k: v for k, v in payload.items() if not k.startswith("_")}


def _apply_env(config: AppConfig) -> None:
    deployment = config.deployment
    string_fields = {
        "REPO_URL": "default_repo_url",
        "TOKEN": "default_token",
        "BRANCH": "default_branch",
        "SSH_USERNAME": "default_username",
        "SSH_HOST": "default_host",
        "SSH_KEY_PATH": "default_key_path",
        "DOMAIN": "default_domain",
        "WORKSPACE": "workspace_root",
        "LOG_DIR": "log_dir",
    }
    for suffix, attr in string_fields.items():
        value = os.getenv(ENV_PREFIX + suffix)
        if value:
            setattr(deployment, attr, value)

    env_app_port = _env_int("APP_PORT")
    if env_app_port is not None:
        deployment.default_app_port = env_app_port

    env_ssh_port = _env_int("SSH_PORT")
    if env_ssh_port is not None:
        deployment.default_ssh_port = env_ssh_port


def _env_int(suffix: str) -> Optional[int]:
    name = ENV_PREFIX + suffix
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise DeploymentError(ErrorKind.INPUT, f"{name} must be an integer, got {value!r}.") from exc


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    Environment variables (higher priority than config file):
    - REMOTE_DEPLOYER_REPO_URL: Git repository URL
    - REMOTE_DEPLOYER_TOKEN: Personal access token for cloning
    - REMOTE_DEPLOYER_BRANCH: Branch to deploy
    - REMOTE_DEPLOYER_SSH_HOST: Remote host address
    - REMOTE_DEPLOYER_SSH_USERNAME: Remote SSH username
    - REMOTE_DEPLOYER_SSH_KEY_PATH: Path to SSH private key
    - REMOTE_DEPLOYER_APP_PORT: Application port inside the container
    - REMOTE_DEPLOYER_DOMAIN: Domain name served by Nginx
    - REMOTE_DEPLOYER_SSH_PORT: Remote SSH port

    A missing default file falls back to built-in defaults; an explicit path
    that does not exist is an error. Malformed files and non-integer port
    variables raise DeploymentError with ErrorKind.INPUT.
    """

    config: Optional[AppConfig] = None
    if path:
        candidate = Path(path)
        if not candidate.is_file():
            raise FileNotFoundError(f"Could not find configuration file: {candidate}")
        config = _read(candidate)
    elif _DEFAULT_CONFIG_PATH.is_file():
        config = _read(_DEFAULT_CONFIG_PATH)

    if config is None:
        config = AppConfig()
    _apply_env(config)
    return config


def _read(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise DeploymentError(
                ErrorKind.INPUT, f"Invalid JSON in configuration file {path}: {exc}"
            ) from exc
    try:
        return AppConfig.from_dict(data)
    except (TypeError, AttributeError) as exc:
        # Unknown keys or a section that is not an object
        raise DeploymentError(ErrorKind.INPUT, f"Invalid configuration in {path}: {exc}") from exc
