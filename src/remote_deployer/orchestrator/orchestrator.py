"""Deployment orchestrator: runs the deployment steps in order."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import AppConfig
from ..errors import DeploymentError, ErrorKind
from ..gitops import GitCommandError, GitRepositoryManager
from ..interaction import UserInteractionHandler
from ..params import DeploymentParameters, ParameterCollector
from ..remote import (
    ContainerDeployer,
    DeploymentValidator,
    HostProvisioner,
    HttpProbe,
    NginxConfigurator,
    collect_deploy_files,
    find_build_file,
    teardown,
)
from ..ssh import (
    HostUnreachableError,
    ReachabilityProbe,
    RemoteProbe,
    SSHConnectionError,
    SSHCredentials,
    SSHSession,
)
from .models import RunReport, StepResult, StepStatus

logger = logging.getLogger(__name__)


@dataclass
class DeploymentContext:
    """State shared by the steps of a single run."""

    config: AppConfig
    params: Optional[DeploymentParameters] = None
    session: Optional[SSHSession] = None
    repo_dir: Optional[Path] = None
    deploy_files: Optional[List[Path]] = None
    domain: Optional[str] = None
    app_dir: Optional[str] = None

    def require_params(self) -> DeploymentParameters:
        assert self.params is not None, "parameters are collected by the first step"
        return self.params

    @property
    def credentials(self) -> SSHCredentials:
        params = self.require_params()
        return SSHCredentials(
            host=params.host,
            username=params.username,
            key_path=params.key_path,
            port=params.ssh_port,
            timeout=self.config.probe.connect_timeout,
        )


@dataclass
class Step:
    name: str
    action: Callable[[DeploymentContext], Optional[str]]
    enabled: bool = True


class DeploymentOrchestrator:
    """
    Runs collect → probe → resolve → sync → provision → deploy → proxy →
    validate → cleanup, stopping at the first failing step.
    """

    def __init__(
        self,
        config: AppConfig,
        interaction_handler: UserInteractionHandler,
        *,
        overrides: Optional[Dict[str, Optional[str]]] = None,
        cleanup: bool = False,
        probe_enabled: Optional[bool] = None,
        session_factory: Callable[[SSHCredentials], SSHSession] = SSHSession,
        git_manager: Optional[GitRepositoryManager] = None,
        reachability_probe: Optional[ReachabilityProbe] = None,
        remote_probe: Optional[RemoteProbe] = None,
        http_probe: Optional[HttpProbe] = None,
    ) -> None:
        self.config = config
        self.interaction_handler = interaction_handler
        self.overrides = overrides or {}
        self.cleanup = cleanup
        self.probe_enabled = config.probe.enabled if probe_enabled is None else probe_enabled
        self.session_factory = session_factory
        self.git_manager = git_manager or GitRepositoryManager()
        self.reachability_probe = reachability_probe or ReachabilityProbe(
            attempts=config.probe.attempts,
            backoff=config.probe.backoff_seconds,
            session_factory=session_factory,
        )
        self.remote_probe = remote_probe or RemoteProbe()
        self.http_probe = http_probe or HttpProbe(timeout=config.deployment.http_timeout)

    def steps(self) -> List[Step]:
        return [
            Step("collect-parameters", self._collect_parameters),
            Step("probe-ssh", self._probe_ssh, enabled=self.probe_enabled),
            Step("resolve-domain", self._resolve_domain),
            Step("sync-repository", self._sync_repository),
            Step("provision-host", self._provision_host),
            Step("deploy-container", self._deploy_container),
            Step("configure-proxy", self._configure_proxy),
            Step("validate", self._validate),
            Step("cleanup", self._cleanup, enabled=self.cleanup),
        ]

    def run(self) -> RunReport:
        report = RunReport()
        context = DeploymentContext(config=self.config)
        succeeded = False
        try:
            for step in self.steps():
                if not step.enabled:
                    report.results.append(StepResult(step.name, StepStatus.SKIPPED))
                    continue
                result = self._execute(step, context)
                report.results.append(result)
                if not result.ok:
                    break
            report.domain = context.domain
            succeeded = report.ok
        finally:
            if context.session is not None:
                context.session.close()
            if not succeeded:
                logger.error("Deployment exited unexpectedly.")
        return report

    def _execute(self, step: Step, context: DeploymentContext) -> StepResult:
        started = time.monotonic()
        error_kind: Optional[ErrorKind] = None
        try:
            message = step.action(context) or ""
        except DeploymentError as exc:
            error_kind, message = exc.kind, exc.message
        except SSHConnectionError as exc:
            error_kind, message = ErrorKind.UNREACHABLE, str(exc)
        except Exception as exc:
            logger.exception("Step %s raised an unexpected error", step.name)
            error_kind, message = ErrorKind.REMOTE, f"{type(exc).__name__}: {exc}"

        duration = time.monotonic() - started
        if error_kind is not None:
            logger.error("ERROR: %s", message)
            return StepResult(step.name, StepStatus.FAILED, message, error_kind, duration)
        return StepResult(step.name, StepStatus.SUCCESS, message, None, duration)

    def _session(self, context: DeploymentContext) -> SSHSession:
        if context.session is None:
            session = self.session_factory(context.credentials)
            session.connect()
            context.session = session
        return context.session

    # Steps

    def _collect_parameters(self, context: DeploymentContext) -> str:
        collector = ParameterCollector(self.interaction_handler, self.config.deployment)
        context.params = collector.collect(self.overrides)
        return f"Deploying {context.params.repo_url} ({context.params.branch})"

    def _probe_ssh(self, context: DeploymentContext) -> str:
        try:
            attempt = self.reachability_probe.check(context.credentials)
        except HostUnreachableError as exc:
            raise DeploymentError(ErrorKind.UNREACHABLE, str(exc)) from exc
        return f"reachable on attempt {attempt}"

    def _resolve_domain(self, context: DeploymentContext) -> str:
        params = context.require_params()
        if params.domain:
            context.domain = params.domain
            return context.domain
        logger.info("No domain entered. Detecting server public IP...")
        context.domain = self.remote_probe.public_address(self._session(context), params.host)
        logger.info("Using server IP as domain: %s", context.domain)
        return context.domain

    def _sync_repository(self, context: DeploymentContext) -> str:
        params = context.require_params()
        workspace = Path(self.config.deployment.workspace_root)
        try:
            result = self.git_manager.sync(
                params.repo_url,
                workspace / params.repo_name,
                branch=params.branch,
                token=params.token,
            )
        except GitCommandError as exc:
            raise DeploymentError(ErrorKind.VCS, f"Git sync failed: {exc}") from exc
        context.repo_dir = result.path
        deployment = self.config.deployment
        build_file = find_build_file(result.path, deployment.build_files)
        context.deploy_files = collect_deploy_files(result.path, build_file, deployment.deploy_files)
        logger.info("Repository ready at %s (%s).", result.path, result.commit_sha[:12])
        return result.commit_sha

    def _provision_host(self, context: DeploymentContext) -> str:
        provisioner = HostProvisioner(
            self._session(context), self.config.deployment, self.remote_probe
        )
        return provisioner.provision(context.require_params().username)

    def _deploy_container(self, context: DeploymentContext) -> str:
        assert context.deploy_files is not None
        deployer = ContainerDeployer(self._session(context), self.config.deployment)
        context.app_dir = deployer.deploy(context.deploy_files, context.require_params().app_port)
        return context.app_dir

    def _configure_proxy(self, context: DeploymentContext) -> str:
        assert context.domain is not None
        nginx = NginxConfigurator(self._session(context), self.config.deployment)
        nginx.configure(context.domain, context.require_params().app_port)
        return nginx.conf_path

    def _validate(self, context: DeploymentContext) -> str:
        assert context.domain is not None
        validator = DeploymentValidator(
            self._session(context),
            self.http_probe,
            timeout=self.config.deployment.http_timeout,
        )
        validator.validate(context.require_params().app_port, context.domain)
        url = f"http://{context.domain}"
        logger.info("Deployment successful! Access your app at: %s", url)
        return url

    def _cleanup(self, context: DeploymentContext) -> str:
        session = self._session(context)
        container = ContainerDeployer(session, self.config.deployment)
        nginx = NginxConfigurator(session, self.config.deployment)
        app_dir = context.app_dir or container.remote_app_dir()
        teardown(container, nginx, app_dir)
        return app_dir
