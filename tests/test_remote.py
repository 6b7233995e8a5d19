"""Tests for the remote provisioning, container, proxy and validation steps."""

import tempfile
from pathlib import Path

import pytest
import requests

from remote_deployer.config import DeploymentConfig
from remote_deployer.errors import DeploymentError, ErrorKind
from remote_deployer.remote import (
    ContainerDeployer,
    DeploymentValidator,
    HostProvisioner,
    HttpProbe,
    NginxConfigurator,
    collect_deploy_files,
    find_build_file,
    render_server_block,
    teardown,
)

from stubs import StubHttpProbe, StubSession


@pytest.fixture
def repo_dir():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        for name in ("Dockerfile", "app.py", "requirements.txt", "docker-compose.yml"):
            (root / name).write_text(name, encoding="utf-8")
        yield root


def _files(repo_dir, build_file="Dockerfile"):
    return collect_deploy_files(repo_dir, repo_dir / build_file, DeploymentConfig().deploy_files)


class TestHostProvisioner:
    def test_installs_with_detected_manager(self):
        session = StubSession()
        manager = HostProvisioner(session, DeploymentConfig()).provision("deployer")  # type: ignore[arg-type]
        assert manager == "apt-get"
        assert "sudo DEBIAN_FRONTEND=noninteractive apt-get install -y docker.io nginx" in session.commands
        assert "sudo systemctl enable --now docker nginx" in session.commands
        assert session.commands[-1] == "sudo usermod -aG docker deployer"

    def test_configured_manager_skips_detection(self):
        session = StubSession()
        HostProvisioner(session, DeploymentConfig(package_manager="yum")).provision("ec2-user")  # type: ignore[arg-type]
        assert not any(cmd.startswith("command -v") for cmd in session.commands)
        assert "sudo yum install -y docker nginx" in session.commands

    def test_install_failure_is_remote_error(self):
        session = StubSession({"install": (1, "")})
        with pytest.raises(DeploymentError) as exc:
            HostProvisioner(session, DeploymentConfig()).provision("deployer")  # type: ignore[arg-type]
        assert exc.value.kind == ErrorKind.REMOTE

    def test_usermod_failure_is_tolerated(self):
        session = StubSession({"usermod": (1, "")})
        HostProvisioner(session, DeploymentConfig()).provision("deployer")  # type: ignore[arg-type]

    def test_no_package_manager(self):
        session = StubSession({"command -v": (1, "")})
        with pytest.raises(DeploymentError, match="No supported package manager"):
            HostProvisioner(session, DeploymentConfig()).provision("deployer")  # type: ignore[arg-type]


class TestContainerDeployer:
    def test_find_build_file_accepts_lowercase(self, repo_dir):
        (repo_dir / "Dockerfile").unlink()
        (repo_dir / "dockerfile").write_text("FROM scratch", encoding="utf-8")
        assert find_build_file(repo_dir, ["Dockerfile", "dockerfile"]).name == "dockerfile"

    def test_find_build_file_missing(self, repo_dir):
        (repo_dir / "Dockerfile").unlink()
        with pytest.raises(DeploymentError) as exc:
            find_build_file(repo_dir, ["Dockerfile"])
        assert exc.value.kind == ErrorKind.MISSING_ARTIFACT

    def test_deploy_rebuilds_and_runs_container(self, repo_dir):
        session = StubSession()
        deployer = ContainerDeployer(session, DeploymentConfig())  # type: ignore[arg-type]
        app_dir = deployer.deploy(_files(repo_dir), 8080)

        assert app_dir == "/home/deployer/app"
        assert session.uploads == [
            (["Dockerfile", "app.py", "requirements.txt", "docker-compose.yml"], "/home/deployer/app")
        ]
        assert session.commands == [
            "mkdir -p /home/deployer/app",
            "sudo docker stop myapp 2>/dev/null || true",
            "sudo docker rm myapp 2>/dev/null || true",
            "sudo docker rmi myapp:latest 2>/dev/null || true",
            "cd /home/deployer/app && sudo docker build -t myapp:latest .",
            "sudo docker run -d --name myapp -p 8080:8080 myapp:latest",
        ]

    def test_lowercase_build_file_passed_to_build(self, repo_dir):
        (repo_dir / "Dockerfile").rename(repo_dir / "dockerfile")
        session = StubSession()
        deployer = ContainerDeployer(session, DeploymentConfig())  # type: ignore[arg-type]
        deployer.deploy(_files(repo_dir, "dockerfile"), 5000)
        assert "cd /home/deployer/app && sudo docker build -f dockerfile -t myapp:latest ." in session.commands

    def test_absolute_remote_dir(self, repo_dir):
        session = StubSession()
        config = DeploymentConfig(remote_app_dir="/srv/myapp")
        assert ContainerDeployer(session, config).remote_app_dir() == "/srv/myapp"  # type: ignore[arg-type]

    def test_collect_deploy_files_puts_build_file_first(self, repo_dir):
        files = collect_deploy_files(repo_dir, repo_dir / "Dockerfile", ["app.py", "Dockerfile"])
        assert [path.name for path in files] == ["Dockerfile", "app.py"]

    def test_collect_deploy_files_reports_missing(self, repo_dir):
        (repo_dir / "requirements.txt").unlink()
        with pytest.raises(DeploymentError) as exc:
            collect_deploy_files(repo_dir, repo_dir / "Dockerfile", DeploymentConfig().deploy_files)
        assert exc.value.kind == ErrorKind.MISSING_ARTIFACT
        assert "requirements.txt" in exc.value.message

    def test_build_failure_is_remote_error(self, repo_dir):
        session = StubSession({"docker build": (1, "")})
        with pytest.raises(DeploymentError, match="Docker build failed"):
            ContainerDeployer(session, DeploymentConfig()).deploy(  # type: ignore[arg-type]
                _files(repo_dir), 8080
            )
        assert not any("docker run" in cmd for cmd in session.commands)


class TestNginx:
    def test_render_server_block(self):
        content = render_server_block("example.org", 8080)
        assert "listen 80;" in content
        assert "server_name example.org;" in content
        assert "proxy_pass http://127.0.0.1:8080;" in content
        assert "proxy_set_header Host $host;" in content
        assert "proxy_set_header X-Real-IP $remote_addr;" in content
        assert "proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;" in content
        assert "proxy_set_header X-Forwarded-Proto $scheme;" in content

    def test_configure_writes_tests_and_reloads(self):
        session = StubSession()
        NginxConfigurator(session, DeploymentConfig()).configure("example.org", 8080)  # type: ignore[arg-type]
        write = "sudo tee /etc/nginx/conf.d/myapp.conf > /dev/null"
        assert session.commands == [write, "sudo nginx -t", "sudo systemctl reload nginx"]
        assert "server_name example.org;" in session.inputs[write]

    def test_syntax_error_stops_before_reload(self):
        session = StubSession({"nginx -t": (1, "")})
        with pytest.raises(DeploymentError) as exc:
            NginxConfigurator(session, DeploymentConfig()).configure("example.org", 8080)  # type: ignore[arg-type]
        assert exc.value.kind == ErrorKind.PROXY
        assert "sudo systemctl reload nginx" not in session.commands


class TestValidator:
    def test_internal_and_external_checks(self):
        session = StubSession({"curl": (0, "200")})
        http = StubHttpProbe(200)
        DeploymentValidator(session, http).validate(8080, "203.0.113.5")  # type: ignore[arg-type]
        assert "http://localhost:8080" in session.commands[0]
        assert http.urls == ["http://203.0.113.5"]

    def test_internal_failure(self):
        session = StubSession({"curl": (7, "000")})
        with pytest.raises(DeploymentError) as exc:
            DeploymentValidator(session, StubHttpProbe(200)).check_internal(8080)  # type: ignore[arg-type]
        assert exc.value.kind == ErrorKind.VALIDATION

    def test_external_bad_gateway_fails(self):
        session = StubSession({"curl": (0, "200")})
        with pytest.raises(DeploymentError, match="not reachable via Nginx"):
            DeploymentValidator(session, StubHttpProbe(502)).validate(8080, "example.org")  # type: ignore[arg-type]

    def test_http_probe_reports_zero_on_connection_error(self, monkeypatch):
        probe = HttpProbe(timeout=1)

        def refuse(*args, **kwargs):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(probe._session, "head", refuse)
        assert probe.status("http://203.0.113.5") == 0


class TestTeardown:
    def test_removes_container_files_and_reloads(self):
        session = StubSession()
        config = DeploymentConfig()
        teardown(
            ContainerDeployer(session, config),  # type: ignore[arg-type]
            NginxConfigurator(session, config),  # type: ignore[arg-type]
            "/home/deployer/app",
        )
        assert session.commands == [
            "sudo docker stop myapp 2>/dev/null || true",
            "sudo docker rm myapp 2>/dev/null || true",
            "sudo rm -rf /home/deployer/app /etc/nginx/conf.d/myapp.conf",
            "sudo systemctl reload nginx",
        ]
