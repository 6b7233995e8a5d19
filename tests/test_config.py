import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from remote_deployer.config import AppConfig, load_config
from remote_deployer.errors import DeploymentError, ErrorKind

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default_config.json"


class ConfigTests(unittest.TestCase):
    def test_builtin_defaults(self) -> None:
        config = AppConfig()
        self.assertEqual(config.probe.attempts, 3)
        self.assertEqual(config.probe.backoff_seconds, 2.0)
        self.assertEqual(config.deployment.container_name, "myapp")
        self.assertEqual(config.deployment.nginx_conf_path, "/etc/nginx/conf.d/myapp.conf")

    def test_shipped_default_config_matches_builtins(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_config(str(DEFAULT_CONFIG))
        self.assertEqual(config, AppConfig())

    def test_loads_custom_config_and_ignores_comments(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(
                json.dumps(
                    {
                        "deployment": {"_comment": "ignored", "container_name": "shop"},
                        "probe": {"attempts": 5},
                    }
                ),
                encoding="utf-8",
            )
            config = load_config(str(path))
        self.assertEqual(config.deployment.container_name, "shop")
        self.assertEqual(config.deployment.nginx_conf_path, "/etc/nginx/conf.d/shop.conf")
        self.assertEqual(config.probe.attempts, 5)
        self.assertEqual(config.probe.backoff_seconds, 2.0)

    def test_missing_explicit_path_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/remote-deployer.json")

    def test_env_vars_populate_parameter_defaults(self) -> None:
        env = {
            "REMOTE_DEPLOYER_REPO_URL": "https://example.com/org/app.git",
            "REMOTE_DEPLOYER_SSH_HOST": "203.0.113.5",
            "REMOTE_DEPLOYER_SSH_USERNAME": "deployer",
            "REMOTE_DEPLOYER_APP_PORT": "8080",
            "REMOTE_DEPLOYER_SSH_PORT": "2222",
        }
        with mock.patch.dict(os.environ, env):
            config = load_config(str(DEFAULT_CONFIG))
        deployment = config.deployment
        self.assertEqual(deployment.default_repo_url, "https://example.com/org/app.git")
        self.assertEqual(deployment.default_host, "203.0.113.5")
        self.assertEqual(deployment.default_username, "deployer")
        self.assertEqual(deployment.default_app_port, 8080)
        self.assertEqual(deployment.default_ssh_port, 2222)

    def test_non_integer_port_variable_is_input_error(self) -> None:
        with mock.patch.dict(os.environ, {"REMOTE_DEPLOYER_APP_PORT": "eighty"}):
            with self.assertRaises(DeploymentError) as ctx:
                load_config(str(DEFAULT_CONFIG))
        self.assertEqual(ctx.exception.kind, ErrorKind.INPUT)
        self.assertIn("REMOTE_DEPLOYER_APP_PORT", ctx.exception.message)

    def test_malformed_files_are_input_errors(self) -> None:
        payloads = {
            "broken.json": "{\"deployment\": ",
            "unknown.json": json.dumps({"deployment": {"container": "shop"}}),
        }
        with tempfile.TemporaryDirectory() as tmp:
            for name, text in payloads.items():
                path = Path(tmp) / name
                path.write_text(text, encoding="utf-8")
                with self.subTest(name=name):
                    with self.assertRaises(DeploymentError) as ctx:
                        load_config(str(path))
                    self.assertEqual(ctx.exception.kind, ErrorKind.INPUT)
                    self.assertIn(name, ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
