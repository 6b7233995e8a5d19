"""Command-line interface for remote-deployer."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .errors import DeploymentError
from .interaction import AutoResponseHandler, CLIInteractionHandler, UserInteractionHandler
from .orchestrator import DeploymentOrchestrator, RunReport
from .utils.logging import get_logger, run_log

logger = get_logger(__name__)

SUCCESS_MARKER = "Deployment successful!"
FAILURE_MARKER = "Deployment exited unexpectedly."


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig
    workspace: str
    log_dir: str


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remote-deployer",
        description="Deploy a Dockerized Git repository to a remote server via SSH.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--workspace",
        type=str,
        default=None,
        help="Directory for local repository checkouts.",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory for run logs.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    deploy_parser = subparsers.add_parser(
        "deploy", help="Deploy a repository; missing values are prompted for"
    )
    deploy_parser.add_argument("--repo", help="Git repository URL")
    deploy_parser.add_argument("--branch", help="Branch to deploy (default: main)")
    deploy_parser.add_argument("--user", help="SSH username")
    deploy_parser.add_argument("--host", help="Target server address")
    deploy_parser.add_argument("--key-path", help="Path to SSH private key")
    deploy_parser.add_argument("--port", help="Application port inside the container")
    deploy_parser.add_argument(
        "--domain", help="Domain served by Nginx (default: server public IP)"
    )
    deploy_parser.add_argument(
        "--skip-probe", action="store_true",
        help="Do not run the SSH reachability probe before deploying",
    )
    deploy_parser.add_argument(
        "--non-interactive", action="store_true",
        help="Never prompt; missing values fail the run",
    )
    deploy_parser.add_argument(
        "--cleanup", action="store_true",
        help="Remove the container, app directory and Nginx config after deploying",
    )

    logs_parser = subparsers.add_parser("logs", help="View deployment run logs")
    logs_parser.add_argument(
        "--list", "-l", action="store_true", dest="list_logs",
        help="List all available logs",
    )
    logs_parser.add_argument(
        "--latest", action="store_true",
        help="Show the latest run log",
    )
    logs_parser.add_argument(
        "--file", "-f", type=str,
        help="Show a specific log file",
    )

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    if args.workspace:
        config.deployment.workspace_root = args.workspace
    if args.log_dir:
        config.deployment.log_dir = args.log_dir
    return CLIContext(
        config=config,
        workspace=config.deployment.workspace_root,
        log_dir=config.deployment.log_dir,
    )


def _interaction_handler(args: argparse.Namespace, config: AppConfig) -> UserInteractionHandler:
    interaction = config.interaction
    if args.non_interactive or not interaction.enabled or interaction.mode == "auto":
        return AutoResponseHandler()
    return CLIInteractionHandler(hide_secrets=interaction.hide_token)


def handle_deploy_command(
    args: argparse.Namespace,
    context: CLIContext,
    orchestrator: Optional[DeploymentOrchestrator] = None,
) -> int:
    """Handle the deploy subcommand."""
    if orchestrator is None:
        orchestrator = DeploymentOrchestrator(
            context.config,
            _interaction_handler(args, context.config),
            overrides={
                "repo_url": args.repo,
                "branch": args.branch,
                "username": args.user,
                "host": args.host,
                "key_path": args.key_path,
                "app_port": args.port,
                "domain": args.domain,
            },
            cleanup=args.cleanup,
            probe_enabled=False if args.skip_probe else None,
        )

    with run_log(Path(context.log_dir)) as log_path:
        report: RunReport = orchestrator.run()
        report.log_path = log_path
        logger.info("Deployment log saved to %s.", log_path)

    _print_summary(report)
    return report.exit_code


def _print_summary(report: RunReport) -> None:
    print(f"\n{'='*60}")
    for result in report.results:
        icon = {"success": "✅", "failed": "❌", "skipped": "⏭️"}[result.status.value]
        line = f"{icon} {result.name:<20} {result.status.value}"
        if result.error_kind is not None:
            line += f" [{result.error_kind.value}] {result.message}"
        print(line)
    if report.ok and report.app_url:
        print(f"\n🌐 App: {report.app_url}")
    if report.log_path:
        print(f"📄 Log: {report.log_path}")
    print(f"{'='*60}\n")


def _log_status(log_file: Path) -> str:
    text = log_file.read_text(encoding="utf-8", errors="replace")
    if FAILURE_MARKER in text:
        return "failed"
    if SUCCESS_MARKER in text:
        return "success"
    return "unknown"


def handle_logs_command(args: argparse.Namespace, context: CLIContext) -> int:
    """Handle the logs subcommand."""
    log_dir = Path(context.log_dir)

    if not log_dir.exists():
        print("📁 No deployment logs found. Run a deployment first.")
        return 0

    log_files = sorted(log_dir.glob("deploy_*.log"), key=lambda p: p.name, reverse=True)

    if not log_files:
        print("📁 No deployment logs found.")
        return 0

    if args.list_logs:
        print(f"📁 Deployment logs in: {log_dir}\n")
        print(f"{'#':<4} {'Status':<10} {'File'}")
        print("-" * 60)
        for i, log_file in enumerate(log_files, 1):
            print(f"{i:<4} {_log_status(log_file):<10} {log_file.name}")
        return 0

    if args.file:
        target_file = Path(args.file)
        if not target_file.exists():
            target_file = log_dir / args.file
        if not target_file.exists():
            print(f"❌ Log file not found: {args.file}")
            return 1
    else:
        target_file = log_files[0]

    print(target_file.read_text(encoding="utf-8", errors="replace"), end="")
    return 0


def dispatch_command(args: argparse.Namespace) -> int:
    context = _build_context(args)

    if args.command == "logs":
        return handle_logs_command(args, context)

    if args.command == "deploy":
        return handle_deploy_command(args, context)

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return dispatch_command(args)
    except (FileNotFoundError, DeploymentError) as exc:
        logger.error("ERROR: %s", exc)
        logger.error(FAILURE_MARKER)
        return 1
