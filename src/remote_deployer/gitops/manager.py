"""Git-based repository management."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)


def repo_name_from_url(repo_url: str) -> str:
    """Return the repository directory name for ``repo_url``."""
    name = repo_url.rstrip("/").split("/")[-1]
    return name[:-4] if name.endswith(".git") else name


def authenticated_url(repo_url: str, token: Optional[str]) -> str:
    """Embed ``token`` as the userinfo of an http(s) URL.

    Other URL forms (ssh, local paths) are returned unchanged.
    """
    parts = urlsplit(repo_url)
    if not token or parts.scheme not in ("http", "https"):
        return repo_url
    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"{token}@{host}", parts.path, parts.query, parts.fragment))


class GitCommandError(RuntimeError):
    """Raised when a git command fails."""

    def __init__(self, command: list[str], exit_code: int, stderr: str) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Git command {' '.join(command)} failed with code {exit_code}: {stderr}")


@dataclass
class GitSyncResult:
    """Details about a completed clone/update."""

    path: Path
    commit_sha: str
    cloned: bool


class GitRepositoryManager:
    """Wraps `git` CLI commands for cloning and updating repositories."""

    def __init__(self, git_binary: str = "git") -> None:
        self.git_binary = git_binary
        self._secrets: list[str] = []

    def sync(
        self,
        repo_url: str,
        target_dir: Path,
        *,
        branch: str = "main",
        token: Optional[str] = None,
    ) -> GitSyncResult:
        """Clone ``branch`` into ``target_dir`` or update an existing checkout in place."""
        self._secrets = [token] if token else []
        target_dir = target_dir.resolve()
        if (target_dir / ".git").exists():
            logger.info("Repository exists. Pulling latest changes on %s...", branch)
            self._run(["fetch", "origin", branch], cwd=target_dir)
            self._run(["checkout", branch], cwd=target_dir)
            self._run(["pull", "origin", branch], cwd=target_dir)
            cloned = False
        else:
            if target_dir.exists() and any(target_dir.iterdir()):
                raise GitCommandError(
                    [self.git_binary, "clone"],
                    128,
                    f"{target_dir} exists and is not a git checkout",
                )
            logger.info("Cloning repository (branch %s)...", branch)
            target_dir.parent.mkdir(parents=True, exist_ok=True)
            self._run([
                "clone",
                "-b",
                branch,
                authenticated_url(repo_url, token),
                str(target_dir),
            ])
            cloned = True

        commit_sha = self._run(["rev-parse", "HEAD"], cwd=target_dir).strip()
        return GitSyncResult(path=target_dir, commit_sha=commit_sha, cloned=cloned)

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, "***")
        return text

    def _run(self, args: list[str], cwd: Optional[Path] = None) -> str:
        command = [self.git_binary] + args
        process = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=False,
        )
        if process.returncode != 0:
            raise GitCommandError(
                [self._redact(part) for part in command],
                process.returncode,
                self._redact(process.stderr.strip()),
            )
        return process.stdout
