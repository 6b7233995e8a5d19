"""Git operations helpers."""

from .manager import (
    GitCommandError,
    GitRepositoryManager,
    GitSyncResult,
    authenticated_url,
    repo_name_from_url,
)

__all__ = [
    "GitCommandError",
    "GitRepositoryManager",
    "GitSyncResult",
    "authenticated_url",
    "repo_name_from_url",
]
