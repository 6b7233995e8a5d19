"""Unified path constants for remote-deployer.

All local data is stored under the .remote-deployer directory:
- .remote-deployer/workspace/   # Local repository checkouts
- .remote-deployer/logs/        # Timestamped run logs
"""

from pathlib import Path

BASE_DIR = Path(".remote-deployer")

WORKSPACE_DIR = BASE_DIR / "workspace"
LOGS_DIR = BASE_DIR / "logs"
