"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SSHCredentials:
    """Normalized key-based credential payload from CLI/config."""

    host: str
    username: str
    key_path: str
    port: int = 22
    timeout: int = 10

    @property
    def target(self) -> str:
        return f"{self.username}@{self.host}"
