"""SSH session management built on Paramiko."""

from __future__ import annotations

import logging
import posixpath
import socket
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

import paramiko

from .credentials import SSHCredentials

logger = logging.getLogger(__name__)

READ_CHUNK = 32768
POLL_INTERVAL = 0.1


class SSHConnectionError(RuntimeError):
    """Raised when an SSH connection cannot be established."""

    pass


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0

    def describe(self) -> str:
        detail = self.stderr or self.stdout or "no output"
        return f"`{self.command}` exited with {self.exit_status}: {detail}"


def _drain(channel, stdout_chunks: list[bytes], stderr_chunks: list[bytes]) -> bool:
    """Read whatever is buffered on both streams; return True if anything was read."""
    has_activity = False
    while channel.recv_ready():
        stdout_chunks.append(channel.recv(READ_CHUNK))
        has_activity = True
    while channel.recv_stderr_ready():
        stderr_chunks.append(channel.recv_stderr(READ_CHUNK))
        has_activity = True
    return has_activity


class SSHSession:
    """High-level wrapper around paramiko.SSHClient."""

    def __init__(
        self,
        credentials: SSHCredentials,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.credentials = credentials
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        connect_kwargs = {
            "hostname": self.credentials.host,
            "port": self.credentials.port,
            "username": self.credentials.username,
            "key_filename": str(Path(self.credentials.key_path).expanduser()),
            "timeout": self.credentials.timeout,
            "banner_timeout": self.credentials.timeout,
            "look_for_keys": False,
            "allow_agent": False,
        }
        try:
            client.connect(**connect_kwargs)
        except (paramiko.SSHException, socket.error, EOFError) as exc:
            client.close()
            raise SSHConnectionError(
                f"Cannot connect to {self.credentials.target}: {exc}"
            ) from exc
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(
        self,
        command: str,
        *,
        input_data: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> SSHCommandResult:
        """
        Execute a command on the remote server and wait for it to finish.

        Args:
            command: The shell command to execute
            input_data: Text written to the command's stdin before it is closed
            timeout: Seconds to wait for the command (default: 600)

        Returns:
            SSHCommandResult with command output and exit status
        """
        if not self._client:
            self.connect()
        assert self._client is not None

        if timeout is None:
            timeout = 600

        logger.debug("ssh %s: %s", self.credentials.target, command)
        stdin, stdout, stderr = self._client.exec_command(command, timeout=timeout)
        if input_data is not None:
            stdin.write(input_data)
            stdin.flush()
            stdin.channel.shutdown_write()

        # stdout and stderr share one receive window; drain both together
        channel = stdout.channel
        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        deadline = time.monotonic() + timeout
        while True:
            has_activity = _drain(channel, stdout_chunks, stderr_chunks)
            if channel.exit_status_ready() and not has_activity:
                break
            if time.monotonic() >= deadline:
                channel.close()
                return SSHCommandResult(
                    command=command,
                    stdout="",
                    stderr=f"TIMEOUT: Command did not complete within {timeout} seconds.",
                    exit_status=-1,
                )
            if not has_activity:
                time.sleep(POLL_INTERVAL)

        exit_status = channel.recv_exit_status()
        stdout_text = b"".join(stdout_chunks).decode("utf-8", errors="replace")
        stderr_text = b"".join(stderr_chunks).decode("utf-8", errors="replace")
        return SSHCommandResult(
            command=command,
            stdout=stdout_text.strip(),
            stderr=stderr_text.strip(),
            exit_status=exit_status,
        )

    def home_directory(self) -> str:
        """Return the absolute path of the remote user's home directory."""
        if not self._client:
            self.connect()
        assert self._client is not None
        sftp = self._client.open_sftp()
        try:
            return sftp.normalize(".")
        finally:
            sftp.close()

    def upload(self, local_paths: Iterable[Path], remote_dir: str) -> list[str]:
        """Copy local files into an existing remote directory over SFTP."""
        if not self._client:
            self.connect()
        assert self._client is not None
        uploaded: list[str] = []
        sftp = self._client.open_sftp()
        try:
            for local_path in local_paths:
                remote_path = posixpath.join(remote_dir, Path(local_path).name)
                logger.debug("sftp %s -> %s", local_path, remote_path)
                sftp.put(str(local_path), remote_path)
                uploaded.append(remote_path)
        finally:
            sftp.close()
        return uploaded
