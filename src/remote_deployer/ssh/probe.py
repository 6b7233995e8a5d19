"""Remote host probing utilities."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .credentials import SSHCredentials
from .session import SSHConnectionError, SSHSession

logger = logging.getLogger(__name__)

PUBLIC_IP_TIMEOUT = 10
PUBLIC_IP_COMMAND = (
    f"curl -s --max-time {PUBLIC_IP_TIMEOUT} ifconfig.me || hostname -I | awk '{{print $1}}'"
)
PACKAGE_MANAGERS = ("apt-get", "dnf", "yum")


class HostUnreachableError(RuntimeError):
    """Raised when every reachability attempt failed."""

    def __init__(self, target: str, attempts: int, last_error: str) -> None:
        self.target = target
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{target} unreachable after {attempts} attempt(s): {last_error}"
        )


class ReachabilityProbe:
    """Runs an SSH no-op with a bounded, linearly increasing backoff.

    Attempt ``n`` that fails is followed by a sleep of ``backoff * n``
    seconds, so the default settings wait 2s and then 4s before giving up
    on the third failure.
    """

    def __init__(
        self,
        *,
        attempts: int = 3,
        backoff: float = 2.0,
        session_factory: Callable[[SSHCredentials], SSHSession] = SSHSession,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.backoff = backoff
        self._session_factory = session_factory
        self._sleep = sleep

    def delays(self) -> list[float]:
        return [self.backoff * attempt for attempt in range(1, self.attempts)]

    def check(self, credentials: SSHCredentials) -> int:
        """Return the attempt number that succeeded or raise HostUnreachableError."""
        last_error = "no attempt made"
        for attempt in range(1, self.attempts + 1):
            logger.info(
                "Checking SSH connectivity to %s (attempt %d/%d)...",
                credentials.target,
                attempt,
                self.attempts,
            )
            try:
                with self._session_factory(credentials) as session:
                    result = session.run("true", timeout=credentials.timeout)
                if result.ok:
                    logger.info("SSH connection to %s established.", credentials.target)
                    return attempt
                last_error = result.describe()
            except SSHConnectionError as exc:
                last_error = str(exc)
            logger.warning("SSH attempt %d failed: %s", attempt, last_error)
            if attempt < self.attempts:
                delay = self.backoff * attempt
                logger.info("Retrying in %.0fs...", delay)
                self._sleep(delay)
        raise HostUnreachableError(credentials.target, self.attempts, last_error)


class RemoteProbe:
    """Collects remote host facts by running simple commands."""

    def public_address(self, session: SSHSession, fallback: str) -> str:
        """Return the host's public IP as reported by the host itself.

        Falls back to ``fallback`` when the lookup fails or prints nothing.
        """
        result = session.run(PUBLIC_IP_COMMAND, timeout=PUBLIC_IP_TIMEOUT * 2)
        lines = result.stdout.strip().splitlines()
        address = lines[0].strip() if lines else ""
        if not result.ok or not address:
            return fallback
        return address

    def package_manager(self, session: SSHSession) -> Optional[str]:
        for candidate in PACKAGE_MANAGERS:
            if session.run(f"command -v {candidate}").ok:
                return candidate
        return None
