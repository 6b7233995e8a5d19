"""SSH utilities for remote-deployer."""

from .credentials import SSHCredentials
from .session import SSHCommandResult, SSHConnectionError, SSHSession
from .probe import HostUnreachableError, ReachabilityProbe, RemoteProbe

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
    "HostUnreachableError",
    "ReachabilityProbe",
    "RemoteProbe",
]
