"""
Connection Info Value Object

Architectural Intent:
- Immutable description of how to reach a provisioned node over SSH
- Used by the remote executor for post-provisioning configuration
- Supports "host:port" server strings as reported by providers
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ConnectionInfo:
    """
    Value Object with everything needed to open one authenticated channel.
    """
    host: str
    user: str = "root"
    port: int = 22
    key_path: Optional[str] = None
    private_key: Optional[str] = None
    connect_timeout: int = 10

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Connection host cannot be empty")
        if not self.user:
            raise ValueError("Connection user cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"

    def __repr__(self) -> str:
        # never leak key material
        return (
            f"ConnectionInfo(host={self.host!r}, user={self.user!r}, "
            f"port={self.port}, key_path={self.key_path!r}, "
            f"connect_timeout={self.connect_timeout})"
        )

    @staticmethod
    def parse(server_port: str, user: str = "root", **kwargs) -> "ConnectionInfo":
        """
        Parses 'host', 'host:port' or 'user@host:port'.
        """
        host = server_port.strip()
        port = 22
        if "@" in host:
            user, host = host.split("@", 1)
        if ":" in host:
            last_colon = host.rfind(":")
            try:
                port = int(host[last_colon + 1:])
                host = host[:last_colon]
            except ValueError:
                raise ValueError(f"Invalid port in: {server_port!r}") from None
        return ConnectionInfo(host=host, user=user, port=port, **kwargs)
