"""Core data types shared by the blocker daemon and its client."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

DOMAINS_FILE = "domains.bin"
SOCKET_PATH = "/tmp/my_socket"
DOMAINS_FILE_UPDATE = "domains_file_update"


class IPVersion(enum.Enum):
    """Internet protocol version of an address."""

    IPV4 = 4
    IPV6 = 6


@dataclass
class DomainInfo:
    """A watched domain, its resolved addresses and its usage state.

    ``block_threshold`` and ``current_time_on_domain`` are in seconds;
    the two ``last_time_*`` fields are Unix timestamps, 0 meaning never.
    """

    domain: str
    ipv4s: list[str] = field(default_factory=list)
    ipv6s: list[str] = field(default_factory=list)
    is_blocked: bool = False
    block_threshold: int = 0
    current_time_on_domain: float = 0.0
    last_time_packet_received: int = 0
    last_time_blocked: int = 0

    def addresses(self, ip_version: IPVersion) -> list[str]:
        """Return the address list for the given IP version."""
        return self.ipv4s if ip_version is IPVersion.IPV4 else self.ipv6s


@dataclass(frozen=True)
class Settings:
    """Time of day at which usage counters and blocks are reset."""

    hour_to_reset: int = 15
    minute_to_reset: int = 16

    def __post_init__(self) -> None:
        if not 0 <= self.hour_to_reset < 24:
            raise ValueError(f"hour_to_reset out of range: {self.hour_to_reset}")
        if not 0 <= self.minute_to_reset < 60:
            raise ValueError(f"minute_to_reset out of range: {self.minute_to_reset}")