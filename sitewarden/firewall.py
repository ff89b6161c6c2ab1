"""Firewall rule management and domain resolution."""

from __future__ import annotations

import logging
import socket
import subprocess

from .models import IPVersion

logger = logging.getLogger(__name__)


def _run(command: list[str]) -> bool:
    """Run a command; return True when it exits with status 0."""
    try:
        result = subprocess.run(command, check=False)
    except OSError as exc:
        logger.error("cannot run %s: %s", command[0], exc)
        return False
    return result.returncode == 0


def _rule(tool: str, action: str, ip: str) -> list[str]:
    return [tool, action, "INPUT", "-s", ip, "-j", "DROP"]


def _remove_all(tool: str, ip: str) -> int:
    # Duplicate rules may exist, so delete until the tool reports none left.
    removed = 0
    while _run(_rule(tool, "-D", ip)):
        removed += 1
    return removed


def block_ipv4(ip: str) -> bool:
    """Add an iptables rule dropping traffic from ``ip``."""
    logger.info("Blocking IPv4: %s", ip)
    return _run(_rule("iptables", "-A", ip))


def unblock_ipv4(ip: str) -> int:
    """Remove every iptables drop rule for ``ip``; return how many."""
    logger.info("Unblocking IPv4: %s", ip)
    return _remove_all("iptables", ip)


def block_ipv6(ip: str) -> bool:
    """Add an ip6tables rule dropping traffic from ``ip``."""
    logger.info("Blocking IPv6: %s", ip)
    return _run(_rule("ip6tables", "-A", ip))


def unblock_ipv6(ip: str) -> int:
    """Remove every ip6tables drop rule for ``ip``; return how many."""
    logger.info("Unblocking IPv6: %s", ip)
    return _remove_all("ip6tables", ip)


def block_ip(ip: str, ip_version: IPVersion) -> bool:
    """Block ``ip`` with the tool matching its version."""
    if ip_version is IPVersion.IPV4:
        return block_ipv4(ip)
    if ip_version is IPVersion.IPV6:
        return block_ipv6(ip)
    raise ValueError(f"unknown IP version: {ip_version!r}")


def unblock_ip(ip: str, ip_version: IPVersion) -> int:
    """Unblock ``ip`` with the tool matching its version."""
    if ip_version is IPVersion.IPV4:
        return unblock_ipv4(ip)
    if ip_version is IPVersion.IPV6:
        return unblock_ipv6(ip)
    raise ValueError(f"unknown IP version: {ip_version!r}")


def resolve_ips(domain: str) -> tuple[list[str], list[str]]:
    """Resolve ``domain`` to its IPv4 and IPv6 addresses, in resolver order.

    Raises OSError (socket.gaierror) when resolution fails.
    """
    logger.info("Retrieving IPs for domain: %s", domain)
    infos = socket.getaddrinfo(domain, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    ipv4s: list[str] = []
    ipv6s: list[str] = []
    for family, _type, _proto, _canon, sockaddr in infos:
        if family == socket.AF_INET:
            ipv4s.append(sockaddr[0])
        elif family == socket.AF_INET6:
            ipv6s.append(sockaddr[0].split("%", 1)[0])
    return ipv4s, ipv6s