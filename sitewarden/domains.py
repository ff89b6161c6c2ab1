"""Domain blocking state: blocking, unblocking, daily reset and usage tracking."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable

from . import firewall
from .eventlog import EventLog
from .models import DomainInfo, IPVersion, Settings
from .storage import load_domains

logger = logging.getLogger(__name__)

_DAY = 24 * 3600


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else int(now)


def block_domain(domain: DomainInfo, now: int | None = None) -> None:
    """Mark ``domain`` blocked at ``now`` and drop traffic from all its addresses."""
    domain.is_blocked = True
    domain.last_time_blocked = _now(now)
    for ip in domain.ipv4s:
        firewall.block_ipv4(ip)
    for ip in domain.ipv6s:
        firewall.block_ipv6(ip)


def unblock_domain(domain: DomainInfo) -> None:
    """Clear the usage counters of ``domain`` and lift every block on its addresses."""
    domain.current_time_on_domain = 0.0
    domain.is_blocked = False
    domain.last_time_blocked = 0
    domain.last_time_packet_received = 0
    for ip in domain.ipv4s:
        firewall.unblock_ip(ip, IPVersion.IPV4)
    for ip in domain.ipv6s:
        firewall.unblock_ip(ip, IPVersion.IPV6)


def update_domain_ips(domain: DomainInfo) -> None:
    """Re-resolve ``domain`` and move its firewall rules to the new addresses.

    Rules for the old addresses are removed; if the domain is blocked the new
    addresses are blocked. When resolution fails the domain is left with no
    addresses.
    """
    for ip in domain.ipv4s:
        firewall.unblock_ipv4(ip)
    for ip in domain.ipv6s:
        firewall.unblock_ipv6(ip)
    domain.ipv4s = []
    domain.ipv6s = []

    try:
        domain.ipv4s, domain.ipv6s = firewall.resolve_ips(domain.domain)
    except OSError as exc:
        logger.error("cannot resolve %s: %s", domain.domain, exc)
        return

    if domain.is_blocked:
        for ip in domain.ipv4s:
            firewall.block_ipv4(ip)
        for ip in domain.ipv6s:
            firewall.block_ipv6(ip)


def _potential_reset(last_time_blocked: int, settings: Settings) -> int:
    """Timestamp of the reset time of day on the day of the last block."""
    moment = time.localtime(last_time_blocked)
    hours = settings.hour_to_reset - moment.tm_hour
    minutes = settings.minute_to_reset - moment.tm_min
    return last_time_blocked + hours * 3600 + minutes * 60


def _needs_reset(domain: DomainInfo, settings: Settings, now: int) -> bool:
    potential_reset = _potential_reset(domain.last_time_blocked, settings)
    if domain.is_blocked:
        return domain.last_time_blocked - now >= _DAY or now > potential_reset
    return now > potential_reset


def setup_domains(
    path: str | Path,
    settings: Settings | None = None,
    now: int | None = None,
) -> list[DomainInfo]:
    """Load domains from ``path``, apply the daily reset and refresh their addresses."""
    settings = settings if settings is not None else Settings()
    current = _now(now)
    domains = load_domains(path)
    for domain in domains:
        if _needs_reset(domain, settings, current):
            unblock_domain(domain)
        update_domain_ips(domain)
    return domains


def unblock_domains(domains: Iterable[DomainInfo]) -> None:
    """Unblock every domain in ``domains``."""
    for domain in domains:
        unblock_domain(domain)


def try_block_domain(
    ip: str,
    ip_version: IPVersion,
    domains: Iterable[DomainInfo],
    log: EventLog | None = None,
    now: int | None = None,
) -> bool:
    """Account a packet from ``ip`` to the domains owning it.

    Returns True when ``ip`` belongs to a domain that is already blocked.
    Otherwise the time spent on each matching domain is updated, and a domain
    that goes over its threshold is marked blocked and ``ip`` is dropped.
    """
    for domain in domains:
        if ip not in domain.addresses(ip_version):
            continue

        message = f"IP {ip} found in domain {domain.domain}"
        logger.info(message)
        if log is not None:
            log.write(message)

        if domain.is_blocked:
            return True

        current = _now(now)
        if domain.last_time_packet_received != 0:
            domain.current_time_on_domain += current - domain.last_time_packet_received
        else:
            logger.info("First packet received for domain %s", domain.domain)
            domain.current_time_on_domain = 1.0
        domain.last_time_packet_received = current

        if domain.current_time_on_domain > domain.block_threshold:
            logger.info("Blocking domain %s for exceeding time threshold.", domain.domain)
            domain.is_blocked = True
            firewall.block_ip(ip, ip_version)
    return False