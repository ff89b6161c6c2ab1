import socket
import subprocess
import time

import pytest

from sitewarden.domains import (
    block_domain,
    setup_domains,
    try_block_domain,
    unblock_domain,
    unblock_domains,
    update_domain_ips,
)
from sitewarden.eventlog import EventLog
from sitewarden.models import DomainInfo, IPVersion, Settings
from sitewarden.storage import save_domains

V4 = "192.0.2.10"
V6 = "2001:db8::10"
NEW_V4 = "198.51.100.7"
NEW_V6 = "2001:db8::77"


class FakeFirewall:
    def __init__(self):
        self.rules = []

    def run(self, command, check=False):
        tool, action, _chain, _flag, ip = command[:5]
        if action == "-A":
            self.rules.append((tool, ip))
            return subprocess.CompletedProcess(command, 0)
        if (tool, ip) in self.rules:
            self.rules.remove((tool, ip))
            return subprocess.CompletedProcess(command, 0)
        return subprocess.CompletedProcess(command, 1)


@pytest.fixture
def fw(monkeypatch):
    fake = FakeFirewall()
    monkeypatch.setattr(subprocess, "run", fake.run)
    return fake


@pytest.fixture
def resolver(monkeypatch):
    def fake(host, port, family=0, type=0, *args):
        return [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", (NEW_V4, 0)),
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", (NEW_V6, 0, 0, 0)),
        ]

    monkeypatch.setattr(socket, "getaddrinfo", fake)


@pytest.fixture
def failing_resolver(monkeypatch):
    def fake(*args, **kwargs):
        raise socket.gaierror("no such host")

    monkeypatch.setattr(socket, "getaddrinfo", fake)


def make_domain(**kwargs):
    values = dict(domain="example.com", ipv4s=[V4], ipv6s=[V6], block_threshold=10)
    values.update(kwargs)
    return DomainInfo(**values)


def local_ts(hour, minute):
    return int(time.mktime((2024, 1, 10, hour, minute, 0, 0, 0, -1)))


def test_block_domain_sets_state_and_rules(fw):
    domain = make_domain()
    block_domain(domain, now=1_700_000_000)
    assert domain.is_blocked is True
    assert domain.last_time_blocked == 1_700_000_000
    assert sorted(fw.rules) == [("ip6tables", V6), ("iptables", V4)]


def test_unblock_domain_resets_and_removes_rules(fw):
    domain = make_domain()
    block_domain(domain, now=1_700_000_000)
    domain.current_time_on_domain = 42.0
    domain.last_time_packet_received = 1_700_000_100
    unblock_domain(domain)
    assert domain.is_blocked is False
    assert domain.current_time_on_domain == 0.0
    assert domain.last_time_blocked == 0
    assert domain.last_time_packet_received == 0
    assert fw.rules == []


def test_unblock_removes_duplicate_rules(fw):
    domain = make_domain()
    block_domain(domain, now=1)
    block_domain(domain, now=2)
    assert domain.last_time_blocked == 2
    assert len(fw.rules) == 4
    unblock_domain(domain)
    assert domain.is_blocked is False
    assert domain.last_time_blocked == 0
    assert fw.rules == []


def test_unblock_domains_handles_all(fw):
    first = make_domain()
    second = make_domain(domain="example.org", ipv4s=[NEW_V4], ipv6s=[])
    block_domain(first, now=5)
    block_domain(second, now=5)
    unblock_domains([first, second])
    assert not first.is_blocked and not second.is_blocked
    assert fw.rules == []


def test_update_ips_of_blocked_domain_moves_rules(fw, resolver):
    domain = make_domain()
    block_domain(domain, now=5)
    update_domain_ips(domain)
    assert domain.ipv4s == [NEW_V4]
    assert domain.ipv6s == [NEW_V6]
    assert sorted(fw.rules) == [("ip6tables", NEW_V6), ("iptables", NEW_V4)]


def test_update_ips_of_unblocked_domain_adds_no_rules(fw, resolver):
    domain = make_domain()
    update_domain_ips(domain)
    assert domain.ipv4s == [NEW_V4]
    assert fw.rules == []


def test_update_ips_resolution_failure_clears_addresses(fw, failing_resolver):
    domain = make_domain()
    block_domain(domain, now=5)
    update_domain_ips(domain)
    assert domain.ipv4s == [] and domain.ipv6s == []
    assert fw.rules == []


def test_first_packet_starts_counter(fw):
    domain = make_domain()
    assert try_block_domain(V4, IPVersion.IPV4, [domain], now=1000) is False
    assert domain.current_time_on_domain == 1
    assert domain.last_time_packet_received == 1000
    assert domain.is_blocked is False


def test_later_packet_accumulates_elapsed_time(fw):
    domain = make_domain(block_threshold=100)
    try_block_domain(V4, IPVersion.IPV4, [domain], now=1000)
    first = domain.current_time_on_domain
    try_block_domain(V4, IPVersion.IPV4, [domain], now=1005)
    assert domain.current_time_on_domain == first + (1005 - 1000)
    assert domain.last_time_packet_received == 1005


def test_exceeding_threshold_blocks_ip(fw):
    domain = make_domain(block_threshold=3)
    try_block_domain(V6, IPVersion.IPV6, [domain], now=1000)
    assert try_block_domain(V6, IPVersion.IPV6, [domain], now=1010) is False
    assert domain.is_blocked is True
    assert fw.rules == [("ip6tables", V6)]
    assert try_block_domain(V6, IPVersion.IPV6, [domain], now=1011) is True


def test_unknown_ip_changes_nothing(fw):
    domain = make_domain()
    assert try_block_domain(NEW_V4, IPVersion.IPV4, [domain], now=1000) is False
    assert domain.last_time_packet_received == 0
    assert domain.current_time_on_domain == 0.0


def test_version_selects_address_list(fw):
    domain = make_domain()
    assert try_block_domain(V4, IPVersion.IPV6, [domain], now=1000) is False
    assert domain.last_time_packet_received == 0


def test_match_is_logged(fw, tmp_path):
    path = tmp_path / "log.txt"
    domain = make_domain()
    with EventLog(path) as log:
        try_block_domain(V4, IPVersion.IPV4, [domain], log=log, now=1000)
    assert path.read_text() == f"IP {V4} found in domain example.com\n"


def test_setup_missing_file_gives_empty_list(fw, tmp_path):
    assert setup_domains(tmp_path / "absent.bin", now=1000) == []


def test_setup_keeps_block_before_reset_time(fw, resolver, tmp_path):
    path = tmp_path / "domains.bin"
    blocked_at = local_ts(10, 0)
    save_domains(
        [make_domain(is_blocked=True, last_time_blocked=blocked_at, current_time_on_domain=50.0)],
        path,
    )
    [domain] = setup_domains(path, Settings(15, 16), now=blocked_at + 3600)
    assert domain.is_blocked is True
    assert domain.current_time_on_domain == 50.0
    assert sorted(fw.rules) == [("ip6tables", NEW_V6), ("iptables", NEW_V4)]


def test_setup_lifts_block_after_reset_time(fw, resolver, tmp_path):
    path = tmp_path / "domains.bin"
    blocked_at = local_ts(10, 0)
    save_domains(
        [make_domain(is_blocked=True, last_time_blocked=blocked_at, current_time_on_domain=50.0)],
        path,
    )
    [domain] = setup_domains(path, Settings(15, 16), now=local_ts(15, 17))
    assert domain.is_blocked is False
    assert domain.current_time_on_domain == 0.0
    assert fw.rules == []


def test_setup_resets_usage_of_unblocked_domain(fw, resolver, tmp_path):
    path = tmp_path / "domains.bin"
    save_domains(
        [make_domain(current_time_on_domain=7.0, last_time_packet_received=local_ts(9, 0))],
        path,
    )
    [domain] = setup_domains(path, Settings(15, 16), now=local_ts(11, 0))
    assert domain.current_time_on_domain == 0.0
    assert domain.last_time_packet_received == 0
    assert domain.ipv4s == [NEW_V4]