"""Command-line client that adds a watched domain and notifies the daemon."""

from __future__ import annotations

import argparse
import socket
import sys
from pathlib import Path

from .models import DOMAINS_FILE, DOMAINS_FILE_UPDATE, SOCKET_PATH, DomainInfo
from .storage import load_domains, save_domains


def add_domain(path: str | Path, domain: str, threshold: int) -> list[DomainInfo]:
    """Append ``domain`` with a block threshold in seconds to the file at ``path``.

    Returns the full list as saved.
    """
    domains = load_domains(path)
    domains.append(DomainInfo(domain=domain, block_threshold=threshold))
    save_domains(domains, path)
    return domains


def notify_server(socket_path: str | Path = SOCKET_PATH) -> None:
    """Tell the daemon listening on ``socket_path`` to reload its domains file."""
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as conn:
        conn.connect(str(socket_path))
        conn.sendall(DOMAINS_FILE_UPDATE.encode("ascii"))


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Add a domain to the blocker.")
    parser.add_argument("domain")
    parser.add_argument("threshold", type=int, help="threshold in seconds")
    parser.add_argument("--domains-file", default=DOMAINS_FILE)
    parser.add_argument("--socket", default=SOCKET_PATH)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point of the client command."""
    args = _parser().parse_args(argv)

    print(f"Adding domain: {args.domain} with threshold: {args.threshold} seconds")
    domains = add_domain(args.domains_file, args.domain, args.threshold)
    print(f"Loaded {len(domains) - 1} domains from file.")
    print(f"Domain {args.domain} added with threshold {args.threshold} seconds.")

    try:
        notify_server(args.socket)
    except OSError as exc:
        print(f"Could not notify IPC server: {exc}", file=sys.stderr)
    else:
        print("Sent update to IPC server.")
    return 0