"""The blocker daemon: sniffs traffic, tracks time per domain and serves reload requests."""

from __future__ import annotations

import argparse
import logging
import signal
import socket
import threading
from pathlib import Path

from .domains import setup_domains, try_block_domain, unblock_domains
from .eventlog import EventLog
from .models import DOMAINS_FILE, DOMAINS_FILE_UPDATE, SOCKET_PATH, DomainInfo, IPVersion

logger = logging.getLogger(__name__)

ETH_P_ALL = 0x0003
ETH_P_IP = 0x0800
ETH_P_IPV6 = 0x86DD

_ETH_HEADER = 14
_IPV4_SRC = slice(_ETH_HEADER + 12, _ETH_HEADER + 16)
_IPV6_SRC = slice(_ETH_HEADER + 8, _ETH_HEADER + 24)
_RECV_SIZE = 65536
_REQUEST_SIZE = 256
_POLL_INTERVAL = 0.5


def parse_packet(frame: bytes) -> tuple[str, IPVersion] | None:
    """Return the source address and IP version of an Ethernet frame.

    Frames that carry neither IPv4 nor IPv6, or are too short, yield None.
    """
    if len(frame) < _ETH_HEADER:
        return None
    eth_type = int.from_bytes(frame[12:14], "big")
    if eth_type == ETH_P_IP:
        source = frame[_IPV4_SRC]
        if len(source) != 4:
            return None
        return socket.inet_ntop(socket.AF_INET, source), IPVersion.IPV4
    if eth_type == ETH_P_IPV6:
        source = frame[_IPV6_SRC]
        if len(source) != 16:
            return None
        return socket.inet_ntop(socket.AF_INET6, source), IPVersion.IPV6
    return None


class Blocker:
    """Holds the watched domains and runs the sniffer and the reload listener."""

    def __init__(
        self,
        domains_path: str | Path = DOMAINS_FILE,
        socket_path: str | Path = SOCKET_PATH,
        log: EventLog | None = None,
    ) -> None:
        self.domains_path = Path(domains_path)
        self.socket_path = Path(socket_path)
        self.log = log
        self._domains: list[DomainInfo] = []
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    @property
    def domains(self) -> list[DomainInfo]:
        with self._lock:
            return list(self._domains)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def reload(self) -> list[DomainInfo]:
        """Reload the domains file, applying the daily reset; return the new list."""
        domains = setup_domains(self.domains_path)
        with self._lock:
            self._domains = domains
        logger.info("Domains reloaded successfully. Count: %d", len(domains))
        return list(domains)

    def handle_request(self, message: bytes | str) -> bool:
        """Act on one IPC message; return True if it was understood."""
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        message = message.split("\0", 1)[0]
        logger.info("Received request: %s", message)
        if message == DOMAINS_FILE_UPDATE:
            logger.info("Received update request for domains file.")
            self.reload()
            return True
        logger.warning("Unknown request: %s", message)
        return False

    def serve_ipc(self) -> None:
        """Accept reload requests on the Unix socket until stopped."""
        logger.info("Starting IPC listener...")
        self.socket_path.unlink(missing_ok=True)
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as server:
            server.bind(str(self.socket_path))
            server.listen(5)
            server.settimeout(_POLL_INTERVAL)
            try:
                while not self._stopped.is_set():
                    try:
                        conn, _ = server.accept()
                    except socket.timeout:
                        continue
                    with conn:
                        conn.settimeout(_POLL_INTERVAL * 4)
                        try:
                            data = conn.recv(_REQUEST_SIZE)
                        except OSError as exc:
                            logger.error("IPC read failed: %s", exc)
                            continue
                    self.handle_request(data)
            finally:
                self.socket_path.unlink(missing_ok=True)

    def _process_frame(self, frame: bytes) -> bool:
        parsed = parse_packet(frame)
        if parsed is None:
            return False
        ip, ip_version = parsed
        with self._lock:
            return try_block_domain(ip, ip_version, self._domains, self.log)

    def sniff(self) -> None:
        """Capture every frame on the host and account it until stopped.

        Needs a raw packet socket; raises OSError when one cannot be used.
        """
        family = getattr(socket, "AF_PACKET", None)
        if family is None:
            raise OSError("raw packet sockets are not available on this platform")
        with socket.socket(family, socket.SOCK_RAW, socket.htons(ETH_P_ALL)) as raw:
            logger.info("Socket created successfully.")
            raw.settimeout(_POLL_INTERVAL)
            while not self._stopped.is_set():
                try:
                    frame = raw.recv(_RECV_SIZE)
                except socket.timeout:
                    continue
                self._process_frame(frame)

    def stop(self) -> None:
        """Ask the sniffer and the listener to finish."""
        self._stopped.set()


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Block domains after a daily time allowance.")
    parser.add_argument("--domains-file", default=DOMAINS_FILE)
    parser.add_argument("--socket", default=SOCKET_PATH)
    parser.add_argument("--log", default="log.txt")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point of the blocker daemon."""
    args = _parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logger.info("Starting website blocker...")

    with EventLog(args.log) as log:
        blocker = Blocker(args.domains_file, args.socket, log)

        def _on_sigint(signum, frame) -> None:
            logger.info("Caught SIGINT (Ctrl+C)! Cleaning up...")
            blocker.stop()

        signal.signal(signal.SIGINT, _on_sigint)

        logger.info("Setting up domains...")
        if not blocker.reload():
            logger.error("Failed to resolve domains.")
            return 1

        listener = threading.Thread(target=blocker.serve_ipc, daemon=True)
        listener.start()
        status = 0
        try:
            blocker.sniff()
        except OSError as exc:
            logger.error("Socket Error: %s", exc)
            status = 1
        finally:
            blocker.stop()
            listener.join(timeout=_POLL_INTERVAL * 4)
            unblock_domains(blocker.domains)
        logger.info("Exiting program.")
        return status