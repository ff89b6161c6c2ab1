"""Binary persistence of the watched-domain list."""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Iterable

from .models import DomainInfo

_INT = struct.Struct("<i")
_BOOL = struct.Struct("<?")
_DOUBLE = struct.Struct("<d")
_TIME = struct.Struct("<q")


def _pack_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return _INT.pack(len(raw)) + raw


def _pack_domain(info: DomainInfo) -> bytes:
    parts = [_pack_string(info.domain)]
    for ips in (info.ipv4s, info.ipv6s):
        parts.append(_INT.pack(len(ips)))
        parts.extend(_pack_string(ip) for ip in ips)
    parts.append(_BOOL.pack(bool(info.is_blocked)))
    parts.append(_INT.pack(info.block_threshold))
    parts.append(_DOUBLE.pack(info.current_time_on_domain))
    parts.append(_TIME.pack(int(info.last_time_packet_received)))
    parts.append(_TIME.pack(int(info.last_time_blocked)))
    return b"".join(parts)


def encode_domains(domains: Iterable[DomainInfo]) -> bytes:
    """Serialise domains to the on-disk binary format."""
    domains = list(domains)
    try:
        return _INT.pack(len(domains)) + b"".join(_pack_domain(d) for d in domains)
    except struct.error as exc:
        raise ValueError(f"value cannot be stored: {exc}") from exc


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def _take(self, size: int) -> memoryview:
        end = self._pos + size
        if end > len(self._data):
            raise ValueError(f"truncated domain data at offset {self._pos}")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def unpack(self, layout: struct.Struct):
        return layout.unpack(self._take(layout.size))[0]

    def count(self) -> int:
        value = self.unpack(_INT)
        if value < 0:
            raise ValueError(f"negative length {value} in domain data")
        return value

    def string(self) -> str:
        raw = bytes(self._take(self.count()))
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError("invalid text in domain data") from exc

    def strings(self) -> list[str]:
        return [self.string() for _ in range(self.count())]

    def domain(self) -> DomainInfo:
        return DomainInfo(
            domain=self.string(),
            ipv4s=self.strings(),
            ipv6s=self.strings(),
            is_blocked=self.unpack(_BOOL),
            block_threshold=self.unpack(_INT),
            current_time_on_domain=self.unpack(_DOUBLE),
            last_time_packet_received=self.unpack(_TIME),
            last_time_blocked=self.unpack(_TIME),
        )


def decode_domains(data: bytes) -> list[DomainInfo]:
    """Parse the binary format; raise ValueError on malformed data."""
    reader = _Reader(data)
    return [reader.domain() for _ in range(reader.count())]


def save_domains(domains: Iterable[DomainInfo], path: str | Path) -> None:
    """Write domains to ``path``, replacing its contents."""
    Path(path).write_bytes(encode_domains(domains))


def load_domains(path: str | Path) -> list[DomainInfo]:
    """Read domains from ``path``; a missing file yields an empty list."""
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        return []
    return decode_domains(data)