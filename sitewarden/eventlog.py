"""A simple line-oriented log file."""

from __future__ import annotations

from pathlib import Path
from typing import TextIO


class EventLog:
    """Writes one message per line to a file truncated on open."""

    def __init__(self, path: str | Path) -> None:
        self._file: TextIO | None = open(path, "w", encoding="utf-8")

    @property
    def closed(self) -> bool:
        return self._file is None

    def write(self, message: str) -> None:
        """Append a message and flush; does nothing once closed."""
        if self._file is None:
            return
        self._file.write(f"{message}\n")
        self._file.flush()

    def close(self) -> None:
        """Close the file; safe to call more than once."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "EventLog":
        return self

    def __exit__(self, *args) -> None:
        self.close()