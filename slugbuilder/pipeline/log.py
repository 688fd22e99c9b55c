"""Diagnostic log shared by every pipeline stage.

The log is truncated when a build starts; each stage appends a header
followed by the captured output of the commands it runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)

STAGE_PREFIX = "-----> "


class DiagnosticLog:
    """Append-only text log backed by a single file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def reset(self) -> None:
        """Truncate the log, creating parent directories if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            f.write(f"# Build started: {datetime.now(timezone.utc).isoformat()}\n")

    def write(self, line: str) -> None:
        """Append one line."""
        with self.path.open("a", encoding="utf-8", errors="backslashreplace") as f:
            f.write(line.rstrip("\n") + "\n")

    def stage(self, title: str) -> None:
        """Append a stage header."""
        self.write(f"{STAGE_PREFIX}{title}")

    @contextmanager
    def stream(self) -> Iterator[TextIO]:
        """Open the log for appending subprocess output.

        Yields:
            Text file handle positioned at the end of the log.
        """
        with self.path.open("a", encoding="utf-8") as f:
            yield f
            f.flush()

    def read_text(self) -> str:
        """Return the whole log, or "" if it does not exist yet."""
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8", errors="replace")

    def lines(self) -> list[str]:
        return self.read_text().splitlines()


__all__ = ["STAGE_PREFIX", "DiagnosticLog"]
