"""Data models returned by the build pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass(slots=True)
class BuildResult:
    archive_bytes: bytes
    artifacts: Dict[str, object] = field(default_factory=dict)

    def __iter__(self) -> Iterator[object]:
        yield self.archive_bytes
        yield self.artifacts
