"""Deterministic ZIP assembly and persistence."""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

from ..errors import ArchiveError, OutputWriteError

logger = logging.getLogger(__name__)

# Earliest timestamp representable in a ZIP header.
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
MEMBER_MODE = 0o100644


@dataclass(slots=True)
class ArchiveMember:
    """Archive entry whose content is either in memory or on disk."""

    name: str
    source: Union[bytes, Path]

    def read(self) -> bytes:
        if isinstance(self.source, bytes):
            return self.source
        try:
            return self.source.read_bytes()
        except OSError as exc:
            raise ArchiveError(f"Unable to read archive member {self.source}: {exc}") from exc


def read_member(path: Path | str) -> ArchiveMember:
    """Load ``path`` into memory as a member stored under its base name."""

    path_obj = Path(path)
    member = ArchiveMember(name=path_obj.name, source=path_obj)
    member.source = member.read()
    return member


def check_member_names(names: Iterable[str]) -> None:
    """Raise :class:`ArchiveError` when two members would share a name."""

    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ArchiveError(f"Duplicate archive member name: {name}")
        seen.add(name)


def build_archive(members: Iterable[ArchiveMember]) -> bytes:
    """Return ZIP bytes holding ``members`` in the order given."""

    resolved: List[ArchiveMember] = list(members)
    check_member_names(member.name for member in resolved)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for member in resolved:
            info = zipfile.ZipInfo(member.name, date_time=FIXED_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = MEMBER_MODE << 16
            archive.writestr(info, member.read())
    data = buffer.getvalue()
    logger.info("Assembled archive with %d member(s), %d bytes", len(resolved), len(data))
    return data


def write_archive(data: bytes, path: Path | str) -> Path:
    """Persist ``data`` at ``path``, creating parent directories."""

    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        raise OutputWriteError(f"Unable to write archive to {target}: {exc}") from exc
    logger.info("Wrote archive to %s", target)
    return target
