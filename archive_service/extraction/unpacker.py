"""Read-only view over a zip archive downloaded from the bucket.

Entries are decompressed only when opened, so an archive holding many large
attachments is never fully inflated in memory at once.
"""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from typing import IO

from archive_service.extraction.errors import CorruptArchiveError, ManifestNotFoundError


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class ArchiveEntry:
    name: str  # final path segment
    path: str  # full path inside the archive
    size: int
    _zip: zipfile.ZipFile = field(repr=False, compare=False)

    def open(self) -> IO[bytes]:
        return self._zip.open(self.path)

    def read_bytes(self) -> bytes:
        with self.open() as fh:
            return fh.read()


class ArchiveReader:
    def __init__(
        self,
        data: bytes,
        *,
        manifest_extension: str = ".csv",
        attachment_extension: str = ".pdf",
        source: str = "<archive>",
    ) -> None:
        self._source = source
        self._manifest_ext = manifest_extension.lower()
        self._attachment_ext = attachment_extension.lower()
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise CorruptArchiveError(f"{source}: not a readable zip archive ({e})") from e

    def __enter__(self) -> ArchiveReader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(name=_basename(info.filename), path=info.filename, size=info.file_size, _zip=self._zip)
            for info in self._zip.infolist()
            if not info.is_dir()
        ]

    def manifest(self) -> ArchiveEntry:
        found = [e for e in self.entries() if e.name.lower().endswith(self._manifest_ext)]
        if len(found) != 1:
            names = ", ".join(e.path for e in found) or "none"
            raise ManifestNotFoundError(
                f"{self._source}: expected exactly one '{self._manifest_ext}' manifest, found {len(found)} ({names})"
            )
        return found[0]

    def attachments(self) -> list[ArchiveEntry]:
        return [e for e in self.entries() if e.name.lower().endswith(self._attachment_ext)]
