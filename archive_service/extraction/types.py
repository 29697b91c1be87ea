from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ArchiveObject:
    key: str  # object name in bucket
    etag: str | None
    size: int | None
    updated: datetime | None


@dataclass(frozen=True)
class Delivery:
    entry_name: str
    identifier: str  # business identifier, or the unidentified bucket
    destination_key: str


@dataclass(frozen=True)
class ArchiveOutcome:
    archive: ArchiveObject
    status: str  # completed|failed
    uploaded: int
    dropped: tuple[str, ...]
    error_message: str | None


@dataclass
class RunResult:
    discovered: int = 0
    new: int = 0
    processed: int = 0
    failed: int = 0
    uploaded: int = 0
    dropped: int = 0
    failures: dict[str, str] = field(default_factory=dict)  # archive key -> error

    def as_dict(self) -> dict[str, int]:
        return {
            "discovered": self.discovered,
            "new": self.new,
            "processed": self.processed,
            "failed": self.failed,
            "uploaded": self.uploaded,
            "dropped": self.dropped,
        }
