"""Pydantic schemas for the durable processed-archive state.

The whole ``ProcessedState`` is serialized as a single JSON object in the
bucket; every field must survive a dump/validate round trip.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FileRecord(BaseModel):
    name: str = Field(..., min_length=1, description="Entry filename within the archive")
    source_archive: str = Field(..., description="Key of the archive the entry came from")


class ArchiveRecord(BaseModel):
    name: str = Field(..., min_length=1, description="Object key of the archive")
    content_hash: str | None = Field(None, description="Object etag captured at extraction (audit only)")
    extracted_at: datetime = Field(default_factory=_utcnow)
    files: list[FileRecord] = Field(default_factory=list)


class ProcessedState(BaseModel):
    last_run_at: datetime = Field(default_factory=_utcnow)
    archives: list[ArchiveRecord] = Field(default_factory=list)

    def names(self) -> set[str]:
        return {a.name for a in self.archives}
