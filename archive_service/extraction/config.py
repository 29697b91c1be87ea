from __future__ import annotations

import os
from dataclasses import dataclass


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    return int(v)


def _as_dir(prefix: str) -> str:
    p = prefix.lstrip("/")
    if p and not p.endswith("/"):
        p += "/"
    return p


@dataclass(frozen=True)
class ExtractConfig:
    # GCS
    bucket: str
    input_prefix: str  # "" lists the whole bucket
    dest_prefix: str  # e.g. "by-po/"
    state_key: str  # e.g. "data/ArchiveExtractorMetadata.json"
    credentials_file: str | None
    project: str | None

    # Entry selection
    archive_extension: str
    manifest_extension: str
    attachment_extension: str

    # Manifest layout
    manifest_delimiter: str
    manifest_id_column: str
    manifest_attachments_column: str
    unidentified_bucket: str

    # Concurrency / persistence
    max_archive_workers: int
    max_upload_workers: int
    checkpoint_every: int  # 0 = single flush at the end of a clean run
    ensure_state_prefix: bool

    @classmethod
    def from_env(cls) -> ExtractConfig:
        bucket = os.getenv("ARCHIVE_BUCKET")
        if not bucket:
            raise ValueError("ARCHIVE_BUCKET is required")

        return cls(
            bucket=bucket,
            input_prefix=_as_dir(os.getenv("ARCHIVE_INPUT_PREFIX", "")),
            dest_prefix=_as_dir(os.getenv("ARCHIVE_DEST_PREFIX", "by-po/")),
            state_key=os.getenv("ARCHIVE_STATE_KEY", "data/ArchiveExtractorMetadata.json").lstrip("/"),
            credentials_file=os.getenv("ARCHIVE_CREDENTIALS_FILE") or None,
            project=os.getenv("GOOGLE_CLOUD_PROJECT") or None,
            archive_extension=os.getenv("ARCHIVE_EXTENSION", ".zip"),
            manifest_extension=os.getenv("ARCHIVE_MANIFEST_EXTENSION", ".csv"),
            attachment_extension=os.getenv("ARCHIVE_ATTACHMENT_EXTENSION", ".pdf"),
            manifest_delimiter=os.getenv("ARCHIVE_MANIFEST_DELIMITER", "~"),
            manifest_id_column=os.getenv("ARCHIVE_MANIFEST_ID_COLUMN", "PO Number"),
            manifest_attachments_column=os.getenv("ARCHIVE_MANIFEST_ATTACHMENTS_COLUMN", "Attachment List"),
            unidentified_bucket=os.getenv("ARCHIVE_UNIDENTIFIED_BUCKET", "Unfiled"),
            max_archive_workers=_get_int("ARCHIVE_MAX_ARCHIVE_WORKERS", 4),
            max_upload_workers=_get_int("ARCHIVE_MAX_UPLOAD_WORKERS", 8),
            checkpoint_every=_get_int("ARCHIVE_CHECKPOINT_EVERY", 1),
            ensure_state_prefix=_get_bool("ARCHIVE_ENSURE_STATE_PREFIX", True),
        )

    @property
    def state_prefix(self) -> str:
        head, sep, _ = self.state_key.rpartition("/")
        return f"{head}{sep}" if sep else ""

    def validate(self) -> None:
        if not self.dest_prefix:
            raise ValueError("ARCHIVE_DEST_PREFIX must not be empty")
        if not self.state_key or self.state_key.endswith("/"):
            raise ValueError("ARCHIVE_STATE_KEY must name an object, not a prefix")
        if self.state_key.startswith(self.dest_prefix):
            raise ValueError("ARCHIVE_STATE_KEY must not live under ARCHIVE_DEST_PREFIX")

        exts = {
            "ARCHIVE_EXTENSION": self.archive_extension,
            "ARCHIVE_MANIFEST_EXTENSION": self.manifest_extension,
            "ARCHIVE_ATTACHMENT_EXTENSION": self.attachment_extension,
        }
        bad = [k for k, v in exts.items() if not v.startswith(".") or len(v) < 2]
        if bad:
            raise ValueError(f"Extensions must look like '.ext': {', '.join(bad)}")
        if self.manifest_extension.lower() == self.attachment_extension.lower():
            raise ValueError("ARCHIVE_MANIFEST_EXTENSION and ARCHIVE_ATTACHMENT_EXTENSION must differ")

        if len(self.manifest_delimiter) != 1 or self.manifest_delimiter == ",":
            raise ValueError("ARCHIVE_MANIFEST_DELIMITER must be a single character other than ','")
        if not self.manifest_id_column.strip() or not self.manifest_attachments_column.strip():
            raise ValueError("Manifest column names must not be empty")
        if not self.unidentified_bucket.strip() or "/" in self.unidentified_bucket:
            raise ValueError("ARCHIVE_UNIDENTIFIED_BUCKET must be a non-empty path segment")

        if self.max_archive_workers < 1:
            raise ValueError("ARCHIVE_MAX_ARCHIVE_WORKERS must be >= 1")
        if self.max_upload_workers < 1:
            raise ValueError("ARCHIVE_MAX_UPLOAD_WORKERS must be >= 1")
        if self.checkpoint_every < 0:
            raise ValueError("ARCHIVE_CHECKPOINT_EVERY must be >= 0")
