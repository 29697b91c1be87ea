from __future__ import annotations

from collections.abc import Iterable

from google.cloud import storage

from archive_service.extraction.gcs import list_objects
from archive_service.extraction.types import ArchiveObject


def has_extension(name: str, ext: str) -> bool:
    return name.lower().endswith(ext.lower())


def discover_archives(
    client: storage.Client,
    *,
    bucket: str,
    prefix: str,
    archive_extension: str = ".zip",
) -> list[ArchiveObject]:
    items: list[ArchiveObject] = []
    for blob in list_objects(client, bucket, prefix):
        if blob.name.endswith("/"):
            continue
        if not has_extension(blob.name, archive_extension):
            continue

        items.append(
            ArchiveObject(
                key=blob.name,
                etag=getattr(blob, "etag", None),
                size=int(getattr(blob, "size", 0) or 0) or None,
                updated=getattr(blob, "updated", None),
            )
        )

    items.sort(key=lambda a: a.key)
    return items


def filter_unprocessed(
    archives: Iterable[ArchiveObject],
    processed: set[str],
    *,
    max_archives: int = 0,
) -> list[ArchiveObject]:
    out = [a for a in archives if a.key not in processed]
    if max_archives and len(out) > max_archives:
        out = out[:max_archives]
    return out
