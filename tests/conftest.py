"""Shared test fixtures for the archive-router test suite.

``FakeStorageClient`` mimics the small slice of ``google.cloud.storage.Client``
the extraction code uses (bucket/blob handles and ``list_blobs``), keeping
objects in memory so the pipeline can run without GCS.
"""

from __future__ import annotations

import hashlib
import io
import threading
import zipfile
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

import pytest
from google.api_core.exceptions import NotFound

from archive_service.extraction.config import ExtractConfig

BUCKET = "test-bucket"


class FakeBlob:
    def __init__(self, client: FakeStorageClient, bucket: str, name: str) -> None:
        self._client = client
        self.bucket_name = bucket
        self.name = name

    def _obj(self) -> dict:
        obj = self._client.objects.get((self.bucket_name, self.name))
        if obj is None:
            raise NotFound(f"gs://{self.bucket_name}/{self.name} not found")
        return obj

    @property
    def etag(self) -> str | None:
        obj = self._client.objects.get((self.bucket_name, self.name))
        return obj["etag"] if obj else None

    @property
    def size(self) -> int | None:
        obj = self._client.objects.get((self.bucket_name, self.name))
        return len(obj["data"]) if obj else None

    @property
    def updated(self) -> datetime | None:
        obj = self._client.objects.get((self.bucket_name, self.name))
        return obj["updated"] if obj else None

    @property
    def content_type(self) -> str | None:
        obj = self._client.objects.get((self.bucket_name, self.name))
        return obj["content_type"] if obj else None

    def download_as_bytes(self) -> bytes:
        return self._obj()["data"]

    def upload_from_string(self, data: bytes | str, content_type: str | None = None) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._client.put(self.bucket_name, self.name, data, content_type=content_type)

    def delete(self) -> None:
        self._obj()
        with self._client.lock:
            del self._client.objects[(self.bucket_name, self.name)]
            self._client.deletes.append(self.name)


class FakeBucket:
    def __init__(self, client: FakeStorageClient, name: str) -> None:
        self._client = client
        self.name = name

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self._client, self.name, name)


class FakeStorageClient:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.objects: dict[tuple[str, str], dict] = {}
        self.uploads: list[str] = []
        self.deletes: list[str] = []

    def bucket(self, name: str) -> FakeBucket:
        return FakeBucket(self, name)

    def list_blobs(
        self,
        bucket_or_name: str | FakeBucket,
        prefix: str | None = None,
        max_results: int | None = None,
    ) -> list[FakeBlob]:
        bucket = bucket_or_name if isinstance(bucket_or_name, str) else bucket_or_name.name
        names = sorted(n for (b, n) in self.objects if b == bucket and n.startswith(prefix or ""))
        if max_results is not None:
            names = names[:max_results]
        return [FakeBlob(self, bucket, n) for n in names]

    def put(self, bucket: str, name: str, data: bytes, *, content_type: str | None = None) -> None:
        with self.lock:
            self.objects[(bucket, name)] = {
                "data": data,
                "etag": hashlib.md5(data).hexdigest(),
                "updated": datetime.now(UTC),
                "content_type": content_type,
            }
            self.uploads.append(name)

    def get(self, bucket: str, name: str) -> bytes:
        return self.objects[(bucket, name)]["data"]

    def keys(self, bucket: str = BUCKET, prefix: str = "") -> list[str]:
        return sorted(n for (b, n) in self.objects if b == bucket and n.startswith(prefix))

    def uploads_under(self, prefix: str) -> list[str]:
        return [n for n in self.uploads if n.startswith(prefix)]


def build_zip(entries: dict[str, bytes | str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, content)
    return buf.getvalue()


_BASE_CONFIG = ExtractConfig(
    bucket=BUCKET,
    input_prefix="",
    dest_prefix="by-po/",
    state_key="data/ArchiveExtractorMetadata.json",
    credentials_file=None,
    project=None,
    archive_extension=".zip",
    manifest_extension=".csv",
    attachment_extension=".pdf",
    manifest_delimiter="~",
    manifest_id_column="PO Number",
    manifest_attachments_column="Attachment List",
    unidentified_bucket="Unfiled",
    max_archive_workers=4,
    max_upload_workers=8,
    checkpoint_every=1,
    ensure_state_prefix=True,
)


@pytest.fixture
def test_bucket() -> str:
    return BUCKET


@pytest.fixture
def fake_gcs() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def make_zip() -> Callable[[dict[str, bytes | str]], bytes]:
    return build_zip


@pytest.fixture
def make_config() -> Callable[..., ExtractConfig]:
    def _make(**overrides: object) -> ExtractConfig:
        return replace(_BASE_CONFIG, **overrides)

    return _make
