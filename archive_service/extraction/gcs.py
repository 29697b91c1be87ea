from __future__ import annotations

from collections.abc import Iterable

from google.api_core.exceptions import NotFound
from google.cloud import storage


def gs_uri(bucket: str, name: str) -> str:
    return f"gs://{bucket}/{name}"


def build_client(*, credentials_file: str | None = None, project: str | None = None) -> storage.Client:
    """Service-account JSON when given, Application Default Credentials otherwise."""
    if credentials_file:
        return storage.Client.from_service_account_json(credentials_file, project=project)
    return storage.Client(project=project)


def list_objects(client: storage.Client, bucket: str, prefix: str) -> Iterable[storage.Blob]:
    # list_blobs pages through the whole listing lazily
    return client.list_blobs(bucket, prefix=prefix or None)


def prefix_has_objects(client: storage.Client, bucket: str, prefix: str) -> bool:
    for _ in client.list_blobs(bucket, prefix=prefix, max_results=1):
        return True
    return False


def download_bytes(client: storage.Client, bucket: str, name: str) -> bytes:
    b = client.bucket(bucket)
    blob = b.blob(name)
    return blob.download_as_bytes()


def download_bytes_if_exists(client: storage.Client, bucket: str, name: str) -> bytes | None:
    try:
        return download_bytes(client, bucket, name)
    except NotFound:
        return None


def upload_bytes(
    client: storage.Client,
    bucket: str,
    name: str,
    data: bytes,
    *,
    content_type: str = "application/octet-stream",
) -> None:
    b = client.bucket(bucket)
    blob = b.blob(name)
    blob.upload_from_string(data, content_type=content_type)


def upload_text(client: storage.Client, bucket: str, name: str, text: str, *, content_type: str = "text/plain") -> None:
    b = client.bucket(bucket)
    blob = b.blob(name)
    blob.upload_from_string(text, content_type=content_type)


def delete_object(client: storage.Client, bucket: str, name: str) -> None:
    b = client.bucket(bucket)
    blob = b.blob(name)
    blob.delete()


def ensure_prefix_marker(client: storage.Client, bucket: str, prefix: str) -> bool:
    """
    Creates a zero-byte "directory" object at `prefix` when nothing exists under it.
    Returns True when the marker was written.
    """
    if not prefix or prefix_has_objects(client, bucket, prefix):
        return False
    upload_bytes(client, bucket, prefix, b"")
    return True


def delete_object_if_exists(client: storage.Client, bucket: str, name: str) -> bool:
    try:
        delete_object(client, bucket, name)
    except NotFound:
        return False
    return True
