"""Durable record of which archives have already been extracted.

The whole state lives in one JSON object in the bucket. A run loads it once,
appends an ``ArchiveRecord`` per extracted archive and writes it back with
``flush()``; a single object upload replaces the previous payload atomically.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime

from google.cloud import storage
from pydantic import ValidationError

from archive_service.extraction.errors import DuplicateArchiveError, StateCorruptError
from archive_service.extraction.gcs import delete_object_if_exists, download_bytes_if_exists, gs_uri, upload_text
from archive_service.models import ArchiveRecord, ProcessedState

logger = logging.getLogger(__name__)


class ProcessedStateTracker:
    def __init__(self, client: storage.Client, *, bucket: str, key: str) -> None:
        self._gcs = client
        self._bucket = bucket
        self._key = key
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._state = ProcessedState()
        self._names: set[str] = set()

    @property
    def uri(self) -> str:
        return gs_uri(self._bucket, self._key)

    @property
    def state(self) -> ProcessedState:
        return self._state

    def load(self) -> ProcessedState:
        raw = download_bytes_if_exists(self._gcs, self._bucket, self._key)
        if raw is None:
            logger.info("No processed state at %s; starting fresh", self.uri)
            state = ProcessedState(last_run_at=datetime.now(UTC))
        else:
            try:
                state = ProcessedState.model_validate_json(raw)
            except ValidationError as e:
                raise StateCorruptError(f"Processed state at {self.uri} cannot be decoded: {e}") from e

            if len(state.names()) != len(state.archives):
                raise StateCorruptError(f"Processed state at {self.uri} lists an archive more than once")
            logger.info(
                "Loaded processed state from %s: %d archives, last run %s",
                self.uri,
                len(state.archives),
                state.last_run_at.isoformat(),
            )

        with self._lock:
            self._state = state
            self._names = state.names()
        return state

    def is_processed(self, name: str) -> bool:
        with self._lock:
            return name in self._names

    def archive_names(self) -> set[str]:
        with self._lock:
            return set(self._names)

    def record_archive(self, record: ArchiveRecord) -> None:
        with self._lock:
            if record.name in self._names:
                raise DuplicateArchiveError(record.name)
            self._state.archives.append(record)
            self._names.add(record.name)

    def flush(self) -> None:
        # Serialized end to end so an older snapshot never lands after a newer one
        with self._flush_lock:
            with self._lock:
                self._state.last_run_at = datetime.now(UTC)
                payload = self._state.model_dump_json(indent=2)
                count = len(self._state.archives)
            upload_text(self._gcs, self._bucket, self._key, payload, content_type="application/json")
        logger.info("Flushed processed state to %s (%d archives)", self.uri, count)

    def reset(self) -> None:
        """Forget every processed archive and delete the stored payload."""
        with self._lock:
            self._state = ProcessedState(last_run_at=datetime.now(UTC))
            self._names = set()
        if delete_object_if_exists(self._gcs, self._bucket, self._key):
            logger.warning("Deleted processed state at %s", self.uri)
        else:
            logger.info("No processed state at %s to delete", self.uri)
