from __future__ import annotations

import asyncio
import logging
import mimetypes
from datetime import UTC, datetime

from google.cloud.storage import Client

from archive_service.extraction.config import ExtractConfig
from archive_service.extraction.errors import DeliveryError
from archive_service.extraction.gcs import download_bytes, ensure_prefix_marker, gs_uri, upload_bytes
from archive_service.extraction.manifest import parse_manifest
from archive_service.extraction.planner import discover_archives, filter_unprocessed
from archive_service.extraction.router import plan_deliveries
from archive_service.extraction.state import ProcessedStateTracker
from archive_service.extraction.types import ArchiveObject, ArchiveOutcome, Delivery, RunResult
from archive_service.extraction.unpacker import ArchiveEntry, ArchiveReader
from archive_service.logging_config import generate_run_id
from archive_service.models import ArchiveRecord, FileRecord

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def _content_type(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


class ArchiveExtractionRunner:
    def __init__(self, *, cfg: ExtractConfig, storage_client: Client) -> None:
        self._cfg = cfg
        self._gcs = storage_client
        self._tracker = ProcessedStateTracker(storage_client, bucket=cfg.bucket, key=cfg.state_key)
        self._since_flush = 0

    @property
    def tracker(self) -> ProcessedStateTracker:
        return self._tracker

    async def run(
        self,
        *,
        concurrency: int | None = None,
        max_archives: int = 0,
        dry_run: bool = False,
    ) -> RunResult:
        cfg = self._cfg
        run_id = generate_run_id()
        result = RunResult()

        if cfg.ensure_state_prefix and not dry_run:
            await asyncio.to_thread(ensure_prefix_marker, self._gcs, cfg.bucket, cfg.state_prefix)

        archives = await asyncio.to_thread(
            discover_archives,
            self._gcs,
            bucket=cfg.bucket,
            prefix=cfg.input_prefix,
            archive_extension=cfg.archive_extension,
        )
        result.discovered = len(archives)
        logger.info(
            "run=%s found %d '%s' archives under %s",
            run_id,
            len(archives),
            cfg.archive_extension,
            gs_uri(cfg.bucket, cfg.input_prefix),
        )

        # StateCorruptError propagates: never guess at prior progress
        await asyncio.to_thread(self._tracker.load)

        pending = filter_unprocessed(archives, self._tracker.archive_names(), max_archives=max_archives)
        result.new = len(pending)
        logger.info("run=%s %d archives have not been processed", run_id, len(pending))

        if not pending:
            return result

        if dry_run:
            for a in pending:
                logger.info("[DRY-RUN] %s", gs_uri(cfg.bucket, a.key))
            return result

        await asyncio.to_thread(ensure_prefix_marker, self._gcs, cfg.bucket, cfg.dest_prefix)

        archive_sem = asyncio.Semaphore(concurrency if concurrency and concurrency > 0 else cfg.max_archive_workers)
        upload_sem = asyncio.Semaphore(cfg.max_upload_workers)
        state_lock = asyncio.Lock()
        self._since_flush = 0

        async def worker(archive: ArchiveObject) -> ArchiveOutcome:
            async with archive_sem:
                return await self._process_archive(
                    archive, run_id=run_id, upload_sem=upload_sem, state_lock=state_lock
                )

        outcomes = await asyncio.gather(*[worker(a) for a in pending])

        for o in outcomes:
            result.uploaded += o.uploaded
            result.dropped += len(o.dropped)
            if o.status == "completed":
                result.processed += 1
            else:
                result.failed += 1
                result.failures[o.archive.key] = o.error_message or "unknown error"

        if result.failed and cfg.checkpoint_every == 0:
            logger.error(
                "run=%s %d archives failed; processed state not flushed, all %d archives will be retried",
                run_id,
                result.failed,
                len(pending),
            )
        else:
            await asyncio.to_thread(self._tracker.flush)

        logger.info("run=%s finished %s", run_id, result.as_dict())
        return result

    async def _process_archive(
        self,
        archive: ArchiveObject,
        *,
        run_id: str,
        upload_sem: asyncio.Semaphore,
        state_lock: asyncio.Lock,
    ) -> ArchiveOutcome:
        logger.info("run=%s === processing archive: %s ===", run_id, archive.key)
        try:
            record, uploaded, dropped = await self._extract_archive(archive, run_id=run_id, upload_sem=upload_sem)
            async with state_lock:
                self._tracker.record_archive(record)
                await self._maybe_checkpoint()
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            logger.error("run=%s archive failed: %s :: %s", run_id, gs_uri(self._cfg.bucket, archive.key), err)
            return ArchiveOutcome(archive=archive, status="failed", uploaded=0, dropped=(), error_message=err)

        logger.info(
            "run=%s archive done: %s (%d uploads, %d unrouted attachments)",
            run_id,
            archive.key,
            uploaded,
            len(dropped),
        )
        return ArchiveOutcome(
            archive=archive, status="completed", uploaded=uploaded, dropped=tuple(dropped), error_message=None
        )

    async def _extract_archive(
        self,
        archive: ArchiveObject,
        *,
        run_id: str,
        upload_sem: asyncio.Semaphore,
    ) -> tuple[ArchiveRecord, int, list[str]]:
        cfg = self._cfg
        data = await asyncio.to_thread(download_bytes, self._gcs, cfg.bucket, archive.key)

        with ArchiveReader(
            data,
            manifest_extension=cfg.manifest_extension,
            attachment_extension=cfg.attachment_extension,
            source=archive.key,
        ) as reader:
            entries = reader.entries()
            logger.info("run=%s archive %s contains %d files", run_id, archive.key, len(entries))

            manifest = reader.manifest()
            with manifest.open() as fh:
                routing = parse_manifest(
                    fh,
                    delimiter=cfg.manifest_delimiter,
                    id_column=cfg.manifest_id_column,
                    attachments_column=cfg.manifest_attachments_column,
                    unidentified=cfg.unidentified_bucket,
                )

            attachments = reader.attachments()
            deliveries, dropped = plan_deliveries(
                routing, [a.name for a in attachments], root=cfg.dest_prefix
            )
            for name in dropped:
                logger.warning(
                    "run=%s %s: attachment %s is not referenced by the manifest; skipped", run_id, archive.key, name
                )

            by_name = {a.name: a for a in attachments}
            # Join every upload before the zip is closed, even when one fails
            results = await asyncio.gather(
                *[self._deliver(by_name[d.entry_name], d, upload_sem=upload_sem) for d in deliveries],
                return_exceptions=True,
            )

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise errors[0]

        record = ArchiveRecord(
            name=archive.key,
            content_hash=archive.etag,
            extracted_at=_now(),
            files=[FileRecord(name=e.name, source_archive=archive.key) for e in entries],
        )
        return record, len(deliveries), dropped

    async def _deliver(self, entry: ArchiveEntry, delivery: Delivery, *, upload_sem: asyncio.Semaphore) -> None:
        async with upload_sem:
            logger.debug("Uploading %s -> %s", entry.path, delivery.destination_key)
            try:
                content = entry.read_bytes()
                await asyncio.to_thread(
                    upload_bytes,
                    self._gcs,
                    self._cfg.bucket,
                    delivery.destination_key,
                    content,
                    content_type=_content_type(entry.name),
                )
            except Exception as e:
                raise DeliveryError(entry.path, delivery.destination_key, e) from e

    async def _maybe_checkpoint(self) -> None:
        # Caller holds the state lock
        every = self._cfg.checkpoint_every
        if not every:
            return
        self._since_flush += 1
        if self._since_flush >= every:
            await asyncio.to_thread(self._tracker.flush)
            self._since_flush = 0
