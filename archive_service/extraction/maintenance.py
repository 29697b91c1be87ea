"""Maintenance operations used to re-run extraction from scratch.

Neither operation is part of a normal run; both are reachable only through
explicit CLI flags.
"""

from __future__ import annotations

import logging

from google.cloud.storage import Client

from archive_service.extraction.config import ExtractConfig
from archive_service.extraction.gcs import delete_object_if_exists, gs_uri, list_objects
from archive_service.extraction.planner import has_extension
from archive_service.extraction.state import ProcessedStateTracker

logger = logging.getLogger(__name__)


def purge_destination(client: Client, cfg: ExtractConfig) -> int:
    """
    Deletes every routed attachment under the destination prefix.
    Archives are never deleted, even if one was placed under that prefix.
    """
    names = [
        blob.name
        for blob in list_objects(client, cfg.bucket, cfg.dest_prefix)
        if not has_extension(blob.name, cfg.archive_extension)
    ]
    deleted = 0
    for name in names:
        if delete_object_if_exists(client, cfg.bucket, name):
            deleted += 1
    logger.warning("Purged %d objects under %s", deleted, gs_uri(cfg.bucket, cfg.dest_prefix))
    return deleted


def reset_state(client: Client, cfg: ExtractConfig) -> None:
    ProcessedStateTracker(client, bucket=cfg.bucket, key=cfg.state_key).reset()
