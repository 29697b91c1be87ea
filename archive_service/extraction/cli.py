from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="archive-router",
        description="Extract new zip archives from GCS and file their attachments by PO number",
    )

    p.add_argument("--max-archives", type=int, default=0, help="Max new archives to process (0 = no cap)")
    p.add_argument(
        "--concurrency",
        type=int,
        default=0,
        help="Override ARCHIVE_MAX_ARCHIVE_WORKERS",
    )
    p.add_argument("--dry-run", action="store_true", help="List new archives and exit (no writes)")

    maint = p.add_argument_group("maintenance")
    maint.add_argument(
        "--reset-state",
        action="store_true",
        help="Delete the processed-state object before running (every archive is reprocessed)",
    )
    maint.add_argument(
        "--purge-destination",
        action="store_true",
        help="Delete every routed attachment under ARCHIVE_DEST_PREFIX before running",
    )
    maint.add_argument(
        "--maintenance-only",
        action="store_true",
        help="Run the requested maintenance steps and exit without extracting",
    )

    p.add_argument("--log-level", default="INFO", help="Python logging level (INFO, DEBUG, ...)")
    return p
