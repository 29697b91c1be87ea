from __future__ import annotations

import asyncio
import logging

from archive_service.extraction.cli import build_parser
from archive_service.extraction.config import ExtractConfig
from archive_service.extraction.errors import ExtractionError
from archive_service.extraction.gcs import build_client
from archive_service.extraction.maintenance import purge_destination, reset_state
from archive_service.extraction.runner import ArchiveExtractionRunner
from archive_service.logging_config import setup_logging


async def _amain(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.maintenance_only and not (args.reset_state or args.purge_destination):
        parser.error("--maintenance-only requires --reset-state and/or --purge-destination")
    if args.dry_run and (args.reset_state or args.purge_destination):
        parser.error("--dry-run cannot be combined with maintenance flags")

    setup_logging(level=args.log_level.upper())
    logger = logging.getLogger("archive_service.extraction")

    try:
        cfg = ExtractConfig.from_env()
        cfg.validate()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    client = build_client(credentials_file=cfg.credentials_file, project=cfg.project)

    if args.purge_destination:
        await asyncio.to_thread(purge_destination, client, cfg)
    if args.reset_state:
        await asyncio.to_thread(reset_state, client, cfg)
    if args.maintenance_only:
        return 0

    runner = ArchiveExtractionRunner(cfg=cfg, storage_client=client)
    try:
        result = await runner.run(
            concurrency=args.concurrency,
            max_archives=int(args.max_archives or 0),
            dry_run=bool(args.dry_run),
        )
    except ExtractionError as e:
        logger.error("Run aborted: %s: %s", type(e).__name__, e)
        return 1

    for key, err in sorted(result.failures.items()):
        logger.error("FAILED %s :: %s", key, err)
    logger.info("DONE totals=%s", result.as_dict())
    return 0 if result.failed == 0 else 2


def main() -> None:
    raise SystemExit(asyncio.run(_amain()))


if __name__ == "__main__":
    main()
