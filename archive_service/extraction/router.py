from __future__ import annotations

from collections.abc import Iterable

from archive_service.extraction.manifest import AttachmentRouting
from archive_service.extraction.types import Delivery


def destination_key(root: str, identifier: str, filename: str) -> str:
    return f"{root.strip('/')}/{identifier.strip('/')}/{filename}"


def identifiers_for(routing: AttachmentRouting, filename: str) -> list[str]:
    # One physical attachment may be referenced by several purchase orders
    return [ident for ident, names in routing.items() if filename in names]


def plan_deliveries(
    routing: AttachmentRouting,
    attachment_names: Iterable[str],
    *,
    root: str,
) -> tuple[list[Delivery], list[str]]:
    """
    Returns (deliveries, dropped).

    Attachments that no manifest row references are not delivered anywhere;
    their names are returned in `dropped` so callers can report them.
    """
    deliveries: list[Delivery] = []
    dropped: list[str] = []
    for name in attachment_names:
        idents = identifiers_for(routing, name)
        if not idents:
            dropped.append(name)
            continue
        for ident in idents:
            deliveries.append(
                Delivery(entry_name=name, identifier=ident, destination_key=destination_key(root, ident, name))
            )
    return deliveries, dropped
