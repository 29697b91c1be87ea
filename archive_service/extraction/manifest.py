"""Parser for the purchase-order / attachment relationship manifest.

The manifest is a delimited text file whose header names the column holding
the PO number and the column holding a comma-separated list of attachment
paths. Only the final path segment of each attachment is kept, since that is
the name the attachment carries inside the archive.
"""

from __future__ import annotations

import io
from typing import IO

from archive_service.extraction.errors import ManifestFormatError

AttachmentRouting = dict[str, list[str]]


def _column_index(header: list[str], column: str) -> int:
    try:
        return header.index(column)
    except ValueError:
        raise ManifestFormatError(
            f"Manifest header is missing required column '{column}' (found: {', '.join(header)})"
        ) from None


def attachment_names(cell: str) -> list[str]:
    out: list[str] = []
    for path in cell.split(","):
        name = path.strip().split("/")[-1].strip()
        if name:
            out.append(name)
    return out


def parse_manifest(
    stream: IO[bytes],
    *,
    delimiter: str = "~",
    id_column: str = "PO Number",
    attachments_column: str = "Attachment List",
    unidentified: str = "Unfiled",
) -> AttachmentRouting:
    """
    Returns identifier -> attachment filenames, in row order.

    Rows whose identifier cell is blank are grouped under `unidentified`.
    Repeated identifiers accumulate rather than overwrite.
    """
    if len(delimiter) != 1:
        raise ManifestFormatError(f"Manifest delimiter must be one character, got {delimiter!r}")

    # utf-8-sig drops a leading byte-order mark if the exporter wrote one
    text = io.TextIOWrapper(stream, encoding="utf-8-sig", newline=None)
    try:
        return _parse_rows(
            text,
            delimiter=delimiter,
            id_column=id_column,
            attachments_column=attachments_column,
            unidentified=unidentified,
        )
    except UnicodeDecodeError as e:
        raise ManifestFormatError(f"Manifest is not valid UTF-8: {e}") from e


def _parse_rows(
    text: IO[str],
    *,
    delimiter: str,
    id_column: str,
    attachments_column: str,
    unidentified: str,
) -> AttachmentRouting:
    header_line = text.readline()
    if not header_line.strip():
        raise ManifestFormatError("Manifest is empty (no header row)")

    header = [h.strip() for h in header_line.rstrip("\n").split(delimiter)]
    id_idx = _column_index(header, id_column)
    att_idx = _column_index(header, attachments_column)

    routing: AttachmentRouting = {}
    for line_no, line in enumerate(text, start=2):
        line = line.rstrip("\n")
        if not line.strip():
            continue

        values = line.split(delimiter)
        if len(values) != len(header):
            raise ManifestFormatError(
                f"Manifest line {line_no}: expected {len(header)} columns, got {len(values)}"
            )

        identifier = values[id_idx].strip() or unidentified
        routing.setdefault(identifier, []).extend(attachment_names(values[att_idx]))

    return routing
