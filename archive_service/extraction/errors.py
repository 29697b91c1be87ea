"""Exceptions raised while extracting and routing archive contents."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for archive extraction failures."""

    pass


class ManifestFormatError(ExtractionError):
    """Raised when a manifest header or row cannot be parsed."""

    pass


class ManifestNotFoundError(ExtractionError):
    """Raised when an archive has no manifest, or more than one."""

    pass


class CorruptArchiveError(ExtractionError):
    """Raised when an archive payload is not a readable zip file."""

    pass


class StateCorruptError(ExtractionError):
    """Raised when the stored processed-state payload cannot be decoded."""

    pass


class DuplicateArchiveError(ExtractionError):
    """Raised when an archive is recorded twice in the processed state."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Archive already recorded: {name}")
        self.name = name


class DeliveryError(ExtractionError):
    """Raised when an attachment cannot be written to its destination key."""

    def __init__(self, entry: str, destination: str, cause: Exception) -> None:
        super().__init__(f"{entry} -> {destination}: {type(cause).__name__}: {cause}")
        self.entry = entry
        self.destination = destination
