"""Exception taxonomy for docsource."""

from __future__ import annotations

from pathlib import Path


class DocSourceError(Exception):
    """Base class for all docsource errors."""


class ConfigurationError(DocSourceError):
    """Source options are missing or invalid. Raised before any file I/O."""


class FileReadError(DocSourceError):
    """A matched file could not be read. Scoped to that one file."""

    def __init__(self, relative_path: str, origin: Path, cause: BaseException) -> None:
        self.relative_path = relative_path
        self.origin = origin
        self.cause = cause
        super().__init__(f"Cannot read {relative_path} ({origin}): {cause}")


__all__ = ["DocSourceError", "ConfigurationError", "FileReadError"]
