"""Beatmap Exporter exceptions for error handling."""

from os import PathLike
from typing import Iterable, Optional, Union


class ExporterError(Exception):
    """Base exception for Beatmap Exporter failures."""

    pass


class FilterValidationError(ExporterError, ValueError):
    """Raised when user input can't be turned into a beatmap filter."""

    pass


class CollectionDbError(ExporterError, OSError):
    """Raised when a collection.db file can't be opened, parsed or written."""

    def __init__(self, path: Optional[Union[str, PathLike]], reason: str):
        self.path = str(path) if path is not None else None
        self.reason = reason
        location = f" '{self.path}'" if self.path else ""
        super().__init__(f"Could not open/parse collection database{location}: {reason}")


class LibraryVersionError(ExporterError):
    """Raised when the library database schema doesn't match this version."""

    def __init__(self, message: str, details: Iterable[str]):
        self.details = list(details)
        super().__init__(message)


class TranscodeError(ExporterError):
    """Raised when an audio file needs transcoding and ffmpeg fails."""

    pass


class InvariantViolation(ExporterError, AssertionError):
    """Raised when data that should have been rejected upstream reaches the engine."""

    pass
