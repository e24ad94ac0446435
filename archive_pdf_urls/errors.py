"""
Failures reported by the archiving pipeline.

The pipeline returns these as values rather than raising them, so every stage
of ``WaybackMachineClient.archive_url`` can be followed (and tested) one
branch at a time. They are still exceptions, so a caller that prefers to
raise can do so.
"""
from __future__ import annotations

from dataclasses import dataclass


class ArchiveError(Exception):
    pass


@dataclass(eq=True)
class InvalidUrl(ArchiveError):
    url: str

    def __str__(self) -> str:
        return f"Invalid URL: {self.url}"


@dataclass(eq=True)
class ExcludedUrl(ArchiveError):
    url: str

    def __str__(self) -> str:
        return f"Excluded URL: {self.url}"


@dataclass(eq=True)
class RequestFailed(ArchiveError):
    detail: str

    def __str__(self) -> str:
        return f"Request failed: {self.detail}"


@dataclass(eq=True)
class CannotCheckArchive(ArchiveError):
    detail: str

    def __str__(self) -> str:
        return f"Failed to get archive: {self.detail}"


@dataclass(eq=True)
class NoRecentArchive(ArchiveError):
    url: str

    def __str__(self) -> str:
        return f"No recent archive exists: {self.url}"


@dataclass(eq=True)
class CannotArchive(ArchiveError):
    status: int
    url: str

    def __str__(self) -> str:
        return f"Failed ({self.status}): {self.url}"
