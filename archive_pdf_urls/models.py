from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from archive_pdf_urls.errors import ExcludedUrl, InvalidUrl


@dataclass(frozen=True)
class ArchivableUrl:
    url: str        # normalized: lower-case scheme/host, "/" for an empty path
    host: str

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class Archived:
    url: str        # where the service says the capture lives


@dataclass(frozen=True)
class RecentArchiveExists:
    pass


ArchiveResult = Archived | RecentArchiveExists


@dataclass(frozen=True)
class Snapshot:
    timestamp: datetime
    status: str | None = None       # legacy availability API only
    available: bool = True

    @property
    def usable(self) -> bool:
        return self.available and self.status in (None, "200")


OUTCOME_ARCHIVED = "archived"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"


def classify(result: object) -> str:
    """Map a pipeline result to the batch outcome reported to users."""
    if isinstance(result, Archived):
        return OUTCOME_ARCHIVED
    if isinstance(result, (RecentArchiveExists, InvalidUrl, ExcludedUrl)):
        return OUTCOME_SKIPPED
    return OUTCOME_FAILED
