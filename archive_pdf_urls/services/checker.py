"""
Existence checks against the Wayback Machine's timestamp index.

Two response shapes are understood:

* the CDX index (default): a JSON array whose first row is a header such as
  ``["timestamp"]`` and whose second row, present only when a capture exists,
  holds the capture timestamp;
* the older availability API: ``{"archived_snapshots": {"closest": {...}}}``.

Timestamps are ``YYYYMMDDHHMMSS`` in UTC.
"""
from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from urllib.parse import quote

import httpx

from archive_pdf_urls.config import ClientConfig
from archive_pdf_urls.errors import CannotCheckArchive, NoRecentArchive
from archive_pdf_urls.models import ArchivableUrl, Snapshot

logger = logging.getLogger(__name__)

TIMESTAMP_RE = re.compile(r"^\d{14}$")


def parse_timestamp(value: object) -> datetime:
    if not isinstance(value, str) or not TIMESTAMP_RE.match(value):
        raise ValueError(f"Malformed snapshot timestamp: {value!r}")
    return datetime.strptime(value, "%Y%m%d%H%M%S").replace(tzinfo=UTC)


def _from_rows(rows: list) -> Snapshot | None:
    records = rows[1:]
    # Several rows means the index was not queried for the latest capture
    # only; never guess which one counts.
    if len(records) != 1:
        return None
    record = records[0]
    if not isinstance(record, list) or not record:
        raise ValueError(f"Malformed snapshot row: {record!r}")
    return Snapshot(timestamp=parse_timestamp(record[0]))


def _from_archived_snapshots(snapshots: dict) -> Snapshot | None:
    records = [r for r in snapshots.values() if isinstance(r, dict)]
    if not records:
        return None
    latest = max(records, key=lambda r: str(r.get("timestamp", "")))
    return Snapshot(
        timestamp=parse_timestamp(latest.get("timestamp")),
        status=str(latest.get("status")),
        available=bool(latest.get("available")),
    )


def parse_snapshot(payload: object) -> Snapshot | None:
    """
    Return the snapshot described by an index response, or None if there is
    none. Raises ValueError when the payload has an unexpected shape.
    """
    if isinstance(payload, list):
        return _from_rows(payload)
    if isinstance(payload, dict):
        snapshots = payload.get("archived_snapshots") or {}
        if not isinstance(snapshots, dict):
            raise ValueError("archived_snapshots is not an object")
        return _from_archived_snapshots(snapshots)
    raise ValueError(f"Unexpected index response: {type(payload).__name__}")


class ExistenceChecker:
    def __init__(self, client: httpx.AsyncClient, config: ClientConfig):
        self.client = client
        self.config = config

    def check_url(self, url: ArchivableUrl) -> str:
        return self.config.check_endpoint + quote(str(url), safe=":/")

    async def check_recent(self, url: ArchivableUrl) -> None | NoRecentArchive | CannotCheckArchive:
        """
        Look for a capture of ``url`` newer than the configured threshold.

        ``None`` means a recent archive exists and nothing else should be
        done; ``NoRecentArchive`` means archiving may go ahead.
        """
        try:
            response = await self.client.get(self.check_url(url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return CannotCheckArchive(str(exc) or exc.__class__.__name__)

        if not response.is_success:
            return CannotCheckArchive(f"{response.status_code} from {response.url}")

        try:
            snapshot = parse_snapshot(response.json())
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too
            return CannotCheckArchive(str(exc))

        if snapshot is None:
            logger.debug("No snapshot of %s", url)
            return NoRecentArchive(str(url))

        logger.debug("Latest snapshot of %s taken %s", url, snapshot.timestamp.isoformat())
        if snapshot.usable and snapshot.timestamp > self.config.archive_threshold_timestamp:
            return None
        return NoRecentArchive(str(url))
