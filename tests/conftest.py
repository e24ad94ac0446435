from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from archive_pdf_urls.config import ClientConfig
from archive_pdf_urls.services.archiver import WaybackMachineClient

ARCHIVE_ENDPOINT = "https://web.archive.org/save/"
CHECK_ENDPOINT = "https://web.archive.org/cdx/search/cdx?output=json&fl=timestamp&url="
MAX_REQUEST_RETRIES = 3


def timestamp(days_ago: float) -> str:
    return (datetime.now(UTC) - timedelta(days=days_ago)).strftime("%Y%m%d%H%M%S")


class FakeWayback:
    """Stands in for web.archive.org and for the sites being archived."""

    def __init__(self):
        self.snapshot_age: float | None = None       # days; None means never captured
        self.snapshot_age_after_save: float | None = None
        self.index_payload = None                    # overrides the generated index rows
        self.index_text: str | None = None           # raw body instead of JSON
        self.index_status = 200
        self.save_status = 200
        self.redirects: dict[str, str] = {}
        self.unreachable: set[str] = set()           # hosts raising ConnectError
        self.check_requests: list[str] = []
        self.save_requests: list[str] = []
        self.site_requests: list[str] = []

    def index(self):
        if self.index_payload is not None:
            return self.index_payload
        if self.snapshot_age is None:
            return [["timestamp"]]
        return [["timestamp"], [timestamp(self.snapshot_age)]]

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = request.url
        if url.host == "web.archive.org":
            if url.path.startswith("/cdx/"):
                self.check_requests.append(url.params.get("url"))
                if self.index_text is not None or self.index_status != 200:
                    return httpx.Response(self.index_status, text=self.index_text or "")
                return httpx.Response(200, json=self.index())
            if url.path.startswith("/save/"):
                target = url.path[len("/save/"):]
                self.save_requests.append(target)
                if self.snapshot_age_after_save is not None:
                    self.snapshot_age = self.snapshot_age_after_save
                if self.save_status == 200:
                    return httpx.Response(
                        302, headers={"Location": f"https://web.archive.org/web/{timestamp(0)}/{target}"}
                    )
                return httpx.Response(self.save_status)
            if url.path.startswith("/web/"):
                return httpx.Response(200, text="<html>capture</html>")

        if url.host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        self.site_requests.append(str(url))
        if str(url) in self.redirects:
            return httpx.Response(301, headers={"Location": self.redirects[str(url)]})
        return httpx.Response(200, text="<html>page</html>")


@pytest.fixture
def wayback() -> FakeWayback:
    return FakeWayback()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        archive_endpoint=ARCHIVE_ENDPOINT,
        check_endpoint=CHECK_ENDPOINT,
        max_request_retries=MAX_REQUEST_RETRIES,
        archive_threshold_days=30,
        user_agent="TestUserAgent",
        backoff_factor=0,
    )


@pytest.fixture
def make_client(wayback, config):
    def factory(cfg: ClientConfig | None = None) -> WaybackMachineClient:
        return WaybackMachineClient(cfg or config, transport=httpx.MockTransport(wayback.handler))

    return factory
