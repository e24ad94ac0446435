"""
Wayback Machine client: decides, per URL, whether to skip or archive it.

``archive_url`` runs four stages once each:

1. validate the input;
2. follow redirects one hop at a time to find where the URL really points,
   validating every location before it is requested;
3. ask the index whether a recent capture exists, and stop if it does;
4. submit the URL; if the save endpoint reports an error, check the index
   once more for the original URL, since captures often succeed even when
   the save request fails.

Transient HTTP failures are retried underneath every stage by
``RetryTransport``; the pipeline itself never retries.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import httpx

from archive_pdf_urls.config import ClientConfig
from archive_pdf_urls.errors import (
    ArchiveError,
    CannotArchive,
    CannotCheckArchive,
    RequestFailed,
)
from archive_pdf_urls.models import ArchivableUrl, Archived, RecentArchiveExists
from archive_pdf_urls.services.checker import ExistenceChecker
from archive_pdf_urls.services.transport import RetryTransport
from archive_pdf_urls.utils import parse_url

logger = logging.getLogger(__name__)

Outcome = Archived | RecentArchiveExists | ArchiveError


class WaybackMachineClient:
    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ClientConfig()
        self._http = httpx.AsyncClient(
            transport=RetryTransport(
                transport,
                max_retries=self.config.max_request_retries,
                backoff_factor=self.config.backoff_factor,
                backoff_max=self.config.backoff_max,
            ),
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.request_timeout,
            follow_redirects=True,
        )
        self.checker = ExistenceChecker(self._http, self.config)

    async def __aenter__(self) -> WaybackMachineClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _parse(self, raw: str):
        return parse_url(raw, self.config.excluded_domains)

    async def _resolve(self, url: ArchivableUrl):
        """
        Follow the redirects of ``url`` one hop at a time, validating every
        location before requesting it. Returns the final location, the error
        for a location that cannot be archived, or ``url`` itself when the
        site is unreachable.
        """
        location = url
        for _ in range(self._http.max_redirects + 1):
            try:
                async with self._http.stream("GET", str(location), follow_redirects=False) as response:
                    if not response.has_redirect_location:
                        return location
                    target = str(response.next_request.url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.debug("Could not resolve %s (%s), using it as is", url, exc)
                return url
            location = self._parse(target)
            if isinstance(location, ArchiveError):
                return location
        logger.debug("Too many redirects from %s, using it as is", url)
        return url

    async def check_recent(self, raw: str):
        """Validate ``raw`` and report whether a recent capture exists (None if so)."""
        url = self._parse(raw)
        if isinstance(url, ArchiveError):
            return url
        return await self.checker.check_recent(url)

    async def archive_url(self, raw: str) -> Outcome:
        """
        Archive ``raw`` unless the Wayback Machine has a recent capture of it.

        Returns ``Archived`` or ``RecentArchiveExists`` on success, and one of
        the ``ArchiveError`` variants otherwise; nothing is raised.
        """
        original = self._parse(raw)
        if isinstance(original, ArchiveError):
            return original

        resolved = await self._resolve(original)
        if isinstance(resolved, ArchiveError):
            logger.debug("%s redirects to a URL that cannot be archived", raw)
            return resolved
        if resolved != original:
            logger.debug("%s resolved to %s", original, resolved)

        check = await self.checker.check_recent(resolved)
        if check is None:
            return RecentArchiveExists()
        if isinstance(check, CannotCheckArchive):
            logger.warning("Archiving %s without a freshness check: %s", resolved, check)

        try:
            response = await self._http.get(self.config.archive_endpoint + str(resolved))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return RequestFailed(str(exc) or exc.__class__.__name__)

        if response.is_success:
            return Archived(str(response.url))

        # The save endpoint regularly errors out on captures that did succeed
        logger.debug("Save of %s returned %d, checking the index again", resolved, response.status_code)
        if await self.checker.check_recent(original) is None:
            return Archived(self.config.archive_endpoint + str(original))
        return CannotArchive(response.status_code, raw)

    async def archive_many(self, urls: Iterable[str], concurrency: int = 4) -> list[tuple[str, Outcome]]:
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def run(url: str) -> tuple[str, Outcome]:
            async with semaphore:
                return url, await self.archive_url(url)

        return list(await asyncio.gather(*(run(url) for url in urls)))
