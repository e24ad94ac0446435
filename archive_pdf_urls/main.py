from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import Depends, FastAPI
from pydantic import BaseModel, Field

from archive_pdf_urls.config import ClientConfig, settings
from archive_pdf_urls.errors import ArchiveError
from archive_pdf_urls.models import Archived, classify
from archive_pdf_urls.services.archiver import WaybackMachineClient

logger = logging.getLogger(__name__)
app = FastAPI(title=settings.app_name)


class ArchiveRequest(BaseModel):
    urls: list[str] = Field(min_length=1)


class UrlOutcome(BaseModel):
    url: str
    outcome: str
    archive_url: str | None = None
    error: str | None = None


class ArchiveResponse(BaseModel):
    results: list[UrlOutcome]


async def get_client() -> AsyncIterator[WaybackMachineClient]:
    # A fresh config per request keeps the freshness cutoff current
    async with WaybackMachineClient(ClientConfig.from_settings(settings)) as client:
        yield client


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/archive", response_model=ArchiveResponse)
async def do_archive(
    payload: ArchiveRequest,
    client: WaybackMachineClient = Depends(get_client),
):
    urls = list(dict.fromkeys(u.strip() for u in payload.urls))
    results = []
    for url, result in await client.archive_many(urls, settings.concurrency):
        outcome = UrlOutcome(url=url, outcome=classify(result))
        if isinstance(result, Archived):
            outcome.archive_url = result.url
        elif isinstance(result, ArchiveError):
            outcome.error = str(result)
        results.append(outcome)
        logger.info("%s: %s", outcome.outcome, url)
    return ArchiveResponse(results=results)
