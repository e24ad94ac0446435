"""Command line entry point: archive-pdf-urls."""
from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys

from archive_pdf_urls.config import ClientConfig, settings
from archive_pdf_urls.errors import ArchiveError
from archive_pdf_urls.extract import collect_urls
from archive_pdf_urls.models import OUTCOME_FAILED, Archived, classify
from archive_pdf_urls.services.archiver import WaybackMachineClient

logger = logging.getLogger(__name__)


def _pattern(value: str) -> re.Pattern:
    try:
        return re.compile(value)
    except re.error as exc:
        raise argparse.ArgumentTypeError(f"invalid pattern {value!r}: {exc}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archive-pdf-urls",
        description="Extract all links from a PDF (or a list of URLs) and archive them "
                    "in the Internet Archive's Wayback Machine",
    )
    parser.add_argument(
        "sources", nargs="+", metavar="SOURCE",
        help="PDF file, text file with one URL per line, a URL, or - for stdin",
    )
    parser.add_argument(
        "--exclude", action="append", default=[], metavar="PATTERN", type=_pattern,
        help="Excludes URLs matching the pattern (regular expression, repeatable)",
    )
    parser.add_argument("--concurrency", type=int, default=settings.concurrency)
    parser.add_argument("--threshold-days", type=int, default=settings.archive_threshold_days,
                        help="Re-archive URLs whose latest capture is older than this")
    parser.add_argument("--retries", type=int, default=settings.max_request_retries)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def archive_all(urls: list[str], config: ClientConfig, concurrency: int) -> bool:
    """Archive ``urls`` and log one line per URL. Returns False if any failed."""
    ok = True
    async with WaybackMachineClient(config) as client:
        for url, result in await client.archive_many(urls, concurrency):
            if isinstance(result, Archived):
                logger.info("Archived: %s – %s", url, result.url)
            elif classify(result) == OUTCOME_FAILED:
                logger.error("%s", result)
                ok = False
            else:
                logger.info("Skipped: %s", url)
                if isinstance(result, ArchiveError):
                    logger.debug("%s", result)
    return ok


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(levelname)s %(message)s",
    )

    try:
        urls = collect_urls(args.sources, sys.stdin)
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    kept = []
    for url in urls:
        if any(pattern.search(url) for pattern in args.exclude):
            logger.info("Skipped: %s", url)
        else:
            kept.append(url)

    config = ClientConfig.from_settings(
        settings.model_copy(update={
            "archive_threshold_days": args.threshold_days,
            "max_request_retries": args.retries,
        })
    )
    ok = asyncio.run(archive_all(kept, config, args.concurrency))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
