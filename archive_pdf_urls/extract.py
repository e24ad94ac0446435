"""
Where URLs come from: PDF link annotations, text files, stdin, the command line.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO, TextIO

from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


def _link_target(annotation) -> str | None:
    annotation = annotation.get_object()
    if annotation.get("/Subtype") != "/Link":
        return None
    action = annotation.get("/A")
    if action is None:
        return None
    uri = action.get_object().get("/URI")
    if uri is None:
        return None
    uri = uri.get_object()
    if isinstance(uri, bytes):
        uri = uri.decode("utf-8", errors="replace")
    return str(uri).strip() or None


def extract_pdf_links(source: str | Path | BinaryIO) -> list[str]:
    """URI targets of every link annotation in a PDF, in first-seen order."""
    try:
        reader = PdfReader(source)
        pages = list(reader.pages)
    except (PdfReadError, OSError) as exc:
        raise ValueError(f"Cannot read PDF: {exc}") from exc

    links: dict[str, None] = {}
    for number, page in enumerate(pages, start=1):
        annotations = page.get("/Annots")
        if annotations is None:
            continue
        for annotation in annotations.get_object():
            target = _link_target(annotation)
            if target:
                links.setdefault(target, None)
        logger.debug("Page %d: %d links so far", number, len(links))
    return list(links)


def read_lines(stream: TextIO) -> list[str]:
    return [
        line.strip()
        for line in stream
        if line.strip() and not line.lstrip().startswith("#")
    ]


def _is_pdf(path: Path) -> bool:
    with path.open("rb") as f:
        return f.read(len(PDF_MAGIC)) == PDF_MAGIC


def collect_urls(sources: Iterable[str], stdin: TextIO) -> list[str]:
    """
    Gather candidate URLs from ``sources``, de-duplicated in first-seen order.

    A source is a literal http(s) URL, ``-`` for stdin, a PDF file or a text
    file with one URL per line. Unreadable files raise ValueError.
    """
    urls: dict[str, None] = {}
    for source in sources:
        if source.lower().startswith(("http://", "https://")):
            found = [source]
        elif source == "-":
            found = read_lines(stdin)
        else:
            path = Path(source)
            try:
                if _is_pdf(path):
                    found = extract_pdf_links(path)
                else:
                    with path.open(encoding="utf-8") as f:
                        found = read_lines(f)
            except OSError as exc:
                raise ValueError(f"Cannot read {source}: {exc}") from exc
        logger.debug("%d URLs from %s", len(found), source)
        for url in found:
            urls.setdefault(url, None)
    return list(urls)
