from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit, urlunsplit

import httpx

from archive_pdf_urls.config import EXCLUDED_DOMAINS
from archive_pdf_urls.errors import ExcludedUrl, InvalidUrl
from archive_pdf_urls.models import ArchivableUrl

# Last label of a host that browsers read as an IPv4 number: 10, 0x7f, 017
NUMERIC_LABEL_RE = re.compile(r"^(0x[0-9a-f]*|\d+)$", re.IGNORECASE)


def _ipv4_number(label: str) -> int:
    if label[:2].lower() == "0x":
        return int(label[2:] or "0", 16)
    if len(label) > 1 and label.startswith("0"):
        return int(label, 8)
    return int(label, 10)


def _parse_ipv4(host: str) -> ipaddress.IPv4Address | None:
    """
    Read ``host`` the way a browser does when it looks like an IPv4 address:
    ``127.1``, ``2130706433`` and ``0x7f.0.0.1`` all mean 127.0.0.1.

    Returns None for domain names; raises ValueError for numbers that are no
    valid address.
    """
    labels = host.split(".")
    if not NUMERIC_LABEL_RE.match(labels[-1]):
        return None
    if len(labels) > 4:
        raise ValueError(f"Too many parts in IPv4 host: {host}")
    numbers = [_ipv4_number(label) for label in labels]
    *head, last = numbers
    if any(n > 255 for n in head) or last >= 256 ** (5 - len(numbers)):
        raise ValueError(f"IPv4 part out of range: {host}")
    address = last
    for i, n in enumerate(head):
        address += n * 256 ** (3 - i)
    return ipaddress.IPv4Address(address)


def _ip_address(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if ":" in host:
        ip = ipaddress.IPv6Address(host)
        return ip if ip.ipv4_mapped is None else ip.ipv4_mapped
    return _parse_ipv4(host)


def _is_unsafe(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return ip.is_loopback or ip.is_private or ip.is_multicast or ip.is_unspecified


def parse_url(
    raw: str, excluded_domains: tuple[str, ...] | list[str] = EXCLUDED_DOMAINS
) -> ArchivableUrl | InvalidUrl | ExcludedUrl:
    """
    Validate ``raw`` for submission to the Wayback Machine.

    Local and private targets are ``InvalidUrl``; hosts matching one of
    ``excluded_domains`` (substring match) are ``ExcludedUrl`` so callers can
    skip them quietly.
    """
    value = raw.strip()
    try:
        parts = urlsplit(value)
        host = parts.hostname
        parts.port  # raises on a malformed port
        # httpx must be able to address the host too (IDNA labels included)
        httpx.URL(value).host
    except (httpx.InvalidURL, ValueError):
        # UnicodeError from the idna codec is a ValueError
        return InvalidUrl(raw)

    if not parts.scheme or not host:
        return InvalidUrl(raw)
    if parts.scheme.lower() not in {"http", "https"}:
        return InvalidUrl(raw)
    if any(c.isspace() for c in host):
        return InvalidUrl(raw)

    # "example.com." and "127.0.0.1." name the same host as without the dot
    bare_host = host[:-1] if host.endswith(".") else host
    if not bare_host:
        return InvalidUrl(raw)
    try:
        ip = _ip_address(bare_host)
    except ValueError:
        return InvalidUrl(raw)

    if ip is not None:
        if _is_unsafe(ip):
            return InvalidUrl(raw)
    else:
        if "localhost" in bare_host:
            return InvalidUrl(raw)
        if any(pattern in bare_host for pattern in excluded_domains):
            return ExcludedUrl(raw)

    normalized = urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment)
    )
    return ArchivableUrl(url=normalized, host=host)
