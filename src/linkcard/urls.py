# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""URL helpers: media URL normalization, URL extraction from free text, hostnames.

Pure functions, no I/O. Extraction accepts scheme URLs, protocol-relative
URLs and bare host names ("example.com/page"); bare hosts need an
alphabetic TLD of at least two characters and get ``http://`` prepended.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from urllib.parse import urlsplit

from .errors import InvalidUrlError

logger = logging.getLogger(__name__)

_MAX_URL_LENGTH = 2048

_URL_RE = re.compile(
    r"""
    (?P<full>(?:https?:)?//[^\s<>"'`]+)
    |
    (?<![\w@./:-])
    (?P<bare>(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}(?::\d{1,5})?(?:[/?#][^\s<>"'`]*)?)
    """,
    re.IGNORECASE | re.VERBOSE,
)

_TRAILING_PUNCT = ".,;:!?)]}"


def origin(page_url: str) -> str:
    """Return ``scheme://host[:port]`` of *page_url*."""
    p = urlsplit(page_url)
    host = p.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = p.port
    return f"{p.scheme}://{host}:{port}" if port else f"{p.scheme}://{host}"


def normalize_media_url(candidate: str | None, page_url: str) -> str | None:
    """Turn a possibly relative media URL into an absolute one.

    - ``None`` stays ``None``
    - ``data:`` URIs are returned unchanged
    - ``/a/b`` → origin + ``/a/b``
    - no ``//`` anywhere → origin + ``/`` + candidate
    - anything else is returned unchanged (absolute or protocol-relative)

    The ``//`` test is a heuristic: a relative path carrying ``//`` in its
    query string is left as is.
    """
    if candidate is None:
        return None
    if candidate[:5].lower() == "data:":
        return candidate
    try:
        if candidate.startswith("/") and not candidate.startswith("//"):
            return origin(page_url) + candidate
        if "//" not in candidate:
            return f"{origin(page_url)}/{candidate}"
    except ValueError:
        logger.debug("Cannot normalize %r against %r", candidate, page_url)
        return None
    return candidate


def _clean_match(match: re.Match[str]) -> str | None:
    raw = match.group("full") or match.group("bare") or ""
    raw = raw.rstrip(_TRAILING_PUNCT)
    if match.group("full"):
        url = f"http:{raw}" if raw.startswith("//") else raw
    else:
        url = f"http://{raw}"
    if len(url) > _MAX_URL_LENGTH:
        return None
    try:
        p = urlsplit(url)
        _ = p.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    if not p.hostname:
        return None
    return url


def _iter_urls(text: str, allow_bare: bool) -> Iterator[str]:
    for m in _URL_RE.finditer(text):
        if m.group("bare") and not allow_bare:
            continue
        url = _clean_match(m)
        if url:
            yield url


def extract_urls(text: str | None, *, allow_bare: bool = True) -> list[str]:
    """Return all well-formed URLs in *text*, in order of appearance."""
    if not text:
        return []
    return list(_iter_urls(text, allow_bare))


def first_url(text: str | None, *, allow_bare: bool = True) -> str | None:
    """Return the first well-formed URL in *text*, or None."""
    if not text:
        return None
    return next(_iter_urls(text, allow_bare), None)


def require_url(text: str) -> str:
    """Return the first URL in caller-supplied *text* or raise InvalidUrlError."""
    url = first_url(text)
    if url is None:
        raise InvalidUrlError(f"No valid URL found in input: {text[:200]!r}", text=text)
    return url


def strip_www(host: str) -> str:
    return host.removeprefix("www.")


def hostname(url: str) -> str | None:
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def domain_from_text(text: str | None, *, allow_bare: bool = True) -> str | None:
    """Hostname (without leading ``www.``) of the first URL in *text*."""
    url = first_url(text, allow_bare=allow_bare)
    if url is None:
        return None
    host = hostname(url)
    return strip_www(host) if host else None
