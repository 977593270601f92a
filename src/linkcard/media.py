# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Media accessibility checks for candidate image/video URLs.

A candidate is accepted when it is a base64 data URI with a MIME type (no
network round-trip), or when a network probe of the first URL in it answers
with a ``content-type`` starting with ``<kind>/``. The checker is a boolean
predicate: probe failures resolve to False and never propagate.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from enum import StrEnum
from types import TracebackType

import httpx

from .config import DEFAULT_CONFIG, ExtractionConfig
from .errors import ProbeError
from .urls import first_url

logger = logging.getLogger(__name__)


class MediaKind(StrEnum):
    """Expected media family (content-type prefix)."""

    IMAGE = "image"
    VIDEO = "video"


_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[\w.+-]+=[^;,]*)*;base64,(?P<data>[A-Za-z0-9+/=\s]+)$",
    re.IGNORECASE,
)

# Servers that refuse HEAD; retry with a streamed GET.
_HEAD_REJECTED = frozenset({405, 501})


def is_base64_data_uri(value: str) -> bool:
    """True for ``data:<type>/<subtype>[;param=v]*;base64,<payload>`` with a valid payload."""
    m = _DATA_URI_RE.match(value.strip())
    if not m:
        return False
    payload = re.sub(r"\s+", "", m.group("data"))
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


class MediaProbe:
    """Network probe: fetch a URL and report its response content-type.

    Owns its httpx.AsyncClient unless one is injected (tests pass a client
    built on httpx.MockTransport). Safe for concurrent use.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        config: ExtractionConfig = DEFAULT_CONFIG,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(config.probe_timeout_s),
            headers={"User-Agent": config.probe_user_agent},
        )

    async def content_type(self, url: str) -> str | None:
        """Return the ``content-type`` header for *url* (None if absent).

        Raises:
            ProbeError: on transport errors and timeouts.
        """
        try:
            resp = await self._client.head(url)
            ctype = resp.headers.get("content-type")
            if resp.status_code not in _HEAD_REJECTED and ctype:
                return ctype
            logger.debug("HEAD %s gave status=%d ctype=%r, retrying with GET", url, resp.status_code, ctype)
            async with self._client.stream("GET", url) as streamed:
                return streamed.headers.get("content-type")
        except httpx.HTTPError as exc:
            raise ProbeError(f"Probe failed for {url}: {exc}", url=url) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> MediaProbe:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def is_media_accessible(candidate: str | None, kind: MediaKind, probe: MediaProbe) -> bool:
    """Check whether *candidate* resolves to a media asset of *kind*.

    *candidate* may be free text; the first absolute URL in it is probed.
    A base64 data URI is accepted without a request; any other data URI is
    rejected.
    Never raises (cancellation excepted).
    """
    if not candidate:
        return False
    if is_base64_data_uri(candidate):
        return True
    if candidate.lstrip()[:5].lower() == "data:":
        logger.debug("Non-base64 data URI rejected for %s: %.60s", kind, candidate)
        return False

    url = first_url(candidate, allow_bare=False)
    if url is None:
        logger.debug("No URL in %s candidate: %.100s", kind, candidate)
        return False

    try:
        ctype = await probe.content_type(url)
    except ProbeError as exc:
        logger.debug("%s", exc)
        return False
    except Exception:
        logger.warning("Unexpected probe failure for %s (%s)", url, kind, exc_info=True)
        return False

    if not ctype:
        return False
    return ctype.strip().lower().startswith(f"{kind}/")
