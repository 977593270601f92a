# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-field resolution chains.

Each resolver walks a fixed candidate chain in priority order and returns
the first accepted value (or None). Chains never score or merge candidates,
and later candidates are not read once an earlier one is accepted, so no
redundant network probes are issued.

Chain order:
    title        og:title > twitter:title > <title> > first h1 > first h2
    description  og:description > twitter:description > meta description > first visible <p>
    image        og:image > twitter:image > rel=image_src > first <img> passing size/aspect filter
    video        og:video > twitter:player > rel=video_src > the page URL itself
    domain_name  rel=canonical > og:url > page host
    icon         rel=icon > rel="shortcut icon" > rel=apple-touch-icon
    type         og:type
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from . import ImageInfo
from .config import (
    DEFAULT_CONFIG,
    DESCRIPTION_META_CHAIN,
    DOMAIN_CHAIN,
    ICON_CHAIN,
    IMAGE_CHAIN,
    TITLE_HEADING_CHAIN,
    TITLE_META_CHAIN,
    TYPE_CHAIN,
    VIDEO_CHAIN,
    ExtractionConfig,
    Selector,
)
from .document import DocumentQuery
from .media import MediaKind, MediaProbe, is_media_accessible
from .urls import domain_from_text, hostname, normalize_media_url, strip_www

logger = logging.getLogger(__name__)


# --- Helpers ---


async def _first_meta_value(
    document: DocumentQuery,
    chain: Iterable[Selector],
    config: ExtractionConfig,
) -> str | None:
    """First non-null attribute value along *chain*."""
    for selector in chain:
        value = await document.first_attribute(selector, selector.value_attr(config))
        if value is not None:
            logger.debug("Candidate accepted: %s", selector.css)
            return value
    return None


async def _first_accessible_media(
    document: DocumentQuery,
    chain: Iterable[Selector],
    page_url: str,
    kind: MediaKind,
    probe: MediaProbe,
    config: ExtractionConfig,
) -> str | None:
    """First candidate along *chain* that normalizes and passes the media probe."""
    for selector in chain:
        raw = await document.first_attribute(selector, selector.value_attr(config))
        url = normalize_media_url(raw, page_url)
        if url is None:
            continue
        if await is_media_accessible(url, kind, probe):
            logger.debug("Candidate accepted: %s -> %.120s", selector.css, url)
            return url
        logger.debug("Candidate rejected (%s not accessible): %.120s", kind, url)
    return None


def passes_image_filter(
    width: int,
    height: int,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> bool:
    """Reject spacers/icons (either side < min) and extreme banners (ratio > max)."""
    if width < config.min_image_side_px or height < config.min_image_side_px:
        return False
    ratio = max(width, height) / min(width, height)
    return ratio <= config.max_image_aspect_ratio


def filter_images(images: Iterable[ImageInfo], config: ExtractionConfig = DEFAULT_CONFIG) -> list[ImageInfo]:
    """Images passing the size/aspect filter, in document order."""
    return [img for img in images if img.src and passes_image_filter(img.natural_width, img.natural_height, config)]


# --- Resolvers ---


async def resolve_title(document: DocumentQuery, config: ExtractionConfig = DEFAULT_CONFIG) -> str | None:
    value = await _first_meta_value(document, TITLE_META_CHAIN, config)
    if value is not None:
        return value

    doc_title = await document.title()
    if doc_title:
        return doc_title

    for tag in TITLE_HEADING_CHAIN:
        text = await document.first_text(tag)
        if text:
            return text
    return None


async def resolve_description(
    document: DocumentQuery,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> str | None:
    """Meta descriptions, then the first visible text-only paragraph (truncated).

    The search-engine home page short-circuits to a canned description.
    """
    page_url = await document.page_url()
    if hostname(page_url) == config.search_engine_host:
        return config.search_engine_description

    value = await _first_meta_value(document, DESCRIPTION_META_CHAIN, config)
    if value is not None:
        return value

    for paragraph in await document.paragraphs():
        if not paragraph.visible or paragraph.child_elements:
            continue
        text = paragraph.text.strip()
        if text:
            return text[: config.description_max_chars]
    return None


async def resolve_image(
    document: DocumentQuery,
    probe: MediaProbe,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> str | None:
    page_url = await document.page_url()
    url = await _first_accessible_media(document, IMAGE_CHAIN, page_url, MediaKind.IMAGE, probe, config)
    if url is not None:
        return url

    for img in filter_images(await document.images(), config):
        candidate = normalize_media_url(img.src, page_url)
        if candidate and await is_media_accessible(candidate, MediaKind.IMAGE, probe):
            logger.debug("Image accepted from <img> fallback: %.120s", candidate)
            return candidate
    return None


async def resolve_video(
    document: DocumentQuery,
    probe: MediaProbe,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> str | None:
    page_url = await document.page_url()
    url = await _first_accessible_media(document, VIDEO_CHAIN, page_url, MediaKind.VIDEO, probe, config)
    if url is not None:
        return url

    # The link itself may point straight at a video file
    if await is_media_accessible(page_url, MediaKind.VIDEO, probe):
        return page_url
    return None


async def resolve_icon(
    document: DocumentQuery,
    probe: MediaProbe,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> str | None:
    page_url = await document.page_url()
    return await _first_accessible_media(document, ICON_CHAIN, page_url, MediaKind.IMAGE, probe, config)


async def resolve_type(document: DocumentQuery, config: ExtractionConfig = DEFAULT_CONFIG) -> str | None:
    return await _first_meta_value(document, TYPE_CHAIN, config)


def page_domain(page_url: str) -> str:
    """Host of the page URL without a leading ``www.`` (never None)."""
    return strip_www(hostname(page_url) or "")


async def resolve_domain_name(document: DocumentQuery, config: ExtractionConfig = DEFAULT_CONFIG) -> str:
    """Canonical link host, else og:url host, else the page's own host.

    Candidates must carry a scheme or start with ``//``; relative hrefs
    such as ``index.html`` fall through.

    Always returns a string: lookup failures fall through to the page host.
    """
    page_url = await document.page_url()
    try:
        for selector in DOMAIN_CHAIN:
            raw = await document.first_attribute(selector, selector.value_attr(config))
            domain = domain_from_text(raw, allow_bare=False)
            if domain:
                return domain
    except Exception:
        logger.warning("Domain candidate lookup failed, using page host", exc_info=True)
    return page_domain(page_url)
