# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Document query capability consumed by the field resolvers.

Two implementations:
- PlaywrightDocument: live, fully rendered DOM of a Playwright page
- HtmlDocument: offline static HTML parsed with lxml (no layout, no screenshot)

Both are read-only: no resolver ever mutates page state.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol, runtime_checkable
from urllib.parse import urljoin

import lxml.etree
import lxml.html
from playwright.async_api import Page

from . import ImageInfo, ParagraphInfo
from .config import Selector

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentQuery(Protocol):
    """Read access to an already-loaded page."""

    async def page_url(self) -> str: ...

    async def title(self) -> str: ...

    async def first_attribute(self, selector: Selector, attribute: str) -> str | None:
        """Attribute value of the first element matching *selector* (None if absent)."""
        ...

    async def first_text(self, tag: str) -> str | None:
        """Stripped text content of the first *tag* element (None if absent)."""
        ...

    async def paragraphs(self) -> list[ParagraphInfo]: ...

    async def images(self) -> list[ImageInfo]: ...

    async def screenshot(self) -> bytes | None:
        """PNG of the rendered viewport, or None when rendering is unavailable."""
        ...


# ── Live DOM (Playwright) ───────────────────────────────────────────

# Static, read-only property snapshots (no interpolation, no page mutation)
_PARAGRAPHS_JS = """() => Array.from(document.querySelectorAll('p')).map(p => ({
    text: p.textContent || '',
    visible: p.offsetParent !== null,
    childElements: p.childElementCount
}))"""

_IMAGES_JS = """() => Array.from(document.getElementsByTagName('img')).map(img => ({
    src: img.src || null,
    naturalWidth: img.naturalWidth || 0,
    naturalHeight: img.naturalHeight || 0
}))"""


class PlaywrightDocument:
    """DocumentQuery over a live Playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    async def page_url(self) -> str:
        return self._page.url

    async def title(self) -> str:
        return await self._page.title()

    async def first_attribute(self, selector: Selector, attribute: str) -> str | None:
        handle = await self._page.query_selector(selector.css)
        if handle is None:
            return None
        try:
            return await handle.get_attribute(attribute)
        finally:
            await handle.dispose()

    async def first_text(self, tag: str) -> str | None:
        handle = await self._page.query_selector(tag)
        if handle is None:
            return None
        try:
            text = await handle.text_content()
        finally:
            await handle.dispose()
        return text.strip() if text is not None else None

    async def paragraphs(self) -> list[ParagraphInfo]:
        rows = await self._page.evaluate(_PARAGRAPHS_JS)
        return [
            ParagraphInfo(
                text=row.get("text") or "",
                visible=bool(row.get("visible")),
                child_elements=int(row.get("childElements") or 0),
            )
            for row in rows or []
        ]

    async def images(self) -> list[ImageInfo]:
        rows = await self._page.evaluate(_IMAGES_JS)
        return [
            ImageInfo(
                src=row.get("src") or None,
                natural_width=int(row.get("naturalWidth") or 0),
                natural_height=int(row.get("naturalHeight") or 0),
            )
            for row in rows or []
        ]

    async def screenshot(self) -> bytes | None:
        return await self._page.screenshot(type="png", full_page=False)


# ── Offline static HTML (lxml) ──────────────────────────────────────

_HIDDEN_STYLE_RE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
_DIMENSION_RE = re.compile(r"^\s*(\d+)")


def _is_hidden(el: lxml.html.HtmlElement) -> bool:
    """Element or an ancestor is hidden by attribute or inline style."""
    node = el
    while node is not None:
        if "hidden" in node.attrib:
            return True
        if _HIDDEN_STYLE_RE.search(node.get("style", "")):
            return True
        node = node.getparent()
    return False


def _dimension(value: str | None) -> int:
    if not value:
        return 0
    m = _DIMENSION_RE.match(value)
    return int(m.group(1)) if m else 0


def _parse_html(html: str) -> lxml.html.HtmlElement:
    """Parse *html* leniently; an empty or content-free document yields a bare ``<html>`` root."""
    parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
    try:
        return lxml.html.document_fromstring(html.encode("utf-8", "replace"), parser=parser)
    except lxml.etree.ParserError:
        logger.debug("No parseable content in %d chars of HTML", len(html))
        return lxml.html.document_fromstring(b"<html></html>", parser=parser)


class HtmlDocument:
    """DocumentQuery over static HTML.

    Layout is approximated: a paragraph is visible unless it or an ancestor
    carries ``hidden``, inline ``display:none`` or ``visibility:hidden``; an
    image's natural size is its ``width``/``height`` attributes (0 when missing).
    """

    def __init__(self, html: str, base_url: str) -> None:
        self._base_url = base_url
        self._root = _parse_html(html)

    async def page_url(self) -> str:
        return self._base_url

    async def title(self) -> str:
        nodes = self._root.xpath("//title")
        if not nodes:
            return ""
        return " ".join(nodes[0].text_content().split())

    async def first_attribute(self, selector: Selector, attribute: str) -> str | None:
        nodes = self._root.xpath(selector.xpath)
        if not nodes:
            return None
        return nodes[0].get(attribute)

    async def first_text(self, tag: str) -> str | None:
        nodes = self._root.xpath(f"//{tag}")
        if not nodes:
            return None
        return nodes[0].text_content().strip()

    async def paragraphs(self) -> list[ParagraphInfo]:
        return [
            ParagraphInfo(
                text=p.text_content(),
                visible=not _is_hidden(p),
                child_elements=sum(1 for child in p if isinstance(child.tag, str)),
            )
            for p in self._root.iter("p")
        ]

    async def images(self) -> list[ImageInfo]:
        result: list[ImageInfo] = []
        for img in self._root.iter("img"):
            src = img.get("src")
            result.append(
                ImageInfo(
                    src=urljoin(self._base_url, src) if src else None,
                    natural_width=_dimension(img.get("width")),
                    natural_height=_dimension(img.get("height")),
                )
            )
        return result

    async def screenshot(self) -> bytes | None:
        return None
