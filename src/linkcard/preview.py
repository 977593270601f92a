# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Caller-facing entry points.

- get_preview(): live mode: extracts a URL from the input text, loads it in
  Chromium, resolves the preview from the rendered DOM
- get_preview_from_html(): offline mode: same engine over static HTML

Only InvalidUrlError and BrowserError escape; missing metadata never does.
"""

from __future__ import annotations

import logging

from . import PreviewResult
from .browser_session import BrowserConfig, BrowserSession
from .config import DEFAULT_CONFIG, ExtractionConfig, ResolutionOptions
from .document import HtmlDocument, PlaywrightDocument
from .errors import BrowserError, InvalidUrlError
from .media import MediaProbe
from .preview_builder import build_preview
from .urls import require_url

logger = logging.getLogger(__name__)


async def get_preview(
    text: str,
    options: ResolutionOptions | None = None,
    *,
    browser_config: BrowserConfig | None = None,
    config: ExtractionConfig = DEFAULT_CONFIG,
    probe: MediaProbe | None = None,
) -> PreviewResult:
    """Build the link preview for the first URL found in *text*.

    Args:
        text: a URL, a bare host ("example.com/page"), or free text containing one
        options: requested detail level (core fields only when None)
        browser_config: Chromium launch/navigation settings
        config: extraction thresholds and timeouts
        probe: shared network probe (a private one is created when None)

    Raises:
        InvalidUrlError: no valid URL in *text*
        BrowserError: the browser could not start or the page failed to load
    """
    try:
        url = require_url(text)
    except InvalidUrlError:
        logger.error("Rejected preview request: no valid URL in %.200r", text)
        raise

    try:
        async with BrowserSession(browser_config) as session:
            await session.navigate(url)
            return await build_preview(PlaywrightDocument(session.page), options, probe, config)
    except BrowserError as e:
        logger.error("Preview failed for %s: %s", url, e)
        raise


async def get_preview_from_html(
    html: str,
    base_url: str,
    options: ResolutionOptions | None = None,
    *,
    config: ExtractionConfig = DEFAULT_CONFIG,
    probe: MediaProbe | None = None,
) -> PreviewResult:
    """Build the link preview of static *html* served at *base_url*.

    No layout is available: the dominant-color fallback never fires and
    image sizes come from width/height attributes.

    Raises:
        InvalidUrlError: *base_url* is not a valid URL
    """
    url = require_url(base_url)
    return await build_preview(HtmlDocument(html, url), options, probe, config)
