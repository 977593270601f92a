# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Theme color resolution and RGB → hex normalization.

Explicit ``<meta name="theme-color">`` wins. When it is absent and the
caller allows it, the most frequent pixel color of a viewport screenshot is
used instead. Output is hex (``#rrggbb``) or whatever non-RGB text the page
declared; raw ``rgb()``/``rgba()`` never leaves this module.
"""

from __future__ import annotations

import asyncio
import io
import logging
import re
from typing import TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from .config import DEFAULT_CONFIG, THEME_COLOR_CHAIN, ExtractionConfig

if TYPE_CHECKING:
    from .document import DocumentQuery

logger = logging.getLogger(__name__)

_RGB_RE = re.compile(r"^\s*rgba?\s*\((?P<args>[^)]*)\)\s*$", re.IGNORECASE)
_CHANNEL_RE = re.compile(r"[-+]?\d*\.?\d+%?")


def _parse_channel(token: str) -> int:
    if token.endswith("%"):
        value = float(token[:-1]) * 255 / 100
    else:
        value = float(token)
    return max(0, min(255, round(value)))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Format channels as lowercase ``#rrggbb`` (each clamped to 0..255)."""
    r, g, b = (max(0, min(255, int(c))) for c in (r, g, b))
    return f"#{r:02x}{g:02x}{b:02x}"


def normalize_color(raw: str | None) -> str | None:
    """Normalize a declared color value.

    ``rgb(...)`` / ``rgba(...)`` become hex (alpha ignored). Hex and any
    other format pass through unchanged; empty input gives None.
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    m = _RGB_RE.match(value)
    if not m:
        return value
    channels = _CHANNEL_RE.findall(m.group("args"))
    if len(channels) < 3:
        logger.debug("Unparseable rgb color kept as is: %r", value)
        return value
    r, g, b = (_parse_channel(c) for c in channels[:3])
    return rgb_to_hex(r, g, b)


def dominant_color(image_bytes: bytes) -> tuple[int, int, int] | None:
    """Most frequent RGB pixel value in an encoded image (PNG/JPEG/...)."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError):
        logger.debug("Screenshot could not be decoded for dominant color", exc_info=True)
        return None
    width, height = rgb.size
    colors = rgb.getcolors(maxcolors=max(1, width * height))
    if not colors:
        return None
    _count, pixel = max(colors, key=lambda item: item[0])
    return pixel[0], pixel[1], pixel[2]


async def resolve_theme_color(
    document: DocumentQuery,
    allow_dominant_color: bool,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> str | None:
    """Declared theme color, else (optionally) the screenshot's dominant color."""
    raw: str | None = None
    for selector in THEME_COLOR_CHAIN:
        value = await document.first_attribute(selector, selector.value_attr(config))
        if value and value.strip():
            raw = value
            break

    if raw is None and allow_dominant_color:
        png = await document.screenshot()
        if png:
            pixel = await asyncio.to_thread(dominant_color, png)
            if pixel is not None:
                raw = rgb_to_hex(*pixel)
                logger.debug("Theme color from dominant screenshot color: %s", raw)

    return normalize_color(raw)
