# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Extraction configuration, candidate selectors, and resolution options.

Leaf module, no linkcard imports. Everything here is immutable so a single
config instance can be shared across concurrent field resolvers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

FACEBOOK_USER_AGENT = "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)"

# String option names accepted by ResolutionOptions.from_flags()
PREVIEW_DETAILED = "detailed"
PREVIEW_VIDEO = "video"
PREVIEW_THEME_COLOR = "theme-color"
PREVIEW_DOMINANT_COLOR = "dominant-color"


@dataclass(frozen=True)
class ExtractionConfig:
    """Attribute names, thresholds, and timeouts for the resolution engine."""

    content_attribute: str = "content"  # <meta content="...">
    link_attribute: str = "href"  # <link href="...">
    min_image_side_px: int = 50
    max_image_aspect_ratio: float = 3.0
    description_max_chars: int = 155
    search_engine_host: str = "www.google.com"
    search_engine_description: str = (
        "Search the world's information, including webpages, images, videos and more."
    )
    probe_timeout_s: float = 10.0  # single network probe
    field_timeout_s: float = 20.0  # one field's whole candidate chain
    probe_user_agent: str = FACEBOOK_USER_AGENT


DEFAULT_CONFIG = ExtractionConfig()


@dataclass(frozen=True, slots=True)
class Selector:
    """One candidate source: first ``tag`` whose ``match_attr`` equals ``match_value``.

    ``value_attr(config)`` names the attribute holding the candidate value,
    taken from ExtractionConfig ("content" for meta, "href" for link).
    """

    tag: str
    match_attr: str
    match_value: str

    @property
    def css(self) -> str:
        return f"{self.tag}[{self.match_attr}='{self.match_value}']"

    @property
    def xpath(self) -> str:
        return f"//{self.tag}[@{self.match_attr}='{self.match_value}']"

    def value_attr(self, config: ExtractionConfig) -> str:
        return config.link_attribute if self.tag == "link" else config.content_attribute


def _og(name: str) -> Selector:
    return Selector("meta", "property", f"og:{name}")


def _twitter(name: str) -> Selector:
    return Selector("meta", "name", f"twitter:{name}")


def _rel(value: str) -> Selector:
    return Selector("link", "rel", value)


# ── Candidate chains (order = priority) ─────────────────────────────

TITLE_META_CHAIN: tuple[Selector, ...] = (_og("title"), _twitter("title"))
TITLE_HEADING_CHAIN: tuple[str, ...] = ("h1", "h2")

DESCRIPTION_META_CHAIN: tuple[Selector, ...] = (
    _og("description"),
    _twitter("description"),
    Selector("meta", "name", "description"),
)

IMAGE_CHAIN: tuple[Selector, ...] = (_og("image"), _twitter("image"), _rel("image_src"))

VIDEO_CHAIN: tuple[Selector, ...] = (_og("video"), _twitter("player"), _rel("video_src"))

DOMAIN_CHAIN: tuple[Selector, ...] = (_rel("canonical"), _og("url"))

ICON_CHAIN: tuple[Selector, ...] = (_rel("icon"), _rel("shortcut icon"), _rel("apple-touch-icon"))

TYPE_CHAIN: tuple[Selector, ...] = (_og("type"),)

THEME_COLOR_CHAIN: tuple[Selector, ...] = (Selector("meta", "name", "theme-color"),)


@dataclass(frozen=True)
class ResolutionOptions:
    """Caller-selected detail level.

    ``detailed_preview`` implies icon, type, video and theme color.
    ``dominant_theme_color`` only enables the screenshot fallback when the
    theme color is attempted at all.
    """

    detailed_preview: bool = False
    get_video: bool = False
    get_theme_color: bool = False
    dominant_theme_color: bool = False

    @property
    def wants_icon(self) -> bool:
        return self.detailed_preview

    @property
    def wants_type(self) -> bool:
        return self.detailed_preview

    @property
    def wants_video(self) -> bool:
        return self.detailed_preview or self.get_video

    @property
    def wants_theme_color(self) -> bool:
        return self.detailed_preview or self.get_theme_color

    @classmethod
    def from_flags(cls, flags: Iterable[str] | None) -> ResolutionOptions:
        """Build options from string flags ("detailed", "video", "theme-color")."""
        names = {f.strip().lower() for f in flags or ()}
        return cls(
            detailed_preview=PREVIEW_DETAILED in names,
            get_video=PREVIEW_VIDEO in names,
            get_theme_color=PREVIEW_THEME_COLOR in names,
            dominant_theme_color=PREVIEW_DOMINANT_COLOR in names,
        )
