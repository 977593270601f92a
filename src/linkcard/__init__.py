# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Link Card: canonical link-preview metadata from arbitrary web pages.

Resolves one value per preview field from competing conventions:
- OpenGraph tags (og:*)
- Twitter Card tags (twitter:*)
- generic HTML elements (title, meta description, rel links)
- heuristics (first heading, first visible paragraph, first plausible image)
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Fields attempted on every call. Detail fields are attempted on request only.
CORE_FIELDS = ("title", "description", "image", "domain_name")
DETAIL_FIELDS = ("icon", "type", "video", "theme_color")


@dataclass(frozen=True, slots=True)
class ImageInfo:
    """Snapshot of one <img> element in document order."""

    src: str | None
    natural_width: int
    natural_height: int


@dataclass(frozen=True, slots=True)
class ParagraphInfo:
    """Snapshot of one <p> element in document order."""

    text: str
    visible: bool  # has a layout parent (offsetParent != null)
    child_elements: int


@dataclass
class PreviewResult:
    """Resolved link preview for one page.

    ``domain_name`` is the only field guaranteed non-null. Detail fields are
    meaningful only when listed in ``attempted``; serializers omit the rest
    so callers can tell "not requested" from "requested but absent".
    """

    url: str
    domain_name: str
    title: str | None = None
    description: str | None = None
    image: str | None = None
    icon: str | None = None
    type: str | None = None
    video: str | None = None
    theme_color: str | None = None
    attempted: frozenset[str] = frozenset(CORE_FIELDS)
    field_errors: dict[str, str] = field(default_factory=dict)  # field -> error summary
    generation_ms: float = 0.0

    def is_attempted(self, name: str) -> bool:
        return name in self.attempted

    def get(self, name: str) -> str | None:
        """Field value, or None when the field was not attempted."""
        if name not in self.attempted:
            return None
        return getattr(self, name)


__all__ = [
    "CORE_FIELDS",
    "DETAIL_FIELDS",
    "ImageInfo",
    "ParagraphInfo",
    "PreviewResult",
]
