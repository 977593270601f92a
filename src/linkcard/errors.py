# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Link Card exception hierarchy.

All Link Card errors inherit from LinkCardError. Only InvalidUrlError and
BrowserError ever reach callers of the preview entry points; everything
else is recovered at the candidate or field boundary.
"""

from __future__ import annotations


class LinkCardError(Exception):
    """Base exception for all Link Card errors."""


class InvalidUrlError(LinkCardError, ValueError):
    """Input text holds no structurally valid URL."""

    def __init__(self, message: str, *, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class BrowserError(LinkCardError):
    """Browser launch, navigation, or page load failure (fatal)."""


class ProbeError(LinkCardError):
    """Network probe of a candidate media URL failed."""

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url
