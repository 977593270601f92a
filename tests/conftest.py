# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import linkcard  # noqa: F401
except ImportError:
    raise ImportError("linkcard is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from tests._fakes import FIXTURES_DIR


@pytest.fixture(autouse=True)
def _block_real_browser(request, monkeypatch):
    """Safety net: prevent real Chromium launches in unit tests.

    Tests that need a session should patch ``linkcard.browser_session.async_playwright``
    (or ``linkcard.preview.BrowserSession``) explicitly. Tests that really
    launch a browser opt out with::

        @pytest.mark.browser
    """
    if "browser" in request.keywords:
        return

    def _no_real_playwright():
        raise RuntimeError(
            "Test tried to start a real Playwright driver. Patch 'linkcard.browser_session.async_playwright'."
        )

    monkeypatch.setattr("linkcard.browser_session.async_playwright", _no_real_playwright)


@pytest.fixture
def load_fixture():
    """Read an HTML page from tests/fixtures/."""

    def _load(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")

    return _load
