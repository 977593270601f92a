# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""End-to-end tests for linkcard.preview over the HTML fixture pages.

Pages mirror the four metadata tiers: OpenGraph (1), Twitter Card (2),
generic HTML (3), heuristics (4), plus essentials-only (5) and an rgb()
theme color (6).
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from linkcard import CORE_FIELDS
from linkcard.config import ResolutionOptions
from linkcard.errors import BrowserError, InvalidUrlError
from linkcard.preview import get_preview, get_preview_from_html
from linkcard.serializer import to_dict
from tests._fakes import OG_TITLE, FakeDocument, make_probe

TITLE = "See-Link"
DESCRIPTION = "See-A-Link! Get the preview metadata of a link"
IMAGE = "https://avatars.githubusercontent.com/u/58745044?s=400&v=4"
ICON = "https://github.com/favicon.ico"
VIDEO = "https://youtu.be/wE0uhqaxS_E"
DETAILED = ResolutionOptions(detailed_preview=True)


@pytest.fixture
async def probe():
    p, _ = make_probe({IMAGE: "image/png", ICON: "image/x-icon", VIDEO: "video/mp4"})
    async with p:
        yield p


async def _preview(load_fixture, probe, page: int, options: ResolutionOptions | None = None):
    html = load_fixture(f"page_{page}.html")
    return await get_preview_from_html(html, f"http://localhost/test:{page}", options, probe=probe)


class TestMetadataTiers:
    async def test_open_graph(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 1, DETAILED)
        assert (result.title, result.description, result.image) == (TITLE, DESCRIPTION, IMAGE)
        assert result.domain_name == "localhost"
        assert result.icon == ICON
        assert result.type == "website"
        assert result.video == VIDEO
        assert result.theme_color is None

    async def test_twitter_card(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 2, DETAILED)
        assert (result.title, result.description, result.image) == (TITLE, DESCRIPTION, IMAGE)
        assert result.icon == ICON
        assert result.video == VIDEO
        assert result.theme_color == "#ababff"
        assert result.type is None

    async def test_generic_html(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 3, DETAILED)
        assert (result.title, result.description, result.image) == (TITLE, DESCRIPTION, IMAGE)
        assert (result.icon, result.type, result.video, result.theme_color) == (None, None, None, None)

    async def test_heuristics(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 4, DETAILED)
        assert result.title == TITLE
        assert result.description == DESCRIPTION
        assert result.image is None
        assert result.domain_name == "localhost"


class TestOptions:
    async def test_essentials_only(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 5)
        assert result.attempted == frozenset(CORE_FIELDS)
        assert (result.title, result.description, result.image) == (TITLE, DESCRIPTION, IMAGE)
        data = to_dict(result)
        assert set(data) == set(CORE_FIELDS)

    async def test_rgb_theme_color(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 6, ResolutionOptions(get_theme_color=True))
        assert result.theme_color == "#ababff"
        assert not result.is_attempted("video")
        assert not result.is_attempted("icon")

    async def test_string_flags(self, load_fixture, probe):
        result = await _preview(load_fixture, probe, 1, ResolutionOptions.from_flags(["video"]))
        assert result.video == VIDEO
        assert not result.is_attempted("type")


class TestOfflineErrors:
    async def test_invalid_base_url(self):
        with pytest.raises(InvalidUrlError):
            await get_preview_from_html("<html></html>", "abc.c")

    async def test_xhtml_declaration_resolves(self, probe):
        html = '<?xml version="1.0" encoding="utf-8"?>\n<html><head><title>See-Link</title></head></html>'
        result = await get_preview_from_html(html, "https://www.example.com/", probe=probe)
        assert result.title == TITLE
        assert result.domain_name == "example.com"

    async def test_comment_only_gives_partial_result(self, probe):
        result = await get_preview_from_html("<!-- nothing -->", "https://www.example.com/", probe=probe)
        assert result.title is None
        assert result.description is None
        assert result.image is None
        assert result.domain_name == "example.com"
        assert result.field_errors == {}


# ── Live entry point (browser faked) ────────────────────────────────


class _FakeSession:
    instances: list[_FakeSession] = []

    def __init__(self, config=None, *, fail_navigation: bool = False):
        self.config = config
        self.page = MagicMock()
        self.navigated: list[str] = []
        self.closed = False
        self._fail = fail_navigation
        _FakeSession.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        self.closed = True

    async def navigate(self, url: str):
        if self._fail:
            raise BrowserError(f"Failed to load {url}: net::ERR_NAME_NOT_RESOLVED")
        self.navigated.append(url)


@pytest.fixture
def fake_browser(monkeypatch):
    _FakeSession.instances = []
    doc = FakeDocument("http://example.com/", attrs={OG_TITLE: "Example"})
    monkeypatch.setattr("linkcard.preview.BrowserSession", _FakeSession)
    monkeypatch.setattr("linkcard.preview.PlaywrightDocument", lambda page: doc)
    return _FakeSession.instances


class TestGetPreview:
    async def test_url_extracted_from_text(self, fake_browser, probe):
        result = await get_preview("see example.com", probe=probe)
        assert fake_browser[0].navigated == ["http://example.com"]
        assert fake_browser[0].closed
        assert result.title == "Example"
        assert result.domain_name == "example.com"

    async def test_invalid_url_never_starts_browser(self, fake_browser):
        with pytest.raises(InvalidUrlError):
            await get_preview("abc.c")
        assert fake_browser == []

    async def test_navigation_failure_is_fatal(self, monkeypatch, probe):
        monkeypatch.setattr(
            "linkcard.preview.BrowserSession",
            lambda config=None: _FakeSession(config, fail_navigation=True),
        )
        with pytest.raises(BrowserError, match="ERR_NAME_NOT_RESOLVED"):
            await get_preview("https://nowhere.invalid/", probe=probe)
