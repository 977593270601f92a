# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for browser session configuration and lifecycle.

Tests BrowserConfig defaults, launch args, property guards, and error
wrapping. Playwright is mocked; no browser is started.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from linkcard.browser_session import (
    DEFAULT_LOCALE,
    BrowserConfig,
    BrowserSession,
    chromium_launch_args,
)
from linkcard.config import FACEBOOK_USER_AGENT
from linkcard.errors import BrowserError

# ── BrowserConfig Defaults ─────────────────────────────────────────


class TestBrowserConfig:
    """Tests for BrowserConfig default values."""

    def test_default_headless(self):
        assert BrowserConfig().headless is True

    def test_default_timeout(self):
        assert BrowserConfig().timeout_ms == 30000

    def test_default_user_agent_is_link_preview_crawler(self):
        assert BrowserConfig().user_agent == FACEBOOK_USER_AGENT
        assert FACEBOOK_USER_AGENT.startswith("facebookexternalhit/")

    def test_default_viewport(self):
        cfg = BrowserConfig()
        assert (cfg.viewport_width, cfg.viewport_height) == (1280, 800)

    def test_default_wait_until(self):
        assert BrowserConfig().wait_until == "load"

    def test_default_locale(self):
        assert BrowserConfig().locale == DEFAULT_LOCALE == "en-US"

    def test_no_executable_path(self):
        assert BrowserConfig().executable_path is None


class TestLaunchArgs:
    def test_automation_flag_hidden(self):
        assert "--disable-blink-features=AutomationControlled" in chromium_launch_args(BrowserConfig())

    def test_extra_args_appended_last(self):
        args = chromium_launch_args(BrowserConfig(args=("--no-sandbox", "--proxy-server=http://p:1")))
        assert args[-2:] == ["--no-sandbox", "--proxy-server=http://p:1"]

    def test_locale_flag(self):
        assert "--lang=de-DE" in chromium_launch_args(BrowserConfig(locale="de-DE"))


# ── Property Guards ────────────────────────────────────────────────


class TestPropertyGuards:
    def test_page_raises_before_start(self):
        with pytest.raises(RuntimeError, match="not started"):
            _ = BrowserSession().page

    def test_session_default_config(self):
        assert isinstance(BrowserSession().config, BrowserConfig)


# ── Lifecycle (mocked Playwright) ──────────────────────────────────


@pytest.fixture
def playwright_mock(monkeypatch):
    page = MagicMock()
    page.url = "https://www.example.com/final"
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.evaluate = AsyncMock(return_value={"waited_ms": 200, "mutations": 0, "reason": "quiet"})

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)
    pw.stop = AsyncMock()

    starter = MagicMock()
    starter.start = AsyncMock(return_value=pw)
    monkeypatch.setattr("linkcard.browser_session.async_playwright", lambda: starter)
    return pw, browser, context, page


class TestLifecycle:
    async def test_start_applies_config(self, playwright_mock):
        pw, browser, _context, page = playwright_mock
        cfg = BrowserConfig(executable_path="/usr/bin/chromium", user_agent="UA/1.0", timeout_ms=5000)
        async with BrowserSession(cfg) as session:
            assert session.page is page
        launch_kwargs = pw.chromium.launch.await_args.kwargs
        assert launch_kwargs["executable_path"] == "/usr/bin/chromium"
        assert launch_kwargs["headless"] is True
        assert browser.new_context.await_args.kwargs["user_agent"] == "UA/1.0"
        page.set_default_timeout.assert_called_once_with(5000)

    async def test_stop_closes_everything(self, playwright_mock):
        pw, browser, context, _page = playwright_mock
        async with BrowserSession():
            pass
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        pw.stop.assert_awaited_once()

    async def test_launch_failure_wrapped(self, playwright_mock):
        pw, *_ = playwright_mock
        pw.chromium.launch.side_effect = PlaywrightError("spawn failed")
        with pytest.raises(BrowserError, match="Browser launch failed"):
            async with BrowserSession():
                pass
        pw.stop.assert_awaited_once()

    async def test_navigate(self, playwright_mock):
        *_, page = playwright_mock
        async with BrowserSession() as session:
            nav = await session.navigate("https://example.com/")
        assert nav.url == "https://www.example.com/final"
        assert nav.http_status == 200
        assert nav.settle_metrics["reason"] == "quiet"
        assert page.goto.await_args.kwargs["wait_until"] == "load"

    async def test_navigation_failure_is_browser_error(self, playwright_mock):
        *_, page = playwright_mock
        page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        async with BrowserSession() as session:
            with pytest.raises(BrowserError, match="ERR_NAME_NOT_RESOLVED"):
                await session.navigate("https://nowhere.invalid/")

    async def test_settle_failure_is_not_fatal(self, playwright_mock):
        *_, page = playwright_mock
        page.evaluate.side_effect = PlaywrightError("Execution context was destroyed")
        async with BrowserSession() as session:
            nav = await session.navigate("https://example.com/")
        assert nav.settle_metrics is None
