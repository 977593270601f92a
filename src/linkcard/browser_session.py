# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright browser session for live link previews.

Manages the Chromium lifecycle and one page per session. Navigation
failures are fatal (BrowserError); everything after the page has loaded is
read-only.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import suppress
from dataclasses import dataclass, field

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from .config import FACEBOOK_USER_AGENT
from .errors import BrowserError

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"


@dataclass
class BrowserConfig:
    """Browser launch configuration."""

    headless: bool = True
    executable_path: str | None = None  # use a system Chromium instead of the bundled one
    args: tuple[str, ...] = field(default_factory=tuple)  # extra Chromium arguments
    locale: str = DEFAULT_LOCALE
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = FACEBOOK_USER_AGENT
    timeout_ms: int = 30000
    wait_until: str = "load"  # "load" | "domcontentloaded" | "networkidle"
    settle_quiet_ms: int = 200  # DOM mutation quiet period (ms)
    settle_max_ms: int = 3000  # Maximum settle wait (ms)


@dataclass(frozen=True, slots=True)
class NavigationResult:
    """Outcome of loading the target page."""

    url: str  # final URL after redirects
    http_status: int | None
    settle_metrics: dict | None  # DOM settle: {waited_ms, mutations, reason}


# ── Chromium auto-install ─────────────────────────────────────────

_chromium_install_attempted = False
_AUTO_INSTALL_TIMEOUT = 300  # seconds


async def _auto_install_chromium() -> bool:
    """Run ``playwright install chromium`` once per process."""
    global _chromium_install_attempted  # noqa: PLW0603
    if _chromium_install_attempted:
        return False
    _chromium_install_attempted = True

    logger.info("Chromium not found, running 'playwright install chromium' …")
    try:
        proc = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "playwright",
            "install",
            "chromium",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=_AUTO_INSTALL_TIMEOUT)
        if proc.returncode == 0:
            logger.info("Chromium installed successfully")
            return True
        logger.warning(
            "playwright install chromium failed (rc=%d): %s",
            proc.returncode,
            stderr.decode(errors="replace")[:500],
        )
        return False
    except TimeoutError:
        logger.warning("Chromium install timed out after %ds", _AUTO_INSTALL_TIMEOUT)
        return False
    except Exception:
        logger.warning("Chromium auto-install failed", exc_info=True)
        return False


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    """Chromium arguments: automation flags hidden, caller extras appended."""
    return [
        "--disable-blink-features=AutomationControlled",
        f"--lang={config.locale}",
        "--disable-extensions",
        "--disable-dev-shm-usage",
        "--disable-background-networking",
        "--disable-sync",
        "--no-first-run",
        "--noerrdialogs",
        *config.args,
    ]


class BrowserSession:
    """One Chromium browser + context + page."""

    def __init__(self, config: BrowserConfig | None = None):
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session not started. Use async with or call start().")
        return self._page

    async def _launch_browser(self) -> Browser:
        """Launch Chromium, auto-installing on first 'executable not found' error."""
        kwargs: dict = {"headless": self.config.headless, "args": chromium_launch_args(self.config)}
        if self.config.executable_path:
            kwargs["executable_path"] = self.config.executable_path
        try:
            return await self._playwright.chromium.launch(**kwargs)
        except PlaywrightError as exc:
            if "executable doesn't exist" in str(exc).lower() and not self.config.executable_path:
                if await _auto_install_chromium():
                    return await self._playwright.chromium.launch(**kwargs)
                raise BrowserError(
                    "Chromium is not installed and auto-install failed. Please run: playwright install chromium"
                ) from exc
            raise BrowserError(f"Browser launch failed: {exc}") from exc

    async def start(self) -> None:
        """Launch browser and create the page."""
        self._playwright = await async_playwright().start()
        self._browser = await self._launch_browser()
        self._context = await self._browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            locale=self.config.locale,
            user_agent=self.config.user_agent,
            service_workers="block",
            accept_downloads=False,
        )
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.config.timeout_ms)
        logger.info("Browser session started (headless=%s)", self.config.headless)

    async def stop(self) -> None:
        """Close everything. Safe to call on a crashed or half-started session."""
        if self._context:
            with suppress(Exception):
                await self._context.close()
            self._context = None
        self._page = None
        if self._browser:
            with suppress(Exception):
                await self._browser.close()
            self._browser = None
        if self._playwright:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
        logger.info("Browser session stopped")

    async def __aenter__(self) -> BrowserSession:
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    async def navigate(self, url: str) -> NavigationResult:
        """Load *url* and wait for the DOM to settle.

        Raises:
            BrowserError: the document failed to load at all.
        """
        try:
            response = await self.page.goto(url, wait_until=self.config.wait_until, timeout=self.config.timeout_ms)
        except PlaywrightError as exc:
            raise BrowserError(f"Failed to load {url}: {exc}") from exc

        settle = await self.wait_for_dom_settle()
        status = response.status if response else None
        logger.info("Loaded %s (status=%s, final=%s)", url, status, self.page.url)
        return NavigationResult(url=self.page.url, http_status=status, settle_metrics=settle)

    async def wait_for_dom_settle(
        self,
        quiet_ms: int | None = None,
        max_ms: int | None = None,
    ) -> dict | None:
        """Wait for DOM mutations to settle using MutationObserver.

        Returns:
            Metrics dict {"waited_ms": int, "mutations": int, "reason": "quiet"|"timeout"}
            or None if page.evaluate failed.
        """
        q = quiet_ms if quiet_ms is not None else self.config.settle_quiet_ms
        m = max_ms if max_ms is not None else self.config.settle_max_ms
        try:
            return await self.page.evaluate(_DOM_SETTLE_JS, [q, m])
        except PlaywrightError:
            logger.debug("DOM settle failed, continuing", exc_info=True)
            return None


_DOM_SETTLE_JS = """([quietMs, maxMs]) => new Promise(resolve => {
  let mutations = 0;
  let quietTimer = null;
  let maxTimer = null;
  const start = performance.now();
  const root = document.documentElement;

  const finish = (reason) => {
    observer.disconnect();
    if (quietTimer) clearTimeout(quietTimer);
    if (maxTimer) clearTimeout(maxTimer);
    resolve({waited_ms: Math.round(performance.now() - start), mutations: mutations, reason: reason});
  };

  const resetQuiet = () => {
    if (quietTimer) clearTimeout(quietTimer);
    quietTimer = setTimeout(() => finish('quiet'), quietMs);
  };

  const observer = new MutationObserver((records) => {
    mutations += records.length;
    resetQuiet();
  });

  if (root) {
    observer.observe(root, {childList: true, subtree: true, characterData: true});
  }
  resetQuiet();
  maxTimer = setTimeout(() => finish('timeout'), maxMs);
})"""

