"""Browsing capability used by discovery and extraction, backed by Playwright."""

from __future__ import annotations

import logging
import random
from typing import Protocol

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
]

LAUNCH_ARGS = ["--disable-blink-features=AutomationControlled", "--no-sandbox"]
VIEWPORT = {"width": 1280, "height": 800}


class BrowserError(Exception):
    """Base error for browsing operations."""


class NavigationError(BrowserError):
    """A page failed to load within its timeout."""


class SelectorTimeout(BrowserError):
    """An expected element did not appear in time."""


class SessionError(BrowserError):
    """The browser session could not be started."""


class Browser(Protocol):
    """Operations the pipeline needs from a browsing session.

    Timeouts are in seconds.
    """

    def goto(self, url: str, *, timeout: float, wait_until: str = "domcontentloaded") -> None: ...

    def wait_for_selector(self, selector: str, *, timeout: float) -> None: ...

    def evaluate(self, script: str): ...

    def query_all_attr(self, selector: str, attr: str) -> list[str | None]: ...

    def inner_text(self, selector: str) -> str: ...

    def content(self) -> str: ...

    def pause(self, seconds: float) -> None: ...


class PlaywrightBrowser:
    """Single Chromium page driven through Playwright's sync API.

    Use as a context manager: the browser process is started on enter and
    always closed on exit.
    """

    def __init__(self, *, headless: bool = True, user_agent: str | None = None):
        self.headless = headless
        self.user_agent = user_agent or random.choice(USER_AGENTS)
        self._playwright = None
        self._browser = None
        self.page = None

    def __enter__(self) -> PlaywrightBrowser:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless, args=LAUNCH_ARGS
            )
            context = self._browser.new_context(user_agent=self.user_agent, viewport=VIEWPORT)
            self.page = context.new_page()
        except PlaywrightError as e:
            self.close()
            raise SessionError(f"Failed to start browser: {e}") from e
        logger.info("Browser session started (headless=%s)", self.headless)

    def close(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except Exception as e:
                logger.warning("Error closing browser: %s", e)
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        self.page = None

    def goto(self, url: str, *, timeout: float, wait_until: str = "domcontentloaded") -> None:
        from playwright.sync_api import Error as PlaywrightError

        try:
            self.page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e

    def wait_for_selector(self, selector: str, *, timeout: float) -> None:
        from playwright.sync_api import Error as PlaywrightError

        try:
            self.page.wait_for_selector(selector, timeout=timeout * 1000)
        except PlaywrightError as e:
            raise SelectorTimeout(f"{selector} not found after {timeout}s") from e

    def evaluate(self, script: str):
        return self.page.evaluate(script)

    def query_all_attr(self, selector: str, attr: str) -> list[str | None]:
        from playwright.sync_api import Error as PlaywrightError

        try:
            return self.page.eval_on_selector_all(
                selector, "(els, attr) => els.map(el => el.getAttribute(attr))", attr
            )
        except PlaywrightError as e:
            # e.g. "Execution context was destroyed" after a redirect
            raise NavigationError(f"Failed to query {selector}: {e}") from e

    def inner_text(self, selector: str) -> str:
        element = self.page.query_selector(selector)
        if element is None:
            return ""
        return (element.inner_text() or "").strip()

    def content(self) -> str:
        return self.page.content()

    def pause(self, seconds: float) -> None:
        from playwright.sync_api import Error as PlaywrightError

        if seconds <= 0:
            return
        try:
            self.page.wait_for_timeout(seconds * 1000)
        except PlaywrightError as e:
            raise NavigationError(f"Page closed while waiting: {e}") from e
