# src/scrapers/rendering_engine.py

"""Page rendering capability and its backends.

The extractors only need two questions answered about a page: how many
elements match a selector, and what the first match's visible text is.
:class:`RenderedPage` captures that; :class:`SoupPage` answers it over
static markup and :class:`PlaywrightPage` over a live headless page.

:class:`PlaywrightEngine` owns the one browser shared by a whole run.
It is started lazily on first render and must be stopped by whoever
constructed it; ``stop()`` is idempotent and also registered with
``atexit`` so an aborted run still releases the browser process.
"""

import atexit
import logging
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

from bs4 import BeautifulSoup
from playwright.sync_api import Browser, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from soupsieve import SelectorSyntaxError

from src.config.settings import Settings
from src.errors import ExtractionError, NetworkError

logger = logging.getLogger("value_tracker.rendering")


class RenderedPage(Protocol):
    """Read-only view of a loaded document."""

    def count(self, selector: str) -> int:
        """Number of elements matching *selector*."""
        ...

    def first_text(self, selector: str) -> str:
        """Trimmed visible text of the first match ("" if none)."""
        ...


class RenderingEngine(Protocol):
    """Something that can load a URL into a :class:`RenderedPage`."""

    def render(self, url: str) -> AbstractContextManager[RenderedPage]:
        """Load *url*; the page is released when the context exits."""
        ...

    def stop(self) -> None:
        """Release any process-wide resources."""
        ...


class SoupPage:
    """RenderedPage over static markup parsed with BeautifulSoup."""

    def __init__(self, markup: str) -> None:
        self.soup = BeautifulSoup(markup, "lxml")

    def count(self, selector: str) -> int:
        try:
            return len(self.soup.select(selector))
        except (SelectorSyntaxError, ValueError, NotImplementedError) as exc:
            logger.info("Unusable selector %r: %s", selector, exc)
            return 0

    def first_text(self, selector: str) -> str:
        try:
            element = self.soup.select_one(selector)
        except (SelectorSyntaxError, ValueError, NotImplementedError) as exc:
            logger.info("Unusable selector %r: %s", selector, exc)
            return ""
        if element is None:
            return ""
        return element.get_text().strip()


class PlaywrightPage:
    """RenderedPage over a live Playwright page."""

    def __init__(self, page: Page) -> None:
        self.page = page

    def count(self, selector: str) -> int:
        try:
            return self.page.locator(selector).count()
        except PlaywrightError as exc:
            raise ExtractionError(
                f"selector {selector!r} failed: {exc}"
            ) from exc

    def first_text(self, selector: str) -> str:
        locator = self.page.locator(selector)
        try:
            if locator.count() == 0:
                return ""
            return (locator.first.inner_text() or "").strip()
        except PlaywrightError as exc:
            raise ExtractionError(
                f"reading text for {selector!r} failed: {exc}"
            ) from exc


class PlaywrightEngine:
    """Shared headless Chromium, lazily launched, explicitly stopped."""

    def __init__(
        self,
        headless: bool = True,
        navigation_timeout_ms: int | None = None,
        settle_delay_ms: int | None = None,
    ) -> None:
        self.headless = headless
        self.navigation_timeout_ms = (
            navigation_timeout_ms
            if navigation_timeout_ms is not None
            else Settings.NAVIGATION_TIMEOUT_MS
        )
        self.settle_delay_ms = (
            settle_delay_ms
            if settle_delay_ms is not None
            else Settings.SETTLE_DELAY_MS
        )
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = threading.Lock()
        self._atexit_registered = False

    @property
    def started(self) -> bool:
        """True while a browser process is held."""
        return self._browser is not None

    def start(self) -> Browser:
        """Launch the browser on first use and return it."""
        with self._lock:
            if self._browser is None:
                logger.info("Launching headless Chromium")
                self._playwright = sync_playwright().start()
                self._browser = self._playwright.chromium.launch(
                    headless=self.headless,
                    args=Settings.BROWSER_ARGS,
                )
                if not self._atexit_registered:
                    atexit.register(self.stop)
                    self._atexit_registered = True
            return self._browser

    def stop(self) -> None:
        """Close the browser and driver; safe to call repeatedly."""
        with self._lock:
            browser, self._browser = self._browser, None
            driver, self._playwright = self._playwright, None
        if browser is not None:
            try:
                browser.close()
            except PlaywrightError as exc:
                logger.warning("Browser close failed: %s", exc)
        if driver is not None:
            try:
                driver.stop()
            except PlaywrightError as exc:
                logger.warning("Playwright stop failed: %s", exc)
            logger.info("Headless Chromium stopped")

    def __enter__(self) -> "PlaywrightEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @contextmanager
    def render(self, url: str) -> Iterator[RenderedPage]:
        """Open an isolated context, load *url*, yield the page.

        Navigation problems surface as :class:`NetworkError`; the shared
        browser itself is never closed here.
        """
        browser = self.start()
        context = browser.new_context(
            user_agent=Settings.BROWSER_USER_AGENT,
            viewport={"width": 1920, "height": 1080},
            locale="en-US",
        )
        try:
            page = context.new_page()
            page.set_default_timeout(self.navigation_timeout_ms)
            try:
                page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.navigation_timeout_ms,
                )
            except PlaywrightTimeoutError as exc:
                raise NetworkError(
                    url,
                    f"navigation timed out after "
                    f"{self.navigation_timeout_ms}ms",
                ) from exc
            except PlaywrightError as exc:
                raise NetworkError(url, f"navigation failed: {exc}") from exc

            # buffer for client-side hydration
            page.wait_for_timeout(self.settle_delay_ms)
            yield PlaywrightPage(page)
        finally:
            try:
                context.close()
            except PlaywrightError as exc:
                logger.warning("Closing browser context failed: %s", exc)
