"""Process-wide headless Chromium used for HTML to PDF conversion.

Playwright's async API is driven from one dedicated event-loop thread so that
a single browser instance can be shared by every render worker thread. Each
render opens its own page and always closes it; the browser itself lives
until process shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, Optional

from playwright.async_api import Browser, Playwright, async_playwright

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 10
DEFAULT_PDF_OPTIONS: Dict[str, Any] = {"format": "A4", "print_background": True}


class SharedBrowser:
    """Lazily launched Chromium with single-flight start-up.

    ``render_pdf`` may be called from any thread. The first call launches the
    browser; concurrent callers wait for that same launch. A failed launch is
    forgotten so the next call tries again.
    """

    def __init__(self, no_sandbox: bool = False) -> None:
        self._no_sandbox = no_sandbox
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_lock: Optional[asyncio.Lock] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                ready = threading.Event()
                thread = threading.Thread(
                    target=self._run_loop,
                    args=(loop, ready),
                    daemon=True,
                    name="browser-loop",
                )
                thread.start()
                ready.wait()
                self._loop = loop
                self._thread = thread
            return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        loop.run_forever()

    async def _get_browser(self) -> Browser:
        if self._browser is not None:
            return self._browser
        if self._launch_lock is None:
            self._launch_lock = asyncio.Lock()
        async with self._launch_lock:
            if self._browser is None:
                args = ["--no-sandbox"] if self._no_sandbox else []
                playwright = await async_playwright().start()
                try:
                    browser = await playwright.chromium.launch(headless=True, args=args)
                except Exception:
                    await playwright.stop()
                    raise
                self._playwright = playwright
                self._browser = browser
                logger.info("Chromium launched (no_sandbox=%s)", self._no_sandbox)
        return self._browser

    async def _render(self, html: str, options: Dict[str, Any]) -> bytes:
        browser = await self._get_browser()
        page = await browser.new_page()
        try:
            await page.set_content(html, wait_until="domcontentloaded")
            return await page.pdf(**{**DEFAULT_PDF_OPTIONS, **options})
        finally:
            await page.close()

    def render_pdf(self, html: str, options: Optional[Dict[str, Any]] = None) -> bytes:
        """Render ``html`` to PDF bytes, blocking the calling thread until done."""
        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(self._render(html, dict(options or {})), loop)
        return future.result()

    async def _shutdown(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    def close(self) -> None:
        """Close the browser and stop the loop thread. Safe to call repeatedly."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return
        try:
            asyncio.run_coroutine_threadsafe(self._shutdown(), loop).result(SHUTDOWN_TIMEOUT_SECONDS)
            logger.info("Chromium closed")
        finally:
            loop.call_soon_threadsafe(loop.stop)
            if thread is not None:
                thread.join(SHUTDOWN_TIMEOUT_SECONDS)
            self._launch_lock = None


_shared: Optional[SharedBrowser] = None
_shared_lock = threading.Lock()


def get_shared_browser(no_sandbox: bool = False) -> SharedBrowser:
    """Return the process-wide browser, creating the handle on first use."""
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = SharedBrowser(no_sandbox=no_sandbox)
        return _shared


def close_shared_browser() -> None:
    global _shared
    with _shared_lock:
        browser = _shared
        _shared = None
    if browser is not None:
        browser.close()
