"""Browser session manager: one lazily launched Playwright page per process."""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from typing import Any, Callable, Literal, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from exceptions import SessionLaunchError

BrowserType = Literal["chromium", "firefox", "webkit"]

DEFAULT_VIEWPORT_WIDTH = 1280
DEFAULT_VIEWPORT_HEIGHT = 720


class BrowserSession:
    """Owns the driver, browser, context and page as a single unit.

    ``acquire`` launches everything on first use and hands back the same page
    on every later call until ``release`` tears it down again.
    """

    def __init__(
        self,
        browser_type: BrowserType = "chromium",
        headless: bool = True,
        viewport_width: int = DEFAULT_VIEWPORT_WIDTH,
        viewport_height: int = DEFAULT_VIEWPORT_HEIGHT,
        slow_mo: int = 0,
        logger: Optional[logging.Logger] = None,
    ):
        self.browser_type = browser_type
        self.headless = headless
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.slow_mo = slow_mo
        self.logger = logger or logging.getLogger("browser")

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    @property
    def is_live(self) -> bool:
        return self.page is not None

    async def acquire(self) -> Page:
        """Return the live page, launching the browser if there is none yet."""
        if self.page is not None:
            return self.page

        launch_options: dict[str, Any] = {"headless": self.headless}
        if self.slow_mo > 0:
            launch_options["slow_mo"] = self.slow_mo

        try:
            self._playwright = await async_playwright().start()
            browser_launcher = getattr(self._playwright, self.browser_type)
            self.browser = await browser_launcher.launch(**launch_options)
            self.context = await self.browser.new_context(
                viewport={"width": self.viewport_width, "height": self.viewport_height}
            )
            self.page = await self.context.new_page()
        except Exception as e:
            # Leave nothing half-built behind; the caller decides whether to retry.
            await self.release()
            raise SessionLaunchError(
                f"Failed to launch {self.browser_type}: {e}", browser_type=self.browser_type
            ) from e

        self.logger.info(
            f"Browser started: {self.browser_type} (headless={self.headless}, "
            f"viewport={self.viewport_width}x{self.viewport_height})"
        )
        return self.page

    async def release(self) -> None:
        """Close page, context, browser and driver in that order.

        A failure at one layer is logged and does not stop the next layer from
        being closed. Calling this with no live session is a no-op.
        """
        was_started = any(
            handle is not None
            for handle in (self.page, self.context, self.browser, self._playwright)
        )
        layers = (
            ("page", self.page, "close"),
            ("context", self.context, "close"),
            ("browser", self.browser, "close"),
            ("driver", self._playwright, "stop"),
        )
        self.page = None
        self.context = None
        self.browser = None
        self._playwright = None

        for label, handle, method in layers:
            if handle is None:
                continue
            try:
                await getattr(handle, method)()
            except Exception as e:
                self.logger.warning(f"Failed to close {label}: {e}")

        if was_started:
            self.logger.info("Browser closed")


# ─────────────────────────────────────────────────────────────────────────
# Signal-triggered teardown
# ─────────────────────────────────────────────────────────────────────────

# The event loop only holds weak references to tasks.
_shutdown_tasks: set = set()


async def shutdown_on_signal(
    session: BrowserSession,
    signum: int,
    exit_func: Callable[[int], Any] = os._exit,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Release the session and terminate the process."""
    logger = logger or logging.getLogger("browser")
    logger.info(f"Received signal {signum}, closing browser")
    try:
        await session.release()
    finally:
        sys.stdout.flush()
        exit_func(128 + signum)


def install_signal_handlers(
    session: BrowserSession,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    exit_func: Callable[[int], Any] = os._exit,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Tear the session down and exit on SIGINT/SIGTERM."""
    loop = loop or asyncio.get_running_loop()
    logger = logger or logging.getLogger("browser")

    def schedule(signum: int) -> None:
        task = loop.create_task(
            shutdown_on_signal(session, int(signum), exit_func=exit_func, logger=logger)
        )
        _shutdown_tasks.add(task)
        task.add_done_callback(_shutdown_tasks.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, schedule, sig)
        except (NotImplementedError, RuntimeError) as exc:
            logger.debug(f"Signal handler for {sig!r} not installed: {exc}")
