"""Process-wide shared Chromium instance with single-flight launch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from template_fetch.constants import BROWSER_LAUNCH_ARGS
from template_fetch.errors import BrowserLaunchError
from template_fetch.web_common import collapse_ws

logger = logging.getLogger(__name__)

PlaywrightFactory = Callable[[], Awaitable[Any]]


async def _start_playwright() -> Any:
    from playwright.async_api import async_playwright

    return await async_playwright().start()


class BrowserManager:
    """Owns the one browser process shared by every acquisition.

    Callers never close the browser. Concurrent ``acquire`` calls made while a
    launch is in flight all await that same launch. A ``disconnected`` event
    drops the cached instance so the next call relaunches.
    """

    def __init__(
        self,
        playwright_factory: PlaywrightFactory = _start_playwright,
        *,
        launch_args: tuple[str, ...] = BROWSER_LAUNCH_ARGS,
    ) -> None:
        self._playwright_factory = playwright_factory
        self._launch_args = tuple(launch_args)
        self._playwright: Any | None = None
        self._browser: Any | None = None
        self._pending: asyncio.Task[Any] | None = None
        self.launch_count = 0

    @property
    def browser(self) -> Any | None:
        return self._browser

    def is_alive(self) -> bool:
        browser = self._browser
        if browser is None:
            return False
        try:
            return bool(browser.is_connected())
        except Exception:
            return False

    async def acquire(self, headless: bool = True, slow_mo_ms: int = 0) -> Any:
        if self.is_alive():
            return self._browser
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._launch(headless, slow_mo_ms))
        # Shielded so a cancelled waiter does not abort the launch for the others.
        return await asyncio.shield(self._pending)

    async def new_context(self, browser: Any, storage_state: dict[str, Any] | None = None) -> Any:
        kwargs: dict[str, Any] = {"accept_downloads": True}
        if storage_state:
            kwargs["storage_state"] = storage_state
        return await browser.new_context(**kwargs)

    async def shutdown(self) -> None:
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:
                logger.debug("browser close failed: %s", exc)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as exc:
                logger.debug("playwright stop failed: %s", exc)

    async def _launch(self, headless: bool, slow_mo_ms: int) -> Any:
        try:
            if self._playwright is None:
                self._playwright = await self._playwright_factory()
            self.launch_count += 1
            logger.info("launching chromium (headless=%s, slow_mo=%sms)", headless, slow_mo_ms)
            browser = await self._playwright.chromium.launch(
                headless=headless,
                slow_mo=max(0, int(slow_mo_ms or 0)),
                args=list(self._launch_args),
            )
        except Exception as exc:
            raise BrowserLaunchError(f"Browser launch failed: {collapse_ws(exc)[:300]}") from exc
        finally:
            self._pending = None
        try:
            browser.on("disconnected", self._on_disconnected)
        except Exception as exc:
            logger.debug("could not watch browser disconnects: %s", exc)
        self._browser = browser
        return browser

    def _on_disconnected(self, browser: Any = None) -> None:
        if browser is None or browser is self._browser:
            logger.warning("shared browser disconnected; next acquisition relaunches")
            self._browser = None


_DEFAULT_MANAGER: BrowserManager | None = None


def get_browser_manager() -> BrowserManager:
    global _DEFAULT_MANAGER
    if _DEFAULT_MANAGER is None:
        _DEFAULT_MANAGER = BrowserManager()
    return _DEFAULT_MANAGER


async def acquire_browser(headless: bool = True, slow_mo_ms: int = 0) -> Any:
    return await get_browser_manager().acquire(headless, slow_mo_ms)
