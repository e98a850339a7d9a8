"""Acquisition entry point: URL in, local template file out."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from template_fetch.artifact import Artifact, materialize
from template_fetch.browser_manager import BrowserManager, get_browser_manager
from template_fetch.config import Settings, load_settings
from template_fetch.constants import SITE_KEY
from template_fetch.errors import (
    BrowserLaunchError,
    ConfigurationError,
    DownloadNotStarted,
    DownloadTriggerNotFound,
    NavigationError,
)
from template_fetch.models import DownloadSignal
from template_fetch.session_store import SessionStore
from template_fetch.web_common import attempt, collapse_ws, is_valid_url, site_of, succeeds
from template_fetch.web_download import trigger_download
from template_fetch.web_login import authenticate, is_login_required
from template_fetch.web_settle import settle

logger = logging.getLogger(__name__)


async def acquire_template(
    target_url: str,
    *,
    headless: bool | None = None,
    slow_mo_ms: int | None = None,
    settings: Settings | None = None,
    manager: BrowserManager | None = None,
    store: SessionStore | None = None,
) -> Artifact:
    """Download the template behind ``target_url`` into a private temp dir.

    The caller owns the returned :class:`Artifact` and must call
    ``release()`` once the file has been consumed.
    """
    if not is_valid_url(target_url):
        raise ConfigurationError(f"Invalid template URL: {target_url!r}")
    settings = (settings or load_settings()).with_overrides(headless=headless, slow_mo_ms=slow_mo_ms)
    manager = manager or get_browser_manager()
    store = store or SessionStore(settings.state_file)

    context, page = await _open_context(manager, store, settings)
    try:
        _attach_console_log(page)
        await _navigate(page, target_url, settings)

        if await is_login_required(page):
            logger.info("login required; authenticating as %s", settings.username)
            await authenticate(page, settings.username, settings.password, settings=settings)
            snapshot = await attempt(context.storage_state(), label="session:snapshot")
            if snapshot:
                await asyncio.to_thread(store.save, SITE_KEY, snapshot)
        else:
            await settle(page, 250, settings=settings)

        signal = await _trigger_with_retries(page, context, settings)
        return await materialize(signal)
    finally:
        await succeeds(context.close(), label="context:close")


async def _open_context(manager: BrowserManager, store: SessionStore, settings: Settings) -> tuple[Any, Any]:
    snapshot = await asyncio.to_thread(store.load, SITE_KEY)
    browser = await manager.acquire(settings.headless, settings.slow_mo_ms)
    try:
        context = await manager.new_context(browser, snapshot)
    except Exception as exc:
        # The shared browser may have crashed between acquisitions.
        logger.warning("context creation failed (%s); re-acquiring browser", collapse_ws(exc)[:200])
        browser = await manager.acquire(settings.headless, settings.slow_mo_ms)
        try:
            context = await manager.new_context(browser, snapshot)
        except Exception as retry_exc:
            raise BrowserLaunchError(f"Browser context creation failed: {collapse_ws(retry_exc)[:300]}") from retry_exc
    try:
        page = await context.new_page()
    except Exception as exc:
        await succeeds(context.close(), label="context:close")
        raise BrowserLaunchError(f"Opening a browser page failed: {collapse_ws(exc)[:300]}") from exc
    return context, page


async def _navigate(page: Any, target_url: str, settings: Settings) -> None:
    logger.info("opening template page on %s", site_of(target_url))
    try:
        await page.goto(target_url, wait_until="domcontentloaded", timeout=settings.navigation_timeout_ms)
    except Exception as exc:
        raise NavigationError(f"Navigation to {target_url} failed: {collapse_ws(exc)[:300]}") from exc
    await succeeds(
        page.wait_for_load_state("networkidle", timeout=settings.initial_idle_timeout_ms),
        label="navigate:networkidle",
    )
    await settle(page, 250, settings=settings)
    await attempt(page.wait_for_timeout(200), label="navigate:pause")


async def _trigger_with_retries(page: Any, context: Any, settings: Settings) -> DownloadSignal:
    attempts = max(1, settings.download_attempts)
    not_found = 0
    for number in range(1, attempts + 1):
        try:
            signal = await trigger_download(page, context, settings=settings)
        except DownloadTriggerNotFound as exc:
            not_found += 1
            signal = None
            logger.info("attempt %d/%d: %s", number, attempts, exc)
        if signal is not None:
            logger.info("attempt %d/%d: download resolved via %s", number, attempts, signal.kind)
            return signal
        if number < attempts:
            await settle(page, 250, settings=settings)
    if not_found == attempts:
        raise DownloadTriggerNotFound(f"No download control found after {attempts} attempts")
    raise DownloadNotStarted(f"Download did not start after {attempts} attempts", attempts=attempts)


def _attach_console_log(page: Any) -> None:
    def on_console(msg: Any) -> None:
        try:
            logger.debug("[page] %s %s", msg.type, msg.text)
        except Exception:
            pass

    try:
        page.on("console", on_console)
    except Exception as exc:
        logger.debug("console hook unavailable: %s", exc)
