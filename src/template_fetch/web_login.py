"""Login-state detection and password login for aippt.cn."""

from __future__ import annotations

import logging
from typing import Any

from template_fetch.config import Settings
from template_fetch.constants import (
    ACCOUNT_FIELD_SELECTOR,
    LOGIN_REGISTER_LABEL,
    LOGIN_TEXT,
    PASSWORD_FIELD_SELECTOR,
    REGISTER_TEXT,
    SUBMIT_BUTTON_SELECTOR,
    SUBMIT_LABEL,
    SWITCH_TO_PASSWORD_SELECTOR,
)
from template_fetch.errors import AuthenticationError
from template_fetch.web_common import attempt, succeeds
from template_fetch.web_settle import settle

logger = logging.getLogger(__name__)

LOGIN_ENTRY_SELECTOR = f'button:has-text("{LOGIN_REGISTER_LABEL}")'
LOGIN_FALLBACK_SELECTOR = f'button:has-text("{LOGIN_TEXT}")'
SUBMIT_LABELED_SELECTOR = f'{SUBMIT_BUTTON_SELECTOR} span:has-text("{SUBMIT_LABEL}")'


async def find_login_entry(page: Any) -> Any | None:
    exact = page.locator(LOGIN_ENTRY_SELECTOR).first
    if (await attempt(exact.count(), label="login:probe") or 0) > 0:
        return exact
    # Markup drift: any button mentioning both words.
    loose = page.locator(LOGIN_FALLBACK_SELECTOR).filter(has_text=REGISTER_TEXT).first
    if (await attempt(loose.count(), label="login:probe-fallback") or 0) > 0:
        return loose
    return None


async def is_login_required(page: Any) -> bool:
    return await find_login_entry(page) is not None


async def authenticate(page: Any, username: str, password: str, *, settings: Settings | None = None) -> None:
    click_ms = settings.login_click_timeout_ms if settings else 10000
    fill_ms = settings.fill_timeout_ms if settings else 15000

    entry = await find_login_entry(page)
    if entry is not None:
        await succeeds(entry.click(timeout=click_ms), label="login:open-dialog")

    toggle = page.locator(SWITCH_TO_PASSWORD_SELECTOR).first
    if (await attempt(toggle.count(), label="login:toggle-probe") or 0) > 0:
        await succeeds(toggle.click(timeout=click_ms), label="login:switch-to-password")

    try:
        await page.fill(ACCOUNT_FIELD_SELECTOR, username, timeout=fill_ms)
        await page.fill(PASSWORD_FIELD_SELECTOR, password, timeout=fill_ms)
    except Exception as exc:
        raise AuthenticationError(f"Login form credential fields not found: {exc}") from exc

    submit = await _find_submit(page)
    if submit is None:
        raise AuthenticationError("Login submit button not found")
    if not await succeeds(submit.click(timeout=click_ms), label="login:submit"):
        if not await succeeds(submit.click(timeout=click_ms, force=True), label="login:submit-force"):
            raise AuthenticationError("Login submit button could not be clicked")

    idle_ms = settings.initial_idle_timeout_ms if settings else 8000
    await succeeds(page.wait_for_load_state("networkidle", timeout=idle_ms), label="login:networkidle")
    await settle(page, 300, settings=settings)
    logger.info("submitted login form")


async def _find_submit(page: Any) -> Any | None:
    for selector in (SUBMIT_LABELED_SELECTOR, SUBMIT_BUTTON_SELECTOR):
        loc = page.locator(selector).first
        if (await attempt(loc.count(), label="login:submit-probe") or 0) > 0:
            return loc
    return None
