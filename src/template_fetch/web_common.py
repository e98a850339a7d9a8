"""Shared helpers for browser-driven modules."""

from __future__ import annotations

import asyncio
import importlib.util
import logging
from typing import Any, Awaitable, TypeVar
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

T = TypeVar("T")


def collapse_ws(value: object) -> str:
    return " ".join(str(value or "").split())


def is_valid_url(text: str) -> bool:
    try:
        parsed = urlparse(str(text or ""))
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def site_of(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def playwright_available() -> bool:
    return importlib.util.find_spec("playwright.async_api") is not None


def is_timeout_error(exc: BaseException) -> bool:
    if isinstance(exc, asyncio.TimeoutError):
        return True
    name = exc.__class__.__name__.lower()
    if "timeout" in name:
        return True
    msg = str(exc).lower()
    return "timeout" in msg and "exceeded" in msg


async def attempt(awaitable: Awaitable[T], *, label: str = "", timeout_s: float | None = None) -> T | None:
    """Await ``awaitable`` and return its result, or ``None`` if it failed.

    This is the single place where best-effort steps swallow their errors.
    Timeouts and engine errors are logged at debug level; cancellation is
    never swallowed.
    """
    try:
        if timeout_s is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout_s)
    except Exception as exc:
        kind = "timed out" if is_timeout_error(exc) else "failed"
        logger.debug("best-effort step %s %s: %s", label or "<unnamed>", kind, collapse_ws(exc)[:200])
        return None


async def succeeds(awaitable: Awaitable[Any], *, label: str = "", timeout_s: float | None = None) -> bool:
    """Like :func:`attempt` for operations whose result is irrelevant."""
    marker = object()

    async def _run() -> object:
        await awaitable
        return marker

    return await attempt(_run(), label=label, timeout_s=timeout_s) is marker
