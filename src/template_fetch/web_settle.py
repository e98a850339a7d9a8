"""Best-effort wait for a client-rendered page to become queryable."""

from __future__ import annotations

from typing import Any

from template_fetch.config import Settings
from template_fetch.web_common import attempt, succeeds

_DOCUMENT_COMPLETE_JS = "() => document.readyState === 'complete'"


async def settle(page: Any, extra_delay_ms: int = 250, *, settings: Settings | None = None) -> None:
    """Wait for DOM ready, network idle and document completion, then pause.

    No single signal is reliable on this UI, so every sub-wait is bounded and
    its failure ignored. Callers must still cope with an unsettled page.
    """
    dom_ms, idle_ms, complete_ms = _timeouts(settings)
    await succeeds(page.wait_for_load_state("domcontentloaded", timeout=dom_ms), label="settle:domcontentloaded")
    await succeeds(page.wait_for_load_state("networkidle", timeout=idle_ms), label="settle:networkidle")
    await succeeds(
        page.wait_for_function(_DOCUMENT_COMPLETE_JS, timeout=complete_ms),
        label="settle:document-complete",
    )
    if extra_delay_ms > 0:
        await attempt(page.wait_for_timeout(extra_delay_ms), label="settle:delay")


def _timeouts(settings: Settings | None) -> tuple[int, int, int]:
    if settings is None:
        return 10000, 6000, 3000
    return (
        settings.dom_ready_timeout_ms,
        settings.network_idle_timeout_ms,
        settings.document_complete_timeout_ms,
    )
