"""Download trigger engine: find the download control, click it, race the outcomes."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any

from template_fetch.config import Settings
from template_fetch.constants import (
    ATTACHMENT_RE,
    DOWNLOAD_CLASS_FALLBACKS,
    DOWNLOAD_LABEL,
    DOWNLOAD_TRACK_ATTRIBUTE,
    FILE_URL_RE,
)
from template_fetch.errors import DownloadTriggerNotFound
from template_fetch.models import DownloadSignal, NativeDownload, NetworkResponse, PopupNavigatedDownload
from template_fetch.web_common import attempt, succeeds
from template_fetch.web_settle import settle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorRule:
    tag: str = "button"
    attribute: tuple[str, str] | None = None
    text: str = ""
    css_class: str = ""

    @property
    def css(self) -> str:
        out = self.tag
        if self.css_class:
            out += f".{self.css_class}"
        if self.attribute:
            name, value = self.attribute
            out += f'[{name}="{value}"]'
        return out

    @property
    def selector(self) -> str:
        if not self.text:
            return self.css
        escaped = self.text.replace('"', '\\"')
        return f'{self.css}:has-text("{escaped}")'


DOWNLOAD_RULES: tuple[SelectorRule, ...] = (
    SelectorRule("button", attribute=DOWNLOAD_TRACK_ATTRIBUTE, text=DOWNLOAD_LABEL),
    SelectorRule("button", attribute=DOWNLOAD_TRACK_ATTRIBUTE),
    SelectorRule("button", text=DOWNLOAD_LABEL),
    SelectorRule("a", text=DOWNLOAD_LABEL),
    *(SelectorRule("button", css_class=cls) for cls in DOWNLOAD_CLASS_FALLBACKS),
)

POPUP_DOWNLOAD_SELECTOR = ", ".join(rule.selector for rule in DOWNLOAD_RULES if rule.text)

_CLICK_BY_QUERY_JS = """
({ selectors, label }) => {
  for (const s of selectors) {
    const el = document.querySelector(s);
    if (el && (el.textContent || '').includes(label)) {
      el.scrollIntoView({ block: 'center' });
      el.click();
      return true;
    }
  }
  return false;
}
"""


class TriggerState(enum.Enum):
    SEARCHING = "searching"
    CLICKED = "clicked"
    AWAITING_SIGNAL = "awaiting_signal"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"


def is_file_response(response: Any) -> bool:
    try:
        headers = response.headers or {}
        disposition = headers.get("content-disposition") or headers.get("Content-Disposition") or ""
        if disposition and ATTACHMENT_RE.search(disposition):
            return True
        return bool(FILE_URL_RE.search(str(response.url or "")))
    except Exception:
        return False


class DownloadTrigger:
    """One click-and-wait round against a page.

    ``run`` returns the first realized :data:`DownloadSignal`, ``None`` when
    the click happened but nothing arrived in time, and raises
    :class:`DownloadTriggerNotFound` when no control could be clicked.
    """

    def __init__(
        self,
        page: Any,
        context: Any,
        *,
        settings: Settings | None = None,
        rules: tuple[SelectorRule, ...] = DOWNLOAD_RULES,
        label: str = DOWNLOAD_LABEL,
    ) -> None:
        self.page = page
        self.context = context
        self.settings = settings
        self.rules = tuple(rules)
        self.label = label
        self.state = TriggerState.SEARCHING
        self.selector_used = ""
        self.history: list[TriggerState] = [self.state]

    @property
    def listener_timeout_ms(self) -> int:
        return self.settings.listener_timeout_ms if self.settings else 60000

    @property
    def click_timeout_ms(self) -> int:
        return self.settings.click_timeout_ms if self.settings else 15000

    @property
    def visible_timeout_ms(self) -> int:
        return self.settings.visible_timeout_ms if self.settings else 15000

    async def run(self) -> DownloadSignal | None:
        listeners = self._arm_listeners()
        try:
            # Let every listener register before anything can fire.
            await asyncio.sleep(0)
            await settle(self.page, 150, settings=self.settings)
            self.selector_used = await self._click_control()
            self._transition(TriggerState.CLICKED)
            post_click_ms = self.settings.post_click_wait_ms if self.settings else 250
            await attempt(self.page.wait_for_timeout(post_click_ms), label="download:post-click")
            self._transition(TriggerState.AWAITING_SIGNAL)
            signal = await self._resolve(listeners)
        finally:
            for task in listeners.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*listeners.values(), return_exceptions=True)
        self._transition(TriggerState.RESOLVED if signal is not None else TriggerState.TIMED_OUT)
        return signal

    def _transition(self, state: TriggerState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("download trigger -> %s", state.value)

    def _arm_listeners(self) -> dict[str, asyncio.Task[Any]]:
        timeout = self.listener_timeout_ms
        return {
            "download": asyncio.ensure_future(
                attempt(self.page.wait_for_event("download", timeout=timeout), label="listen:download")
            ),
            "popup": asyncio.ensure_future(
                attempt(self.context.wait_for_event("page", timeout=timeout), label="listen:popup")
            ),
            "response": asyncio.ensure_future(
                attempt(
                    self.page.wait_for_event("response", predicate=is_file_response, timeout=timeout),
                    label="listen:response",
                )
            ),
        }

    async def _click_control(self) -> str:
        for rule in self.rules:
            loc = self.page.locator(rule.selector).first
            if (await attempt(loc.count(), label=f"probe {rule.selector}") or 0) <= 0:
                continue
            await succeeds(loc.scroll_into_view_if_needed(timeout=self.click_timeout_ms), label="scroll")
            await succeeds(loc.wait_for(state="visible", timeout=self.visible_timeout_ms), label="visible")
            if await succeeds(loc.click(timeout=self.click_timeout_ms), label=f"click {rule.selector}"):
                logger.info("clicked download control %s", rule.selector)
                return rule.selector
            if await succeeds(
                loc.click(timeout=self.click_timeout_ms, force=True), label=f"force-click {rule.selector}"
            ):
                logger.info("force-clicked download control %s", rule.selector)
                return rule.selector

        query_selectors = [rule.css for rule in self.rules if not rule.text]
        clicked = await attempt(
            self.page.evaluate(_CLICK_BY_QUERY_JS, {"selectors": query_selectors, "label": self.label}),
            label="download:script-click",
        )
        if clicked:
            logger.info("clicked download control via document query")
            return "script:" + ", ".join(query_selectors)
        raise DownloadTriggerNotFound(
            f'No "{self.label}" download control found',
            tried=tuple(rule.selector for rule in self.rules),
        )

    async def _resolve(self, listeners: dict[str, asyncio.Task[Any]]) -> DownloadSignal | None:
        popup_followed = False
        while True:
            download = _fired(listeners["download"])
            if download is not None:
                return NativeDownload(download)

            popup = _fired(listeners["popup"])
            if popup is not None and not popup_followed:
                popup_followed = True
                nested = await self._follow_popup(popup)
                if nested is not None:
                    return PopupNavigatedDownload(nested)
                continue

            # A file response is only a fallback: stray .pdf/.zip requests and
            # attachment responses both arrive before the download event.
            if listeners["download"].done() and listeners["popup"].done():
                return await self._response_signal(listeners["response"])

            pending = {task for task in listeners.values() if not task.done()}
            await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

    async def _response_signal(self, task: asyncio.Task[Any]) -> NetworkResponse | None:
        response = await task
        if response is None:
            return None
        body = await attempt(response.body(), label="download:response-body")
        if body is None:
            return None
        return NetworkResponse(url=str(response.url), headers=dict(response.headers or {}), body=body)

    async def _follow_popup(self, popup: Any) -> Any | None:
        logger.info("download opened a popup: %s", getattr(popup, "url", ""))
        timeout = self.listener_timeout_ms
        await succeeds(popup.wait_for_load_state("domcontentloaded"), label="popup:domcontentloaded")
        nested = await attempt(popup.wait_for_event("download", timeout=timeout), label="popup:download")
        if nested is not None:
            return nested
        control = popup.locator(POPUP_DOWNLOAD_SELECTOR).first
        if (await attempt(control.count(), label="popup:probe") or 0) <= 0:
            return None
        waiter = asyncio.ensure_future(
            attempt(popup.wait_for_event("download", timeout=timeout), label="popup:download-after-click")
        )
        await asyncio.sleep(0)
        await succeeds(control.click(timeout=self.click_timeout_ms), label="popup:click")
        return await waiter


def _fired(task: asyncio.Task[Any]) -> Any | None:
    if not task.done() or task.cancelled():
        return None
    return task.result()


async def trigger_download(page: Any, context: Any, *, settings: Settings | None = None) -> DownloadSignal | None:
    return await DownloadTrigger(page, context, settings=settings).run()
