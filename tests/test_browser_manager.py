import asyncio
import unittest
from unittest.mock import patch

from fake_browser import FakePlaywright, playwright_factory

from template_fetch.browser_manager import BrowserManager, acquire_browser, get_browser_manager
from template_fetch.constants import BROWSER_LAUNCH_ARGS
from template_fetch.errors import BrowserLaunchError


class BrowserManagerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.playwright = FakePlaywright()
        self.manager = BrowserManager(playwright_factory(self.playwright))

    async def test_launches_once_and_reuses(self) -> None:
        first = await self.manager.acquire(headless=True, slow_mo_ms=0)
        second = await self.manager.acquire(headless=True, slow_mo_ms=0)
        self.assertIs(first, second)
        self.assertEqual(self.manager.launch_count, 1)
        call = self.playwright.chromium.launch_calls[0]
        self.assertTrue(call["headless"])
        self.assertEqual(call["args"], list(BROWSER_LAUNCH_ARGS))

    async def test_concurrent_acquires_share_one_launch(self) -> None:
        browsers = await asyncio.gather(*(self.manager.acquire() for _ in range(8)))
        self.assertEqual(len(self.playwright.chromium.launch_calls), 1)
        self.assertTrue(all(b is browsers[0] for b in browsers))

    async def test_disconnect_triggers_relaunch(self) -> None:
        first = await self.manager.acquire()
        first.disconnect()
        self.assertIsNone(self.manager.browser)
        second = await self.manager.acquire()
        self.assertIsNot(first, second)
        self.assertEqual(self.manager.launch_count, 2)

    async def test_silently_dead_browser_is_replaced(self) -> None:
        first = await self.manager.acquire()
        first.connected = False
        second = await self.manager.acquire()
        self.assertIsNot(first, second)

    async def test_launch_failure_reaches_every_waiter_then_retries(self) -> None:
        self.playwright.chromium.fail_next = RuntimeError("Executable doesn't exist")
        results = await asyncio.gather(*(self.manager.acquire() for _ in range(3)), return_exceptions=True)
        self.assertTrue(all(isinstance(r, BrowserLaunchError) for r in results))
        self.assertEqual(len(self.playwright.chromium.launch_calls), 1)
        browser = await self.manager.acquire()
        self.assertTrue(browser.is_connected())
        self.assertEqual(len(self.playwright.chromium.launch_calls), 2)

    async def test_cancelled_waiter_does_not_abort_launch(self) -> None:
        waiter = asyncio.ensure_future(self.manager.acquire())
        other = asyncio.ensure_future(self.manager.acquire())
        await asyncio.sleep(0)
        waiter.cancel()
        browser = await other
        self.assertTrue(browser.is_connected())
        self.assertEqual(self.manager.launch_count, 1)

    async def test_new_context_enables_downloads_and_seeds_state(self) -> None:
        browser = await self.manager.acquire()
        await self.manager.new_context(browser, {"cookies": [{"name": "a"}], "origins": []})
        await self.manager.new_context(browser, None)
        self.assertEqual(browser.contexts[0].kwargs["accept_downloads"], True)
        self.assertIn("storage_state", browser.contexts[0].kwargs)
        self.assertNotIn("storage_state", browser.contexts[1].kwargs)

    async def test_shutdown_closes_browser_and_driver(self) -> None:
        browser = await self.manager.acquire()
        await self.manager.shutdown()
        self.assertTrue(browser.closed)
        self.assertTrue(self.playwright.stopped)
        self.assertIsNone(self.manager.browser)

    async def test_module_level_helpers_share_the_default_manager(self) -> None:
        with patch("template_fetch.browser_manager._DEFAULT_MANAGER", self.manager):
            self.assertIs(get_browser_manager(), self.manager)
            first = await acquire_browser()
            second = await acquire_browser()
        self.assertIs(first, second)
        self.assertEqual(self.manager.launch_count, 1)


if __name__ == "__main__":
    unittest.main()
