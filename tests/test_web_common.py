import asyncio
import unittest

from template_fetch.web_common import attempt, is_timeout_error, is_valid_url, site_of, succeeds


class UrlValidationTests(unittest.TestCase):
    def test_accepts_absolute_http_and_https(self) -> None:
        self.assertTrue(is_valid_url("https://www.aippt.cn/template/ppt/detail/123.html"))
        self.assertTrue(is_valid_url("http://localhost:3000/x"))

    def test_rejects_relative_and_other_schemes(self) -> None:
        for value in ("", "www.aippt.cn/x", "/detail/1", "ftp://aippt.cn/a", "javascript:alert(1)", "https://"):
            with self.subTest(value=value):
                self.assertFalse(is_valid_url(value))

    def test_site_of_lowercases_host(self) -> None:
        self.assertEqual(site_of("https://WWW.AiPPT.cn/a"), "www.aippt.cn")


class AttemptTests(unittest.IsolatedAsyncioTestCase):
    async def test_returns_result_on_success(self) -> None:
        async def ok() -> int:
            return 7

        self.assertEqual(await attempt(ok(), label="ok"), 7)

    async def test_swallows_errors_and_timeouts(self) -> None:
        async def boom() -> None:
            raise RuntimeError("Timeout 10ms exceeded")

        async def slow() -> None:
            await asyncio.sleep(1)

        self.assertIsNone(await attempt(boom(), label="boom"))
        self.assertIsNone(await attempt(slow(), label="slow", timeout_s=0.01))

    async def test_succeeds_distinguishes_none_results(self) -> None:
        async def returns_none() -> None:
            return None

        async def fails() -> None:
            raise ValueError("nope")

        self.assertTrue(await succeeds(returns_none()))
        self.assertFalse(await succeeds(fails()))

    async def test_cancellation_is_not_swallowed(self) -> None:
        task = asyncio.ensure_future(attempt(asyncio.sleep(5), label="sleep"))
        await asyncio.sleep(0)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task


class TimeoutClassificationTests(unittest.TestCase):
    def test_detects_timeout_errors(self) -> None:
        self.assertTrue(is_timeout_error(asyncio.TimeoutError()))
        self.assertTrue(is_timeout_error(RuntimeError("Timeout 3000ms exceeded.")))
        self.assertFalse(is_timeout_error(RuntimeError("net::ERR_ABORTED")))


if __name__ == "__main__":
    unittest.main()
