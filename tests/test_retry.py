from __future__ import annotations

import unittest

from pixelfree.errors import UpstreamError
from pixelfree.retry import RetryConfig, call_with_retries
from pixelfree.upstream_retry import is_retryable_upstream_exception, parse_retry_after


class TestCallWithRetries(unittest.IsolatedAsyncioTestCase):
    async def test_backoff_doubles_and_honors_retry_after(self) -> None:
        cfg = RetryConfig(max_attempts=4, base_delay_seconds=1.0, max_delay_seconds=10.0, jitter_ratio=0.0)
        sleeps: list[float] = []
        failures = [
            UpstreamError("boom", status_code=503),
            UpstreamError("slow down", status_code=429, retry_after=7.0),
            UpstreamError("boom", status_code=500),
        ]

        async def _sleep(seconds: float) -> None:
            sleeps.append(seconds)

        async def _fn() -> str:
            if failures:
                raise failures.pop(0)
            return "ok"

        result = await call_with_retries(
            _fn,
            cfg=cfg,
            is_retryable=is_retryable_upstream_exception,
            operation="test",
            sleep_fn=_sleep,
        )

        self.assertEqual(result, "ok")
        self.assertEqual(sleeps, [1.0, 7.0, 4.0])

    async def test_non_retryable_raises_immediately(self) -> None:
        calls = 0

        async def _fn() -> None:
            nonlocal calls
            calls += 1
            raise UpstreamError("nope", status_code=403)

        async def _sleep(_: float) -> None:
            raise AssertionError("should not sleep")

        with self.assertRaises(UpstreamError):
            await call_with_retries(
                _fn,
                cfg=RetryConfig(),
                is_retryable=is_retryable_upstream_exception,
                operation="test",
                sleep_fn=_sleep,
            )
        self.assertEqual(calls, 1)

    async def test_invalid_config(self) -> None:
        with self.assertRaises(ValueError):
            RetryConfig(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryConfig(jitter_ratio=2.0)


class TestParseRetryAfter(unittest.TestCase):
    def test_seconds_and_garbage(self) -> None:
        self.assertEqual(parse_retry_after("12"), 12.0)
        self.assertEqual(parse_retry_after("-3"), 0.0)
        self.assertIsNone(parse_retry_after(None))
        self.assertIsNone(parse_retry_after("soon"))

    def test_http_date_in_past_is_zero(self) -> None:
        self.assertEqual(parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT"), 0.0)


if __name__ == "__main__":
    unittest.main()
