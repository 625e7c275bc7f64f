"""Tests for the token bucket rate limiter."""

import pytest

from eas_system.llm.rate_limiter import RateLimiter, TokenBucket


class TestTokenBucket:
    """Token bucket behaviour."""

    def test_starts_full(self):
        bucket = TokenBucket(capacity=5, refill_rate=0.0)
        assert bucket.available() == 5

    def test_acquire_until_empty(self):
        bucket = TokenBucket(capacity=2, refill_rate=0.0)
        assert bucket.acquire() is True
        assert bucket.acquire() is True
        assert bucket.acquire() is False

    def test_acquire_more_than_available(self):
        bucket = TokenBucket(capacity=10, refill_rate=0.0)
        assert bucket.acquire(11) is False
        assert bucket.available() == 10

    def test_refill_over_time(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr("eas_system.llm.rate_limiter.time.monotonic", lambda: clock[0])

        bucket = TokenBucket(capacity=4, refill_rate=1.0)
        assert bucket.acquire(4) is True
        clock[0] += 2.5

        assert bucket.available() == pytest.approx(2.5)
        clock[0] += 100
        assert bucket.available() == 4

    def test_refund_capped_at_capacity(self):
        bucket = TokenBucket(capacity=3, refill_rate=0.0)
        bucket.acquire(1)
        bucket.refund(5)
        assert bucket.available() == 3


class TestRateLimiter:
    """RPM and TPM together."""

    def test_within_budget(self):
        limiter = RateLimiter(max_rpm=2, max_tpm=1000)
        assert limiter.can_proceed(400) is True
        status = limiter.get_status()
        assert status["requests_available"] == 1
        assert status["tokens_available"] == 600

    def test_rpm_exhausted(self):
        limiter = RateLimiter(max_rpm=1, max_tpm=1000)
        assert limiter.can_proceed(10) is True
        assert limiter.can_proceed(10) is False

    def test_tpm_refusal_refunds_request(self):
        limiter = RateLimiter(max_rpm=5, max_tpm=100)

        assert limiter.can_proceed(500) is False

        status = limiter.get_status()
        assert status["requests_available"] == 5
        assert status["tokens_available"] == 100

    def test_defaults_from_settings(self):
        limiter = RateLimiter()
        assert limiter.get_status()["requests_capacity"] == 15
