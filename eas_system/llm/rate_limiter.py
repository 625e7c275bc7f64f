"""Token bucket rate limiter for LLM request throttling."""

import time
import threading
from typing import Optional

from loguru import logger


class TokenBucket:
    """
    Token bucket algorithm implementation for rate limiting.

    Tokens refill continuously at a fixed rate. Requests consume tokens.
    If insufficient tokens are available, the request is rejected and the
    caller falls back rather than waiting.

    Attributes:
        capacity: Maximum number of tokens the bucket can hold
        refill_rate: Tokens added per second
        tokens: Current number of tokens available
        last_refill: Monotonic timestamp of last token refill
        lock: Thread lock; classification calls run in worker threads
    """

    def __init__(self, capacity: int, refill_rate: float):
        """
        Initialize token bucket with capacity and refill rate.

        Args:
            capacity: Maximum tokens (e.g., 15 for 15 RPM)
            refill_rate: Tokens per second (e.g., 0.25 = 15 per minute)
        """
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self.last_refill = time.monotonic()
        self.lock = threading.Lock()

        logger.debug(
            f"TokenBucket initialized: capacity={capacity}, "
            f"refill_rate={refill_rate}/s"
        )

    def _refill(self) -> None:
        """Bring the token count up to date. Caller holds the lock."""
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def available(self) -> float:
        with self.lock:
            self._refill()
            return self.tokens

    def acquire(self, tokens: int = 1) -> bool:
        """
        Attempt to acquire tokens from the bucket (thread-safe).

        Args:
            tokens: Number of tokens to acquire

        Returns:
            True if tokens were acquired, False if insufficient tokens available
        """
        with self.lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                logger.debug(f"Acquired {tokens} tokens, {self.tokens:.2f} remaining")
                return True

            logger.debug(f"Insufficient tokens: {self.tokens:.2f} < {tokens}")
            return False

    def refund(self, tokens: int) -> None:
        with self.lock:
            self.tokens = min(self.capacity, self.tokens + tokens)


class RateLimiter:
    """
    Multi-dimensional rate limiter using token buckets.

    Enforces both requests-per-minute (RPM) and tokens-per-minute (TPM)
    limits for the classification model. A throttled request is treated
    by the classifier like any other model failure.

    Attributes:
        rpm_bucket: Token bucket for request rate limiting
        tpm_bucket: Token bucket for token rate limiting
    """

    def __init__(
        self,
        max_rpm: Optional[int] = None,
        max_tpm: Optional[int] = None
    ):
        """
        Initialize rate limiter with RPM and TPM constraints.

        Args:
            max_rpm: Maximum requests per minute (defaults to settings)
            max_tpm: Maximum tokens per minute (defaults to settings)
        """
        from eas_system.config.settings import settings

        rpm = max_rpm or settings.max_rpm
        tpm = max_tpm or settings.max_tpm

        self.rpm_bucket = TokenBucket(capacity=rpm, refill_rate=rpm / 60.0)
        self.tpm_bucket = TokenBucket(capacity=tpm, refill_rate=tpm / 60.0)

        logger.info(f"RateLimiter initialized: {rpm} RPM, {tpm:,} TPM")

    def can_proceed(self, token_count: int) -> bool:
        """
        Consume one request and token_count tokens if both budgets allow.

        Nothing is consumed when either bucket is short.

        Args:
            token_count: Number of tokens the request will consume

        Returns:
            True if request can proceed, False if rate limited
        """
        if not self.rpm_bucket.acquire(1):
            logger.warning("RPM limit reached, request throttled")
            return False

        if not self.tpm_bucket.acquire(token_count):
            self.rpm_bucket.refund(1)
            logger.warning(
                f"TPM limit reached, request throttled "
                f"(need {token_count}, have {self.tpm_bucket.available():.0f})"
            )
            return False

        return True

    def get_status(self) -> dict:
        """Remaining request and token budget."""
        return {
            "requests_available": int(self.rpm_bucket.available()),
            "requests_capacity": self.rpm_bucket.capacity,
            "tokens_available": int(self.tpm_bucket.available()),
            "tokens_capacity": self.tpm_bucket.capacity,
        }
