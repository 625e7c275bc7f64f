"""LLM access for classification: Gemini client and rate limiting."""

from eas_system.llm.gemini_client import GeminiClient, RateLimitExceeded, get_client
from eas_system.llm.rate_limiter import RateLimiter, TokenBucket

__all__ = [
    "GeminiClient",
    "RateLimitExceeded",
    "RateLimiter",
    "TokenBucket",
    "get_client",
]
