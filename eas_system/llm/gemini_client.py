"""Gemini API client with exponential backoff and rate limiting."""

import time
import random
import functools
from typing import Callable, Any, Optional

import google.generativeai as genai
from google.generativeai.types.generation_types import BlockedPromptException
from loguru import logger

from eas_system.config.settings import settings
from eas_system.llm.rate_limiter import RateLimiter


class RateLimitExceeded(RuntimeError):
    """Raised when the local RPM/TPM budget refuses a request."""


def _exponential_backoff(max_retries: int = 3, base_delay: float = 1.0) -> Callable:
    """
    Decorator implementing exponential backoff with jitter for API calls.

    Retries failed requests with exponentially increasing delays
    (factor 2, jitter 0-10% of delay). Blocked prompts and local rate
    limiting are not retried: repeating them cannot succeed.

    A ``timeout`` keyword argument is treated as an overall deadline:
    each attempt receives only the time that remains, and no retry is
    started that could not finish before the deadline.

    Args:
        max_retries: Total attempts before giving up
        base_delay: Delay before the first retry in seconds

    Returns:
        Decorator adding retry logic
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            timeout = kwargs.get("timeout")
            deadline = time.monotonic() + timeout if timeout is not None else None
            for retry in range(max_retries):
                if deadline is not None:
                    kwargs["timeout"] = max(deadline - time.monotonic(), 0.0)
                try:
                    return func(*args, **kwargs)
                except (BlockedPromptException, RateLimitExceeded):
                    raise
                except Exception as e:
                    if retry == max_retries - 1:
                        logger.error(f"Max retries exceeded for {func.__name__}: {e}")
                        raise

                    delay = base_delay * (2 ** retry)
                    jitter = random.uniform(0, delay * 0.1)
                    total_delay = delay + jitter

                    if deadline is not None and time.monotonic() + total_delay >= deadline:
                        logger.warning(f"Deadline reached for {func.__name__}, not retrying: {e}")
                        raise

                    logger.warning(
                        f"Retry {retry + 1}/{max_retries} for {func.__name__} "
                        f"after {total_delay:.2f}s: {e}"
                    )
                    time.sleep(total_delay)

            raise RuntimeError(f"Unexpected retry loop exit in {func.__name__}")

        return wrapper

    return decorator


class GeminiClient:
    """
    Google Gemini API client used for disaster classification.

    Wraps a generative model with exponential backoff for transient
    failures, an optional token-bucket rate limiter, and token counting.

    Attributes:
        model: Configured Gemini generative model instance
        rate_limiter: Optional RPM/TPM limiter consulted before each call
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: API key (defaults to settings)
            model_name: Model identifier (defaults to settings)
            rate_limiter: Limiter to consult before each request

        Raises:
            ValueError: If API key is not configured
        """
        api_key = api_key or settings.gemini_api_key
        if not api_key:
            raise ValueError("GEMINI_API_KEY not configured in environment")

        self.model_name = model_name or settings.gemini_model
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(self.model_name)
        self.rate_limiter = rate_limiter

        logger.info(f"Gemini client initialized with model {self.model_name}")

    @_exponential_backoff(max_retries=3)
    def generate_content(
        self,
        prompt: str,
        temperature: float = 0.1,
        max_output_tokens: int = 1500,
        top_p: float = 0.9,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Generate content from Gemini API with exponential backoff.

        Args:
            prompt: Input prompt for content generation
            temperature: Sampling temperature (0.0-1.0). Lower = more deterministic
            max_output_tokens: Upper bound on response length
            top_p: Nucleus sampling cutoff
            timeout: Overall deadline in seconds across retries; each
                     request is sent with the remaining budget

        Returns:
            Generated text content

        Raises:
            RateLimitExceeded: If the local rate limiter refuses the request
            BlockedPromptException: If prompt violates safety policies
            Exception: For other API errors after retries exhausted
        """
        if self.rate_limiter is not None:
            # Rough estimate: prompt chars / 4 plus the output budget
            estimated = len(prompt) // 4 + max_output_tokens
            if not self.rate_limiter.can_proceed(estimated):
                raise RateLimitExceeded("Gemini request throttled by local rate limiter")

        try:
            response = self.model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=temperature,
                    max_output_tokens=max_output_tokens,
                    top_p=top_p,
                ),
                request_options={"timeout": timeout} if timeout is not None else None,
            )
            return response.text
        except BlockedPromptException as e:
            logger.error(f"Prompt blocked by safety filters: {e}")
            raise

    def count_tokens(self, text: str) -> int:
        """
        Count tokens in text for cost estimation.

        Args:
            text: Text to count tokens in

        Returns:
            Total token count
        """
        result = self.model.count_tokens(text)
        return result.total_tokens


_client: Optional[GeminiClient] = None


def get_client() -> Optional[GeminiClient]:
    """
    Shared client, created on first use.

    Returns None when no API key is configured so callers can fall back
    to keyword classification instead of failing at import time.
    """
    global _client
    if _client is None and settings.gemini_api_key:
        _client = GeminiClient(rate_limiter=RateLimiter())
    return _client
