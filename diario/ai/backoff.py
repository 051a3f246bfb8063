"""Retry logic around a single provider request."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from diario.ai.errors import GenerationError, ModelUnavailableError, PermissionDeniedError, QuotaExhaustedError, RateLimitedError

T = TypeVar("T")
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
  """Bounded exponential backoff settings for one provider request."""

  tries: int = 2
  base_delay: float = 2.0
  max_delay: float = 30.0

  def delay_for(self, attempt: int, *, rate_limited: bool) -> float:
    """Return the wait before retry `attempt + 1`; only rate limits are capped."""
    delay = self.base_delay * (2**attempt)
    if rate_limited:
      return min(self.max_delay, delay)
    return delay


RetryHook = Callable[[int, GenerationError, float], None]


async def retry_with_backoff(func: Callable[[], Awaitable[T]], *, policy: RetryPolicy, operation: str, on_retry: RetryHook | None = None) -> T:
  """
  Execute a provider call with retries for transient errors.

  Quota exhaustion aborts at once since the model is unavailable on this tier.
  Permission and model-not-found failures propagate untouched so the caller
  can invalidate handles or switch models.
  """
  last_error: GenerationError | None = None

  for attempt in range(policy.tries):
    try:
      return await func()
    except (PermissionDeniedError, QuotaExhaustedError, ModelUnavailableError):
      raise
    except GenerationError as exc:
      last_error = exc
      rate_limited = isinstance(exc, RateLimitedError)
      if attempt == policy.tries - 1:
        break
      delay = policy.delay_for(attempt, rate_limited=rate_limited)
      logger.warning("Retry %d/%d for %s after %s; waiting %.1fs", attempt + 1, policy.tries, operation, type(exc).__name__, delay)
      if on_retry is not None:
        on_retry(attempt + 1, exc, delay)
      await asyncio.sleep(delay)

  if last_error is None:
    raise RuntimeError(f"{operation} failed with no exception captured")
  raise last_error
