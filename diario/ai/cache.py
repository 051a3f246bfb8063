"""In-memory response cache with TTL and oldest-entry eviction."""

from __future__ import annotations

import hashlib
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from diario.ai.pipeline.contracts import GenerationResult


def cache_key(prompt: str, course_plan: str) -> str:
  """Hash the prompt and course plan into a stable cache key."""
  return hashlib.sha256(f"{prompt}-{course_plan}".encode()).hexdigest()


@dataclass(frozen=True)
class _CacheEntry:
  result: GenerationResult
  stored_at: float


class ResponseCache:
  """Process-local cache of generation results; last writer wins."""

  def __init__(self, *, ttl_seconds: float = 300.0, max_entries: int = 100, clock: Callable[[], float] = time.monotonic) -> None:
    self._ttl_seconds = ttl_seconds
    self._max_entries = max_entries
    self._clock = clock
    self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()

  def __len__(self) -> int:
    return len(self._entries)

  def get(self, key: str) -> GenerationResult | None:
    entry = self._entries.get(key)
    if entry is None:
      return None

    if self._clock() - entry.stored_at >= self._ttl_seconds:
      self._entries.pop(key, None)
      return None

    return entry.result

  def set(self, key: str, result: GenerationResult) -> None:
    # Re-inserting moves the key to the end so eviction order tracks write time.
    self._entries.pop(key, None)
    self._entries[key] = _CacheEntry(result=result, stored_at=self._clock())

    while len(self._entries) > self._max_entries:
      self._entries.popitem(last=False)

  def clear(self) -> None:
    self._entries.clear()
