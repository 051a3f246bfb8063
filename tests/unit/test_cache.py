"""Response cache behavior."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from diario.ai.cache import ResponseCache, cache_key
from diario.ai.json_parser import parse_generation_result
from tests.fakes import diary_payload


class _Clock:
  def __init__(self) -> None:
    self.now = 0.0

  def __call__(self) -> float:
    return self.now


def test_cache_key_depends_on_prompt_and_course_plan() -> None:
  assert cache_key("p", "Curso X") == cache_key("p", "Curso X")
  assert cache_key("p", "Curso X") != cache_key("p", "Curso Y")
  assert cache_key("p", "Curso X") != cache_key("q", "Curso X")
  assert len(cache_key("p", "Curso X")) == 64


def test_entries_expire_after_ttl() -> None:
  clock = _Clock()
  cache = ResponseCache(ttl_seconds=10, clock=clock)
  result = parse_generation_result(diary_payload())
  cache.set("k", result)

  clock.now = 9.9
  assert cache.get("k") is result

  clock.now = 10.0
  assert cache.get("k") is None
  assert len(cache) == 0


def test_oldest_entry_is_evicted() -> None:
  cache = ResponseCache(max_entries=2)
  result = parse_generation_result(diary_payload())
  cache.set("a", result)
  cache.set("b", result)
  cache.set("a", result)
  cache.set("c", result)

  assert cache.get("b") is None
  assert cache.get("a") is result
  assert cache.get("c") is result


def test_clear_empties_cache() -> None:
  cache = ResponseCache()
  cache.set("a", parse_generation_result(diary_payload()))
  cache.clear()
  assert len(cache) == 0


def test_cached_result_cannot_be_reassigned() -> None:
  cache = ResponseCache()
  cache.set("a", parse_generation_result(diary_payload()))

  hit = cache.get("a")
  with pytest.raises(ValidationError):
    hit.title = "Outro título"

  annotated = hit.with_observations("nota")
  assert annotated.observations == ["nota"]
  assert cache.get("a").observations == []
