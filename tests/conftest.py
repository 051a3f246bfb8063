"""Shared fixtures: settings, placeholder documents and a wired orchestrator."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from diario.ai.backoff import RetryPolicy
from diario.ai.cache import ResponseCache
from diario.ai.orchestrator import GenerationOrchestrator
from diario.config import Settings
from diario.services.resources import ResourceRegistry
from diario.storage.resource_store import ResourceStore
from tests.fakes import TEST_CATALOG, FakeModelClient


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
  """Build Settings with zero delays, rooted in tmp_path."""
  base = Settings(
    environment="test",
    allowed_origins=("http://localhost:3000",),
    debug=False,
    log_max_bytes=1024,
    log_backup_count=1,
    log_dir=tmp_path / "logs",
    gemini_api_key="test-key",
    ai_enabled=True,
    ai_model_name="gemini-2.5-flash",
    ai_fallback_models=("gemini-2.5-flash", "gemini-2.0-flash"),
    ai_timeout_ms=1000,
    ai_max_output_tokens=32768,
    ai_cache_enabled=True,
    ai_cache_ttl_seconds=300.0,
    ai_cache_max_entries=100,
    ai_repair_truncation_enabled=False,
    ai_retry_attempts=2,
    ai_retry_base_delay_seconds=0.0,
    ai_retry_max_delay_seconds=0.0,
    ai_model_switch_delay_seconds=0.0,
    file_poll_interval_seconds=0.0,
    file_poll_max_attempts=3,
    documents_dir=tmp_path / "pdfs",
    resource_store_path=tmp_path / "data" / "resources.json",
    max_selected_capacities=3,
    extended_max_selected_capacities=5,
    extended_capacities_hours_threshold=100,
  )

  def _factory(**overrides: Any) -> Settings:
    return dataclasses.replace(base, **overrides)

  return _factory


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
  return settings_factory()


@pytest.fixture
def documents_dir(settings: Settings) -> Path:
  """Create placeholder PDFs for the test catalog."""
  settings.documents_dir.mkdir(parents=True, exist_ok=True)
  for spec in TEST_CATALOG:
    (settings.documents_dir / spec.file_name).write_bytes(b"%PDF-1.4 test")
  return settings.documents_dir


@pytest.fixture
def make_orchestrator(documents_dir: Path) -> Callable[..., GenerationOrchestrator]:
  """Wire an orchestrator around a fake client with the test catalog."""

  def _make(settings: Settings, client: FakeModelClient) -> GenerationOrchestrator:
    registry = ResourceRegistry(ResourceStore(settings.resource_store_path), client, poll_interval_seconds=0.0, max_poll_attempts=settings.file_poll_max_attempts)
    cache = ResponseCache(ttl_seconds=settings.ai_cache_ttl_seconds, max_entries=settings.ai_cache_max_entries)
    return GenerationOrchestrator(settings, client, registry, cache, catalog=TEST_CATALOG, repair_policy=RetryPolicy(tries=1, base_delay=0.0, max_delay=0.0))

  return _make
