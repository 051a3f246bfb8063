"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from diario.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_FALLBACK_MODELS: tuple[str, ...] = ("gemini-2.5-flash", "gemini-2.0-flash")


@dataclass(frozen=True)
class Settings:
  """Typed settings for the lesson diary service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_dir: Path
  gemini_api_key: str | None
  ai_enabled: bool
  ai_model_name: str
  ai_fallback_models: tuple[str, ...]
  ai_timeout_ms: int
  ai_max_output_tokens: int
  ai_cache_enabled: bool
  ai_cache_ttl_seconds: float
  ai_cache_max_entries: int
  ai_repair_truncation_enabled: bool
  ai_retry_attempts: int
  ai_retry_base_delay_seconds: float
  ai_retry_max_delay_seconds: float
  ai_model_switch_delay_seconds: float
  file_poll_interval_seconds: float
  file_poll_max_attempts: int
  documents_dir: Path
  resource_store_path: Path
  max_selected_capacities: int
  extended_max_selected_capacities: int
  extended_capacities_hours_threshold: int


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or not raw.strip():
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _parse_int(name: str, default: int, *, minimum: int = 1) -> int:
  raw = os.getenv(name)
  try:
    value = int(raw) if raw is not None and raw.strip() else default
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer.") from exc
  if value < minimum:
    qualifier = "a positive integer" if minimum == 1 else f"an integer >= {minimum}"
    raise ValueError(f"{name} must be {qualifier}.")
  return value


def _parse_seconds(name: str, default: float) -> float:
  raw = os.getenv(name)
  try:
    value = float(raw) if raw is not None and raw.strip() else default
  except ValueError as exc:
    raise ValueError(f"{name} must be a number of seconds.") from exc
  if value < 0:
    raise ValueError(f"{name} must not be negative.")
  return value


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if "*" in origins:
    raise ValueError("DIARIO_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_models(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return DEFAULT_FALLBACK_MODELS
  return tuple(model.strip() for model in raw.split(",") if model.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("DIARIO_ENV", "development").lower()
  debug = _parse_bool(os.getenv("DIARIO_DEBUG"))

  # Accept the legacy variable name used by earlier deployments of the diary tool.
  gemini_api_key = _optional_str(os.getenv("GEMINI_API_KEY")) or _optional_str(os.getenv("GOOGLE_AI_API_KEY"))
  if not gemini_api_key:
    logging.getLogger(__name__).warning("GEMINI_API_KEY is not set; generation calls will fail until it is configured.")

  # Trailing spaces in model names are a common .env mistake ("gemini-2.5-flash ").
  ai_model_name = (os.getenv("DIARIO_AI_MODEL_NAME") or DEFAULT_MODEL).strip()

  max_selected = _parse_int("DIARIO_MAX_SELECTED_CAPACITIES", 3)
  extended_max_selected = _parse_int("DIARIO_EXTENDED_MAX_SELECTED_CAPACITIES", 5)
  if extended_max_selected < max_selected:
    raise ValueError("DIARIO_EXTENDED_MAX_SELECTED_CAPACITIES must be >= DIARIO_MAX_SELECTED_CAPACITIES.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("DIARIO_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=_parse_int("DIARIO_LOG_MAX_BYTES", 5242880),
    log_backup_count=_parse_int("DIARIO_LOG_BACKUP_COUNT", 10, minimum=0),
    log_dir=Path(os.getenv("DIARIO_LOG_DIR", "logs")),
    gemini_api_key=gemini_api_key,
    ai_enabled=_parse_bool(os.getenv("DIARIO_AI_ENABLED")),
    ai_model_name=ai_model_name,
    ai_fallback_models=_parse_models(os.getenv("DIARIO_AI_FALLBACK_MODELS")),
    ai_timeout_ms=_parse_int("DIARIO_AI_TIMEOUT_MS", 60000),
    ai_max_output_tokens=_parse_int("DIARIO_AI_MAX_OUTPUT_TOKENS", 32768),
    ai_cache_enabled=_parse_bool(os.getenv("DIARIO_AI_CACHE_ENABLED"), default=True),
    ai_cache_ttl_seconds=_parse_seconds("DIARIO_AI_CACHE_TTL_SECONDS", 300.0),
    ai_cache_max_entries=_parse_int("DIARIO_AI_CACHE_MAX_ENTRIES", 100),
    ai_repair_truncation_enabled=_parse_bool(os.getenv("DIARIO_AI_REPAIR_TRUNCATION_ENABLED"), default=True),
    ai_retry_attempts=_parse_int("DIARIO_AI_RETRY_ATTEMPTS", 2),
    ai_retry_base_delay_seconds=_parse_seconds("DIARIO_AI_RETRY_BASE_DELAY_SECONDS", 2.0),
    ai_retry_max_delay_seconds=_parse_seconds("DIARIO_AI_RETRY_MAX_DELAY_SECONDS", 30.0),
    ai_model_switch_delay_seconds=_parse_seconds("DIARIO_AI_MODEL_SWITCH_DELAY_SECONDS", 2.0),
    file_poll_interval_seconds=_parse_seconds("DIARIO_FILE_POLL_INTERVAL_SECONDS", 10.0),
    file_poll_max_attempts=_parse_int("DIARIO_FILE_POLL_MAX_ATTEMPTS", 6),
    documents_dir=Path(os.getenv("DIARIO_DOCUMENTS_DIR", "assets/pdfs")),
    resource_store_path=Path(os.getenv("DIARIO_RESOURCE_STORE_PATH", "data/resources.json")),
    max_selected_capacities=max_selected,
    extended_max_selected_capacities=extended_max_selected,
    extended_capacities_hours_threshold=_parse_int("DIARIO_EXTENDED_CAPACITIES_HOURS_THRESHOLD", 100),
  )
