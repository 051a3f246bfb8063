"""Local .env support for the diary service."""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILE_VARIABLE = "DIARIO_ENV_FILE"


def default_env_path() -> Path:
  """Return DIARIO_ENV_FILE when set, else the .env beside pyproject.toml."""
  override = os.getenv(ENV_FILE_VARIABLE, "").strip()
  if override:
    return Path(override).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def _parse_value(raw: str) -> str:
  value = raw.strip()
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    return value[1:-1]
  # Unquoted values may carry a trailing "# comment".
  comment_at = value.find(" #")
  if comment_at != -1:
    value = value[:comment_at].rstrip()
  return value


def parse_env_file(path: Path) -> dict[str, str]:
  """Read KEY=value pairs; blank lines, comments and malformed lines are skipped."""
  if not path.is_file():
    return {}

  values: dict[str, str] = {}
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    line = line.removeprefix("export ").lstrip()
    key, sep, raw_value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    values[key] = _parse_value(raw_value)
  return values


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Apply a .env file to os.environ and return the keys that were set."""
  applied: list[str] = []
  for key, value in parse_env_file(path).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    applied.append(key)
  return applied
