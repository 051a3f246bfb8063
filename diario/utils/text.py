"""Text normalization helpers for fuzzy document lookups."""

from __future__ import annotations

import unicodedata


def normalize(text: str | None) -> str:
  """Lowercase, trim, and strip diacritics so "Informática" matches "informatica"."""
  decomposed = unicodedata.normalize("NFD", text or "")
  stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
  return stripped.lower().strip()
