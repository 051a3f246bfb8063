"""Defensive JSON parsing for model responses, with truncation repair."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from diario.ai.errors import ResponseParseError, ResponseTruncatedError
from diario.ai.pipeline.contracts import CAPACITY_FIELDS, NOT_FOUND, STRING_FIELDS, GenerationResult

logger = logging.getLogger(__name__)

TRUNCATION_REPAIRED_NOTE = "Resposta da IA foi truncada e reparada automaticamente. Alguns dados podem estar incompletos."
MISSING_FIELDS_NOTE = "Campos ausentes na resposta truncada foram preenchidos com valores vazios: {fields}."

_LEADING_FENCE_RE = re.compile(r"^```[A-Za-z]*\s*")
_TRAILING_FENCE_RE = re.compile(r"\s*```$")
_TRAILING_COMMA_RE = re.compile(r",\s*$")


def strip_json_fences(text: str) -> str:
  """Remove a markdown code fence wrapped around the payload."""
  cleaned = text.strip()
  cleaned = _LEADING_FENCE_RE.sub("", cleaned)
  return _TRAILING_FENCE_RE.sub("", cleaned)


def extract_json_object(text: str) -> str:
  """Return the span from the first `{` through the last `}`, or the text as-is."""
  start = text.find("{")
  if start == -1:
    return text

  end = text.rfind("}")
  if end > start:
    return text[start : end + 1]

  return text[start:]


def repair_truncated_json(text: str) -> str | None:
  """
  Balance a JSON object that was cut off mid-stream.

  Closes an unterminated string (or drops an array element cut right after its
  opening quote), drops a dangling trailing comma, then appends the closers
  still open in nesting order. Returns None when there is nothing
  to repair or the brackets are mismatched.
  """
  start = text.find("{")
  if start == -1:
    return None

  candidate = text[start:].rstrip()
  closers: list[str] = []
  in_string = False
  escape = False
  string_start = -1

  # Track nesting only outside string literals, honoring escapes.
  for index, char in enumerate(candidate):
    if in_string:
      if escape:
        escape = False
        continue

      if char == "\\":
        escape = True
        continue

      if char == '"':
        in_string = False

      continue

    if char == '"':
      in_string = True
      string_start = index
      continue

    if char == "{":
      closers.append("}")
      continue

    if char == "[":
      closers.append("]")
      continue

    if char in "}]":
      if not closers or closers[-1] != char:
        return None
      closers.pop()

  repaired = candidate

  if in_string and closers and closers[-1] == "]" and not candidate[string_start + 1 :].strip("\\"):
    # An array element cut at its opening quote is dropped, never closed as "".
    repaired = candidate[:string_start].rstrip()
  elif in_string:
    # A lone trailing backslash would escape the quote we are about to add.
    if escape:
      repaired = repaired[:-1]
    repaired += '"'

  repaired = _TRAILING_COMMA_RE.sub("", repaired)
  repaired += "".join(reversed(closers))

  if repaired == candidate:
    return None

  return repaired


def _fill_missing_fields(payload: dict[str, Any]) -> list[str]:
  """Default fields a truncated payload never reached; returns the filled keys."""
  missing: list[str] = []

  for key in STRING_FIELDS:
    if key not in payload:
      payload[key] = ""
      missing.append(key)

  for key in CAPACITY_FIELDS:
    if key not in payload:
      payload[key] = NOT_FOUND
      missing.append(key)

  return missing


def _try_repair(cleaned: str) -> GenerationResult | None:
  """Attempt the mechanical repair pass; None when it cannot produce a valid record."""
  repaired_text = repair_truncated_json(cleaned)
  if repaired_text is None:
    return None

  try:
    payload = json.loads(repaired_text)
  except json.JSONDecodeError as exc:
    logger.info("Truncation repair did not yield valid JSON: %s", exc)
    return None

  if not isinstance(payload, dict):
    return None

  missing = _fill_missing_fields(payload)

  try:
    result = GenerationResult.model_validate(payload)
  except ValidationError as exc:
    logger.info("Repaired payload failed schema validation: %s", exc.error_count())
    return None

  notes = [TRUNCATION_REPAIRED_NOTE]
  if missing:
    notes.append(MISSING_FIELDS_NOTE.format(fields=", ".join(missing)))

  logger.warning("Truncated JSON repaired (response may be incomplete); missing_fields=%s", missing)
  return result.with_observations(*notes)


def _is_truncation(exc: json.JSONDecodeError) -> bool:
  """Detect unterminated tokens or an unexpected end of input."""
  if exc.msg.startswith("Unterminated"):
    return True
  return exc.pos >= len(exc.doc.rstrip())


def parse_generation_result(raw_text: str) -> GenerationResult:
  """Parse raw model output into a validated GenerationResult."""
  cleaned = strip_json_fences(raw_text)
  block = extract_json_object(cleaned)

  # Prefer strict parsing so valid output is preserved without mutation.
  try:
    return GenerationResult.model_validate(json.loads(block))
  except json.JSONDecodeError as exc:
    first_error: json.JSONDecodeError | ValidationError = exc
  except ValidationError as exc:
    first_error = exc

  repaired = _try_repair(cleaned)
  if repaired is not None:
    return repaired

  logger.error("Failed to parse model JSON (%d chars); head=%r", len(raw_text), raw_text[:500])

  if isinstance(first_error, json.JSONDecodeError):
    if _is_truncation(first_error):
      raise ResponseTruncatedError(f"JSON_TRUNCATED: response cut off at char {first_error.pos} of {len(raw_text)}: {first_error.msg}", offset=first_error.pos, length=len(raw_text)) from first_error
    raise ResponseParseError(f"Invalid JSON at char {first_error.pos} of {len(raw_text)}: {first_error.msg}", offset=first_error.pos, length=len(raw_text)) from first_error

  raise ResponseParseError(f"Response JSON does not match the output contract ({first_error.error_count()} errors)", offset=len(block), length=len(raw_text)) from first_error
