"""Prompt rendering for lesson diary generation."""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

from diario.ai.pipeline.contracts import NOT_FOUND, LessonRequest

_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z_]+)\}\}")


@lru_cache(maxsize=8)
def _load_prompt(name: str) -> str:
  try:
    path = Path(__file__).parent / "templates" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers in one pass so user text is never re-expanded."""

  def _sub(match: re.Match[str]) -> str:
    key = match.group(1)
    if key not in values:
      raise KeyError(f"Missing prompt value for placeholder '{key}'")
    return values[key]

  return _PLACEHOLDER_RE.sub(_sub, template)


def _json_value(value: str) -> str:
  # Keep accents readable for the model.
  return json.dumps(value, ensure_ascii=False)


SYSTEM_INSTRUCTION = _replace_placeholders(_load_prompt("system_instruction.md"), {"NOT_FOUND": NOT_FOUND})


def build_user_prompt(request: LessonRequest, *, max_selected: int = 3, extended_max_selected: int = 5, extended_hours_threshold: int = 100) -> str:
  """
  Render the extraction prompt for one lesson.

  Pure and deterministic: the rendered text is part of the response cache key,
  so equal requests must produce byte-identical prompts.
  """
  activity = request.activity or ""
  values = {
    "TITLE": request.title,
    "DESCRIPTION": request.description,
    "ACTIVITY": activity,
    "STRATEGY": request.teaching_strategy,
    "COURSE_PLAN": request.course_plan,
    "UNIT": request.curricular_unit,
    "TITLE_JSON": _json_value(request.title),
    "DESCRIPTION_JSON": _json_value(request.description),
    "ACTIVITY_JSON": _json_value(activity),
    "STRATEGY_JSON": _json_value(request.teaching_strategy),
    "COURSE_PLAN_JSON": _json_value(request.course_plan),
    "UNIT_JSON": _json_value(request.curricular_unit),
    "MAX_SELECTED": str(max_selected),
    "EXTENDED_MAX_SELECTED": str(extended_max_selected),
    "HOURS_THRESHOLD": str(extended_hours_threshold),
    "NOT_FOUND": NOT_FOUND,
  }
  return _replace_placeholders(_load_prompt("lesson_diary.md"), values)


def build_truncation_repair_prompt(prompt: str, suspects: Sequence[str]) -> str:
  """Append a mandatory re-extraction block listing the suspect capacities."""
  suspect_lines = "\n".join(f"- {item}" for item in suspects)
  repair_block = _replace_placeholders(_load_prompt("truncation_repair.md"), {"SUSPECTS": suspect_lines})
  return f"{prompt}\n\n{repair_block}"
