"""Post-processing checks that keep extracted capacity lists coherent."""

from __future__ import annotations

import re

from diario.ai.pipeline.contracts import GenerationResult

SUSPECT_TRUNCATION_NOTE = "Uma ou mais capacidades parecem truncadas (ex.: terminam com preposição ou sem pontuação). Verifique se o PDF possui quebra de página/linha nessa seção."
SUBSET_CORRECTION_NOTE = "Ajuste automático: removidas capacidades não presentes em 'capacidadesUC_todas' (verbatim)."
INVENTED_SELECTION_NOTE = "Inconsistência: 'capacidadesUC_selecionadas' preenchidas sem 'capacidadesUC_todas'. Verificar PDFs/UC informada."

_TRAILING_PREPOSITION_RE = re.compile(r"(?:^|\s)(?:por meio|por|para|com|de|em|através de|via)$", re.IGNORECASE)
_TERMINAL_PUNCTUATION = (".", "!", "?", "…")


def looks_truncated(capacity: str) -> bool:
  """Flag capacities that end on a dangling preposition or without final punctuation."""
  text = capacity.strip()
  if _TRAILING_PREPOSITION_RE.search(text):
    return True
  return not text.endswith(_TERMINAL_PUNCTUATION)


def find_suspect_capacities(capacities: list[str] | str) -> list[str]:
  """Return the capacities that look cut off; the not-found sentinel has none."""
  if not isinstance(capacities, list):
    return []
  return [capacity for capacity in capacities if looks_truncated(capacity)]


def restrict_selection(result: GenerationResult) -> GenerationResult:
  """Drop selected capacities that are not verbatim members of the full list."""
  if not isinstance(result.all_capacities, list) or not isinstance(result.selected_capacities, list):
    return result

  known = {capacity.strip() for capacity in result.all_capacities}
  kept = [capacity for capacity in result.selected_capacities if capacity.strip() in known]
  if len(kept) == len(result.selected_capacities):
    return result

  corrected = result.model_copy(update={"selected_capacities": kept})
  return corrected.with_observations(SUBSET_CORRECTION_NOTE)


def enforce_consistency(result: GenerationResult) -> GenerationResult:
  """Apply truncation, subset, and invention checks; never raises."""
  notes: list[str] = []

  if find_suspect_capacities(result.all_capacities):
    notes.append(SUSPECT_TRUNCATION_NOTE)

  checked = restrict_selection(result)

  # Selected items without a verified source list are probably invented.
  if isinstance(checked.selected_capacities, list) and checked.selected_capacities and not isinstance(checked.all_capacities, list):
    notes.append(INVENTED_SELECTION_NOTE)

  if not notes:
    return checked

  return checked.with_observations(*notes)
