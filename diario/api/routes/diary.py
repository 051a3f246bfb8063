from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from diario.ai.errors import ConfigurationDisabledError
from diario.ai.orchestrator import GenerationOrchestrator
from diario.ai.pipeline.contracts import LessonRequest
from diario.ai.prompts import build_user_prompt
from diario.config import Settings, get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


def get_orchestrator(request: Request) -> GenerationOrchestrator:
  """Return the orchestrator built at startup."""
  orchestrator = getattr(request.app.state, "orchestrator", None)
  if orchestrator is None:
    raise ConfigurationDisabledError("Generation orchestrator is not configured")
  return orchestrator


@router.post("/generate")
async def generate_diary(
  lesson: LessonRequest, orchestrator: Annotated[GenerationOrchestrator, Depends(get_orchestrator)], settings: Annotated[Settings, Depends(get_settings)]
) -> dict[str, Any]:
  """Generate the diary record for one lesson."""
  prompt = build_user_prompt(
    lesson,
    max_selected=settings.max_selected_capacities,
    extended_max_selected=settings.extended_max_selected_capacities,
    extended_hours_threshold=settings.extended_capacities_hours_threshold,
  )
  logger.info("Generating diary for course plan %r unit %r", lesson.course_plan, lesson.curricular_unit)
  result = await orchestrator.generate(prompt, lesson.course_plan)
  return {"ok": True, "data": result.model_dump(by_alias=True)}
