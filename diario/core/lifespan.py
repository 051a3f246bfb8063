import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from diario.ai.orchestrator import build_orchestrator
from diario.config import get_settings
from diario.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and build the long-lived orchestrator."""
  settings = get_settings()
  logger = logging.getLogger("diario.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # Read-only deploys cannot create the log file; stdout logging still works.
    logger.warning("File logging unavailable; continuing with default handlers.", exc_info=True)

  # Tests may install their own orchestrator before startup.
  if getattr(app.state, "orchestrator", None) is None:
    try:
      app.state.orchestrator = build_orchestrator(settings)
    except ValueError:
      logger.warning("Gemini client not configured; diary generation is unavailable.", exc_info=True)
      app.state.orchestrator = None

  logger.info("AI generation enabled=%s model=%s fallbacks=%s", settings.ai_enabled, settings.ai_model_name, ",".join(settings.ai_fallback_models))
  yield
