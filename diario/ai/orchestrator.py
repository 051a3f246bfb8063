"""Orchestration of lesson diary generation against the model provider."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from diario.ai.backoff import RetryPolicy, retry_with_backoff
from diario.ai.cache import ResponseCache, cache_key
from diario.ai.consistency import enforce_consistency, find_suspect_capacities
from diario.ai.documents import DEFAULT_CATALOG, METHODOLOGY, DocumentSpec
from diario.ai.errors import (
  ConfigurationDisabledError,
  EmptyResponseError,
  GenerationError,
  GenerationFailedError,
  ModelUnavailableError,
  PermissionDeniedError,
  QuotaExhaustedError,
  RateLimitedError,
  ResourceNotFoundError,
  ResponseTruncatedError,
  classify_provider_error,
)
from diario.ai.json_parser import parse_generation_result
from diario.ai.pipeline.contracts import DocumentKind, DocumentResource, GenerationResult
from diario.ai.prompts import SYSTEM_INSTRUCTION, build_truncation_repair_prompt
from diario.ai.providers.base import ContentPart, GenerationConfig, ModelClient
from diario.ai.providers.gemini import build_gemini_client
from diario.config import Settings
from diario.services.resources import ResourceRegistry
from diario.storage.resource_store import ResourceStore

logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 2
REPAIR_MODELS: tuple[str, ...] = ("gemini-2.5-flash", "gemini-2.0-flash")
REPAIR_APPLIED_NOTE = "Reparo aplicado: segunda passada para corrigir possíveis quebras de página/linha em capacidades."
DEFAULT_REPAIR_POLICY = RetryPolicy(tries=3, base_delay=1.5, max_delay=30.0)


class CandidateState(str, Enum):
  """Lifecycle of one model candidate inside the fallback loop."""

  TRYING = "trying"
  BACKING_OFF = "backing_off"
  ADVANCING_MODEL = "advancing_model"
  FAILED = "failed"
  SUCCEEDED = "succeeded"


class Transition(str, Enum):
  """What the fallback loop does after a candidate fails."""

  ADVANCE = "advance"
  PROPAGATE = "propagate"
  ABORT = "abort"


# Checked in order; the first matching error type decides the transition.
CANDIDATE_TRANSITIONS: tuple[tuple[type[GenerationError], Transition], ...] = (
  (PermissionDeniedError, Transition.PROPAGATE),
  (QuotaExhaustedError, Transition.ADVANCE),
  (RateLimitedError, Transition.ADVANCE),
  (ModelUnavailableError, Transition.ADVANCE),
  (ResponseTruncatedError, Transition.ADVANCE),
  (EmptyResponseError, Transition.ADVANCE),
)


def classify_candidate_failure(exc: GenerationError) -> Transition:
  """Look up the fallback transition for a failed candidate."""
  for error_type, transition in CANDIDATE_TRANSITIONS:
    if isinstance(exc, error_type):
      return transition
  return Transition.ABORT


def _exhaustion_error(last_error: GenerationError | None, candidates: Sequence[str]) -> GenerationError:
  """Summarize the terminal cause once every candidate model has failed."""
  tried = ", ".join(candidates)
  if isinstance(last_error, QuotaExhaustedError | RateLimitedError):
    return QuotaExhaustedError(f"Quota exhausted on every model ({tried}): {last_error}")
  if isinstance(last_error, ResponseTruncatedError):
    return ResponseTruncatedError(f"Truncated response on every model ({tried}): {last_error}", offset=last_error.offset, length=last_error.length)
  if isinstance(last_error, ModelUnavailableError):
    return ModelUnavailableError(f"No model available ({tried}): {last_error}")
  return GenerationFailedError(f"Generation failed on every model ({tried}): {last_error}")


@dataclass(frozen=True)
class ReferenceDocuments:
  """The two documents every generation request is grounded on."""

  course_plan: DocumentResource
  methodology: DocumentResource

  def parts(self, prompt: str) -> list[ContentPart]:
    return [
      ContentPart.from_file(self.course_plan.uri, self.course_plan.mime_type),
      ContentPart.from_file(self.methodology.uri, self.methodology.mime_type),
      ContentPart.from_text(prompt),
    ]


class GenerationOrchestrator:
  """Coordinates document resolution, model fallback, parsing, and caching."""

  def __init__(
    self,
    settings: Settings,
    client: ModelClient,
    registry: ResourceRegistry,
    cache: ResponseCache,
    *,
    catalog: Sequence[DocumentSpec] = DEFAULT_CATALOG,
    repair_policy: RetryPolicy = DEFAULT_REPAIR_POLICY,
  ) -> None:
    self._settings = settings
    self._client = client
    self._registry = registry
    self._cache = cache
    self._catalog = tuple(catalog)
    self._retry_policy = RetryPolicy(tries=settings.ai_retry_attempts, base_delay=settings.ai_retry_base_delay_seconds, max_delay=settings.ai_retry_max_delay_seconds)
    self._repair_policy = repair_policy
    self._generation_config = GenerationConfig(max_output_tokens=settings.ai_max_output_tokens)

  @property
  def registry(self) -> ResourceRegistry:
    return self._registry

  def candidate_models(self) -> tuple[str, ...]:
    """Primary model first, then the fallbacks, without duplicates."""
    return tuple(dict.fromkeys((self._settings.ai_model_name, *self._settings.ai_fallback_models)))

  async def generate(self, prompt: str, course_plan_name: str) -> GenerationResult:
    """Produce a diary record for a rendered prompt, reusing cached results."""
    if not self._settings.ai_enabled:
      raise ConfigurationDisabledError("AI generation is disabled (DIARIO_AI_ENABLED is false)")

    key = cache_key(prompt, course_plan_name)
    if self._settings.ai_cache_enabled:
      cached = self._cache.get(key)
      if cached is not None:
        logger.info("Response cache hit for course plan %s", course_plan_name)
        return cached

    storage = self._registry.storage_info()
    logger.info("Resource storage mode=%s read_only=%s", storage.kind, storage.read_only)

    attempt = 1
    while True:
      try:
        await self._registry.ensure_catalog_registered(self._catalog, self._settings.documents_dir)
        documents = self._resolve_documents(course_plan_name)
        result = await self._generate_with_fallback(prompt, documents)
        break
      except PermissionDeniedError:
        if attempt >= MAX_GENERATION_ATTEMPTS:
          raise
        # Provider files expire or belong to a rotated key; re-register and retry once.
        logger.warning("Permission denied on attempt %d; clearing registered documents and cached responses", attempt)
        self._registry.clear_all()
        self._cache.clear()
        attempt += 1

    if self._settings.ai_cache_enabled:
      self._cache.set(key, result)
    return result

  def _resolve_documents(self, course_plan_name: str) -> ReferenceDocuments:
    course_plan = self._registry.find_by_approximate_name(course_plan_name)
    if course_plan is None:
      raise ResourceNotFoundError(f"No registered course plan matches {course_plan_name!r}", document=course_plan_name)

    methodology = self._registry.find_by_classification(DocumentKind.METHODOLOGY)
    if methodology is None:
      raise ResourceNotFoundError("Methodology document is not registered", document=METHODOLOGY.name)

    logger.info("Resolved course plan %r to %s", course_plan_name, course_plan.name)
    return ReferenceDocuments(course_plan=course_plan, methodology=methodology)

  async def _generate_with_fallback(self, prompt: str, documents: ReferenceDocuments) -> GenerationResult:
    """Walk the candidate models until one yields a parsed, consistent result."""
    candidates = self.candidate_models()
    last_error: GenerationError | None = None

    for index, model in enumerate(candidates):
      self._log_state(model, CandidateState.TRYING)
      try:
        result = await self._run_candidate(model, prompt, documents)
      except GenerationError as exc:
        transition = classify_candidate_failure(exc)
        if transition is Transition.PROPAGATE:
          raise
        if transition is Transition.ABORT:
          self._log_state(model, CandidateState.FAILED, detail=str(exc))
          raise
        last_error = exc
        if index < len(candidates) - 1:
          self._log_state(model, CandidateState.ADVANCING_MODEL, detail=type(exc).__name__)
          await asyncio.sleep(self._settings.ai_model_switch_delay_seconds)
        continue

      self._log_state(model, CandidateState.SUCCEEDED)
      return result

    self._log_state(candidates[-1], CandidateState.FAILED, detail="all candidates exhausted")
    raise _exhaustion_error(last_error, candidates)

  async def _run_candidate(self, model: str, prompt: str, documents: ReferenceDocuments) -> GenerationResult:
    raw = await retry_with_backoff(
      functools.partial(self._call_once, model, documents.parts(prompt)),
      policy=self._retry_policy,
      operation=f"generate[{model}]",
      on_retry=functools.partial(self._log_backoff, model),
    )
    if not raw.strip():
      raise EmptyResponseError(f"Model {model} returned an empty response")

    result = enforce_consistency(parse_generation_result(raw))
    if self._settings.ai_repair_truncation_enabled:
      result = await self._repair_truncation(model, prompt, documents, result)
    return result

  async def _repair_truncation(self, model: str, prompt: str, documents: ReferenceDocuments, result: GenerationResult) -> GenerationResult:
    """Re-query other models when capacities look cut off; keep whichever has fewer suspects."""
    suspects = find_suspect_capacities(result.all_capacities)
    if not suspects:
      return result

    repair_parts = documents.parts(build_truncation_repair_prompt(prompt, suspects))
    for repair_model in (name for name in REPAIR_MODELS if name != model):
      logger.info("Attempting truncation repair of %d capacities with %s", len(suspects), repair_model)
      try:
        raw = await retry_with_backoff(functools.partial(self._call_once, repair_model, repair_parts), policy=self._repair_policy, operation=f"repair[{repair_model}]")
        repaired = parse_generation_result(raw)
      except PermissionDeniedError:
        raise
      except GenerationError as exc:
        logger.warning("Truncation repair with %s failed: %s", repair_model, exc)
        continue

      remaining = find_suspect_capacities(repaired.all_capacities)
      if len(remaining) < len(suspects):
        logger.info("Truncation repair with %s reduced suspects from %d to %d", repair_model, len(suspects), len(remaining))
        return enforce_consistency(repaired.with_observations(REPAIR_APPLIED_NOTE))

      logger.info("Truncation repair with %s did not reduce suspects (%d)", repair_model, len(remaining))

    return result

  async def _call_once(self, model: str, parts: list[ContentPart]) -> str:
    """Submit one request and translate provider failures into the error taxonomy."""
    try:
      return await self._client.submit(model, SYSTEM_INSTRUCTION, parts, self._generation_config)
    except GenerationError:
      raise
    except Exception as exc:  # noqa: BLE001
      raise classify_provider_error(exc) from exc

  def _log_backoff(self, model: str, attempt: int, exc: GenerationError, delay: float) -> None:
    self._log_state(model, CandidateState.BACKING_OFF, detail=f"retry {attempt} after {type(exc).__name__}, waiting {delay:.1f}s")

  @staticmethod
  def _log_state(model: str, state: CandidateState, *, detail: str | None = None) -> None:
    level = logging.ERROR if state is CandidateState.FAILED else logging.INFO
    if detail:
      logger.log(level, "Model %s state=%s (%s)", model, state.value, detail)
    else:
      logger.log(level, "Model %s state=%s", model, state.value)


def build_orchestrator(settings: Settings, client: ModelClient | None = None) -> GenerationOrchestrator:
  """Wire the orchestrator with its store, registry, and cache from settings."""
  if client is None:
    client = build_gemini_client(settings)

  store = ResourceStore(settings.resource_store_path)
  registry = ResourceRegistry(store, client, poll_interval_seconds=settings.file_poll_interval_seconds, max_poll_attempts=settings.file_poll_max_attempts)
  cache = ResponseCache(ttl_seconds=settings.ai_cache_ttl_seconds, max_entries=settings.ai_cache_max_entries)
  return GenerationOrchestrator(settings, client, registry, cache)
