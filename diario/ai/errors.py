"""Error taxonomy and provider error classification for diary generation."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class ErrorCategory(str, Enum):
  """User-facing failure categories surfaced by the HTTP layer."""

  DISABLED = "disabled"
  RESOURCE_NOT_FOUND = "resource_not_found"
  REGISTRATION_FAILED = "registration_failed"
  PERMISSION_DENIED = "permission_denied"
  QUOTA_EXHAUSTED = "quota_exhausted"
  RATE_LIMITED = "rate_limited"
  MODEL_UNAVAILABLE = "model_unavailable"
  RESPONSE_TRUNCATED = "response_truncated"
  PARSE_ERROR = "parse_error"
  PROVIDER_ERROR = "provider_error"
  GENERIC = "generic"


class GenerationError(RuntimeError):
  """Base class for every failure the generation pipeline raises."""

  category: ErrorCategory = ErrorCategory.GENERIC
  status_code: int = 500
  user_message: str = "Erro interno ao gerar conteúdo. Tente novamente mais tarde."


class ConfigurationDisabledError(GenerationError):
  category = ErrorCategory.DISABLED
  status_code = 503
  user_message = "A geração com IA está desabilitada neste ambiente."


class ResourceNotFoundError(GenerationError):
  """Raised when the course plan or methodology document cannot be resolved."""

  category = ErrorCategory.RESOURCE_NOT_FOUND
  status_code = 404
  user_message = "O plano de curso ou o guia de metodologia informado não foi encontrado."

  def __init__(self, message: str, *, document: str) -> None:
    super().__init__(message)
    self.document = document


class RegistrationFailedError(GenerationError):
  category = ErrorCategory.REGISTRATION_FAILED
  status_code = 502
  user_message = "Não foi possível preparar os documentos de referência. Tente novamente mais tarde."


class PermissionDeniedError(GenerationError):
  category = ErrorCategory.PERMISSION_DENIED
  status_code = 403
  user_message = "Acesso negado pelo serviço de IA. Verifique a chave de API e tente novamente mais tarde."


class QuotaExhaustedError(GenerationError):
  category = ErrorCategory.QUOTA_EXHAUSTED
  status_code = 429
  user_message = "Cota da API de IA esgotada. Aguarde alguns minutos e tente novamente, ou tente amanhã quando a cota diária for renovada."


class RateLimitedError(GenerationError):
  category = ErrorCategory.RATE_LIMITED
  status_code = 429
  user_message = "Muitas solicitações ao serviço de IA. Aguarde alguns instantes e tente novamente."


class ModelUnavailableError(GenerationError):
  category = ErrorCategory.MODEL_UNAVAILABLE
  status_code = 502
  user_message = "Modelo de IA indisponível no momento. Tente novamente mais tarde."


class ResponseTruncatedError(GenerationError):
  """Raised when the model output ends before the JSON document is complete."""

  category = ErrorCategory.RESPONSE_TRUNCATED
  status_code = 502
  user_message = "A resposta da IA foi cortada antes de completar. Tente novamente mais tarde."

  def __init__(self, message: str, *, offset: int, length: int) -> None:
    super().__init__(message)
    self.offset = offset
    self.length = length


class ResponseParseError(GenerationError):
  """Raised when the model output is malformed but not obviously truncated."""

  category = ErrorCategory.PARSE_ERROR
  status_code = 502
  user_message = "A resposta da IA veio corrompida. Tente novamente mais tarde."

  def __init__(self, message: str, *, offset: int, length: int) -> None:
    super().__init__(message)
    self.offset = offset
    self.length = length


class ProviderError(GenerationError):
  """Transient provider failure (timeouts, 5xx, empty responses)."""

  category = ErrorCategory.PROVIDER_ERROR
  status_code = 502


class EmptyResponseError(ProviderError):
  """The model answered without any text."""


class GenerationFailedError(GenerationError):
  category = ErrorCategory.GENERIC


_PERMISSION_HINTS: tuple[str, ...] = ("403", "forbidden", "permission", "permission_denied", "may not exist", "does not exist", "not exist")
_QUOTA_ZERO_HINTS: tuple[str, ...] = ("limit: 0",)
_RATE_LIMIT_HINTS: tuple[str, ...] = ("429", "too many requests", "resource_exhausted", "resource exhausted", "quota", "rate limit")
_MODEL_NOT_FOUND_HINTS: tuple[str, ...] = ("404", "not found", "unsupported model", "no such model", "model is not available")


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  # Scan for known substrings to categorize provider failures.
  for hint in hints:
    if hint in message:
      return True
  return False


def _status_code(exc: BaseException) -> int | None:
  """Read the HTTP status exposed by google-genai APIError (and most HTTP clients)."""
  code = getattr(exc, "code", None)
  if isinstance(code, int):
    return code
  code = getattr(exc, "status_code", None)
  if isinstance(code, int):
    return code
  return None


def is_permission_error(exc: BaseException) -> bool:
  """Return True when the provider rejected access to a file handle or the key."""
  if isinstance(exc, PermissionDeniedError):
    return True
  if _status_code(exc) == 403:
    return True
  return _match_hint(str(exc).lower(), _PERMISSION_HINTS)


def is_quota_zero(exc: BaseException) -> bool:
  """Return True when the model has no quota at all on this tier."""
  if isinstance(exc, QuotaExhaustedError):
    return True
  return _match_hint(str(exc).lower(), _QUOTA_ZERO_HINTS)


def is_rate_limit(exc: BaseException) -> bool:
  if isinstance(exc, RateLimitedError):
    return True
  if _status_code(exc) == 429:
    return True
  return _match_hint(str(exc).lower(), _RATE_LIMIT_HINTS)


def is_model_not_found(exc: BaseException) -> bool:
  if isinstance(exc, ModelUnavailableError):
    return True
  if _status_code(exc) == 404:
    return True
  return _match_hint(str(exc).lower(), _MODEL_NOT_FOUND_HINTS)


def classify_provider_error(exc: BaseException) -> GenerationError:
  """Map a raw provider exception onto the generation error taxonomy."""
  if isinstance(exc, GenerationError):
    return exc

  message = f"{type(exc).__name__}: {exc}"
  # Permission is checked first; Gemini reports stale file handles as 403 "may not exist".
  if is_permission_error(exc):
    return PermissionDeniedError(message)
  if is_quota_zero(exc):
    return QuotaExhaustedError(message)
  if is_rate_limit(exc):
    return RateLimitedError(message)
  if is_model_not_found(exc):
    return ModelUnavailableError(message)
  return ProviderError(message)
