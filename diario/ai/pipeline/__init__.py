"""Pipeline contracts."""

from diario.ai.pipeline.contracts import NOT_FOUND, DocumentKind, DocumentResource, GenerationResult, LessonRequest, ResourceSnapshot

__all__ = ["NOT_FOUND", "DocumentKind", "DocumentResource", "GenerationResult", "LessonRequest", "ResourceSnapshot"]
