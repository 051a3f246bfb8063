"""Provider implementations."""

from diario.ai.providers.base import ContentPart, GenerationConfig, ModelClient, RemoteFile
from diario.ai.providers.gemini import GeminiClient

__all__ = ["ContentPart", "GeminiClient", "GenerationConfig", "ModelClient", "RemoteFile"]
