"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
from pathlib import Path

from google import genai
from google.genai import types

from diario.ai.providers.base import ContentPart, GenerationConfig, ModelClient, RemoteFile
from diario.config import Settings

logger = logging.getLogger(__name__)


def _to_sdk_part(part: ContentPart) -> types.Part:
  if part.file_uri:
    return types.Part.from_uri(file_uri=part.file_uri, mime_type=part.mime_type)
  return types.Part.from_text(text=part.text or "")


class GeminiClient(ModelClient):
  """Gemini client for file-grounded structured generation."""

  def __init__(self, api_key: str | None, *, timeout_ms: int = 60000) -> None:
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    # The SDK expects the HTTP timeout in milliseconds.
    self._client = genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=timeout_ms))

  async def submit(self, model: str, system_instruction: str, parts: list[ContentPart], config: GenerationConfig) -> str:
    """Generate a response grounded on the referenced files."""
    sdk_config = types.GenerateContentConfig(
      system_instruction=system_instruction,
      temperature=config.temperature,
      top_p=config.top_p,
      top_k=config.top_k,
      max_output_tokens=config.max_output_tokens,
      response_mime_type=config.response_mime_type,
    )
    contents = [types.Content(role="user", parts=[_to_sdk_part(part) for part in parts])]

    # Use the async client to avoid blocking the asyncio event loop.
    response = await self._client.aio.models.generate_content(model=model, contents=contents, config=sdk_config)

    if response.usage_metadata:
      logger.info("Gemini usage model=%s prompt_tokens=%s completion_tokens=%s", model, response.usage_metadata.prompt_token_count, response.usage_metadata.candidates_token_count)
    return (response.text or "").strip()

  async def register_file(self, path: Path, *, mime_type: str, display_name: str) -> RemoteFile:
    """Upload a file to the Gemini File API."""
    uploaded = await self._client.aio.files.upload(file=str(path), config=types.UploadFileConfig(mime_type=mime_type, display_name=display_name))
    return RemoteFile(file_id=uploaded.name or "", uri=uploaded.uri or "", mime_type=uploaded.mime_type or mime_type, state=_state_name(uploaded.state))

  async def get_file_state(self, file_id: str) -> str:
    remote = await self._client.aio.files.get(name=file_id)
    return _state_name(remote.state)


def _state_name(state: object) -> str:
  """Normalize the SDK FileState enum (or a raw string) to its bare name."""
  if state is None:
    return ""
  name = getattr(state, "name", None)
  if isinstance(name, str):
    return name
  return str(state).rsplit(".", 1)[-1]


def build_gemini_client(settings: Settings) -> GeminiClient:
  """Construct the Gemini client from settings."""
  return GeminiClient(settings.gemini_api_key, timeout_ms=settings.ai_timeout_ms)
