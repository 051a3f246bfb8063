"""Base interfaces for the model provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

FILE_STATE_ACTIVE = "ACTIVE"
FILE_STATE_FAILED = "FAILED"
FILE_STATE_PROCESSING = "PROCESSING"


@dataclass(frozen=True)
class ContentPart:
  """One request part: either inline text or a reference to a registered file."""

  text: str | None = None
  file_uri: str | None = None
  mime_type: str | None = None

  @classmethod
  def from_text(cls, text: str) -> ContentPart:
    return cls(text=text)

  @classmethod
  def from_file(cls, uri: str, mime_type: str) -> ContentPart:
    return cls(file_uri=uri, mime_type=mime_type)


@dataclass(frozen=True)
class GenerationConfig:
  """Sampling settings; defaults pin the most deterministic behavior."""

  max_output_tokens: int
  temperature: float = 0.0
  top_p: float = 0.0
  top_k: int = 1
  response_mime_type: str | None = "application/json"


@dataclass(frozen=True)
class RemoteFile:
  """Provider handle returned after a file upload."""

  file_id: str
  uri: str
  mime_type: str
  state: str


class ModelClient(ABC):
  """Narrow capability interface the orchestrator and registry depend on."""

  @abstractmethod
  async def submit(self, model: str, system_instruction: str, parts: list[ContentPart], config: GenerationConfig) -> str:
    """Run one generation request and return the response text."""

  @abstractmethod
  async def register_file(self, path: Path, *, mime_type: str, display_name: str) -> RemoteFile:
    """Upload a local document and return its provider handle."""

  @abstractmethod
  async def get_file_state(self, file_id: str) -> str:
    """Return the provider processing state for a registered file."""
