"""Gemini adapter over the google-genai SDK."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from diario.ai.providers.base import ContentPart, GenerationConfig
from diario.ai.providers.gemini import GeminiClient, _state_name


@pytest.fixture
def sdk_client():
  with patch("diario.ai.providers.gemini.genai.Client") as mock:
    yield mock.return_value


def test_missing_api_key_is_rejected() -> None:
  with pytest.raises(ValueError, match="GEMINI_API_KEY"):
    GeminiClient(None)


@pytest.mark.anyio
async def test_submit_sends_deterministic_config(sdk_client: MagicMock) -> None:
  sdk_client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text='  {"ok": true}\n', usage_metadata=None))
  client = GeminiClient("key")

  text = await client.submit("gemini-2.5-flash", "SYSTEM", [ContentPart.from_file("https://files.example/1", "application/pdf"), ContentPart.from_text("prompt")], GenerationConfig(max_output_tokens=1024))

  assert text == '{"ok": true}'
  kwargs = sdk_client.aio.models.generate_content.await_args.kwargs
  assert kwargs["model"] == "gemini-2.5-flash"
  config = kwargs["config"]
  assert config.system_instruction == "SYSTEM"
  assert config.temperature == 0.0
  assert config.top_k == 1
  assert config.max_output_tokens == 1024
  assert config.response_mime_type == "application/json"
  parts = kwargs["contents"][0].parts
  assert parts[0].file_data.file_uri == "https://files.example/1"
  assert parts[1].text == "prompt"


@pytest.mark.anyio
async def test_submit_handles_missing_text(sdk_client: MagicMock) -> None:
  sdk_client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text=None, usage_metadata=None))
  assert await GeminiClient("key").submit("m", "S", [ContentPart.from_text("p")], GenerationConfig(max_output_tokens=10)) == ""


@pytest.mark.anyio
async def test_register_file_and_poll_state(sdk_client: MagicMock, tmp_path: Path) -> None:
  source = tmp_path / "doc.pdf"
  source.write_bytes(b"%PDF")
  sdk_client.aio.files.upload = AsyncMock(return_value=SimpleNamespace(name="files/abc", uri="https://files.example/abc", mime_type="application/pdf", state=SimpleNamespace(name="PROCESSING")))
  sdk_client.aio.files.get = AsyncMock(return_value=SimpleNamespace(state=SimpleNamespace(name="ACTIVE")))
  client = GeminiClient("key")

  remote = await client.register_file(source, mime_type="application/pdf", display_name="Curso X")
  assert remote.file_id == "files/abc"
  assert remote.state == "PROCESSING"
  assert sdk_client.aio.files.upload.await_args.kwargs["file"] == str(source)
  assert await client.get_file_state("files/abc") == "ACTIVE"


def test_state_name_normalizes_values() -> None:
  assert _state_name(None) == ""
  assert _state_name("FileState.ACTIVE") == "ACTIVE"
  assert _state_name(SimpleNamespace(name="FAILED")) == "FAILED"
