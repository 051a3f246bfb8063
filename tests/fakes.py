"""Test doubles for the model provider and canned model responses."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from diario.ai.documents import DocumentSpec
from diario.ai.pipeline.contracts import DocumentKind
from diario.ai.providers.base import ContentPart, GenerationConfig, ModelClient, RemoteFile

TEST_CATALOG: tuple[DocumentSpec, ...] = (
  DocumentSpec(name="Curso X", file_name="curso-x.pdf", kind=DocumentKind.COURSE_PLAN, keywords=("curso x", "programação"), description="Plano de curso de teste"),
  DocumentSpec(name="Metodologia", file_name="metodologia.pdf", kind=DocumentKind.METHODOLOGY, keywords=("metodologia",), description="Guia de metodologia de teste"),
)

ALL_CAPACITIES = ["Aplicar lógica de programação na resolução de problemas.", "Utilizar variáveis e tipos de dados.", "Documentar o código produzido."]


class FakeAPIError(Exception):
  """Mimics google-genai APIError: a numeric `code` plus a status message."""

  def __init__(self, code: int, message: str) -> None:
    super().__init__(f"{code} {message}")
    self.code = code


class FakeModelClient(ModelClient):
  """Returns scripted responses in order; falls back to `default` once the script runs out."""

  def __init__(self, responses: list[str | BaseException] | None = None, *, default: str | BaseException | None = None) -> None:
    self.responses = list(responses or [])
    self.default = default
    self.submit_calls: list[tuple[str, list[ContentPart]]] = []
    self.uploads: list[str] = []
    self.file_states: dict[str, list[str]] = {}
    self.upload_state = "ACTIVE"

  async def submit(self, model: str, system_instruction: str, parts: list[ContentPart], config: GenerationConfig) -> str:
    self.submit_calls.append((model, parts))
    if self.responses:
      item = self.responses.pop(0)
    elif self.default is not None:
      item = self.default
    else:
      raise AssertionError(f"Unexpected submit to {model}")
    if isinstance(item, BaseException):
      raise item
    return item

  async def register_file(self, path: Path, *, mime_type: str, display_name: str) -> RemoteFile:
    self.uploads.append(display_name)
    index = len(self.uploads)
    return RemoteFile(file_id=f"files/{index}", uri=f"https://files.example/{index}", mime_type=mime_type, state=self.upload_state)

  async def get_file_state(self, file_id: str) -> str:
    states = self.file_states.get(file_id)
    if not states:
      return "ACTIVE"
    return states.pop(0)

  @property
  def models_called(self) -> list[str]:
    return [model for model, _parts in self.submit_calls]


def diary_payload(**overrides: Any) -> str:
  """Render a well-formed model response."""
  payload: dict[str, Any] = {
    "titulo": "Variáveis em Python",
    "descricao_original": "Introdução a variáveis",
    "descricao_melhorada": "Introdução a variáveis em Python, com declaração, atribuição e tipos de dados.",
    "atividades": "",
    "estrategiaEnsino": "Aula expositiva",
    "curso": "Curso X",
    "unidadeCurricular": "Lógica de Programação",
    "capacidadesUC_todas": list(ALL_CAPACITIES),
    "capacidadesUC_selecionadas": ["Utilizar variáveis e tipos de dados."],
    "observacoes": [],
  }
  payload.update(overrides)
  return json.dumps(payload, ensure_ascii=False)


