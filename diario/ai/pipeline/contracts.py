"""Shared data contracts for the lesson diary pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

NOT_FOUND = "não localizado nos PDFs"

CapacityText = Annotated[str, StringConstraints(min_length=1)]
Capacities = list[CapacityText] | Literal["não localizado nos PDFs"]


class DocumentKind(str, Enum):
  """Classification of a reference document registered with the provider."""

  COURSE_PLAN = "course-plan"
  METHODOLOGY = "methodology"


class LessonRequest(BaseModel):
  """Teacher-entered lesson metadata, immutable once submitted."""

  model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

  title: str = Field(alias="titulo", min_length=1, max_length=200)
  description: str = Field(default="", alias="descricao", max_length=4000)
  activity: str | None = Field(default=None, alias="atividade", max_length=4000)
  teaching_strategy: str = Field(alias="estrategiaEnsino", min_length=1)
  course_plan: str = Field(alias="planoCurso", min_length=1)
  curricular_unit: str = Field(alias="unidadeCurricular", min_length=1)

  @field_validator("teaching_strategy", mode="before")
  @classmethod
  def join_strategies(cls, value: Any) -> Any:
    """Collapse a multi-select strategy list into the comma-joined form used in prompts."""
    if isinstance(value, list | tuple):
      return ", ".join(str(item).strip() for item in value if str(item).strip())
    return value

  @field_validator("activity", mode="before")
  @classmethod
  def blank_activity_to_none(cls, value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
      return None
    return value


class DocumentResource(BaseModel):
  """A reference document registered with the model provider."""

  model_config = ConfigDict(frozen=True, populate_by_name=True)

  name: str
  file_id: str = Field(alias="fileId")
  uri: str
  mime_type: str = Field(default="application/pdf", alias="mimeType")
  kind: DocumentKind = Field(alias="type")
  keywords: tuple[str, ...] = ()
  source: Literal["local"] = "local"


class ResourceSnapshot(BaseModel):
  """Persisted shape of the resource store document."""

  resources: list[DocumentResource] = Field(default_factory=list)


class GenerationResult(BaseModel):
  """Structured lesson diary record returned by the generation pipeline."""

  model_config = ConfigDict(frozen=True, populate_by_name=True)

  title: str = Field(alias="titulo")
  original_description: str = Field(alias="descricao_original")
  polished_description: str = Field(alias="descricao_melhorada")
  activities: str = Field(alias="atividades")
  teaching_strategy: str = Field(alias="estrategiaEnsino")
  course: str = Field(alias="curso")
  curricular_unit: str = Field(alias="unidadeCurricular")
  all_capacities: Capacities = Field(alias="capacidadesUC_todas")
  selected_capacities: Capacities = Field(alias="capacidadesUC_selecionadas")
  observations: list[str] = Field(default_factory=list, alias="observacoes")

  def with_observations(self, *notes: str) -> GenerationResult:
    """Return a copy with extra observations appended."""
    return self.model_copy(update={"observations": [*self.observations, *notes]})


# Wire keys the model must emit; order mirrors the output contract in the prompt.
STRING_FIELDS: tuple[str, ...] = ("titulo", "descricao_original", "descricao_melhorada", "atividades", "estrategiaEnsino", "curso", "unidadeCurricular")
CAPACITY_FIELDS: tuple[str, ...] = ("capacidadesUC_todas", "capacidadesUC_selecionadas")
