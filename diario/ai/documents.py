"""Reference documents registered with the provider before each generation."""

from __future__ import annotations

from dataclasses import dataclass

from diario.ai.pipeline.contracts import DocumentKind


@dataclass(frozen=True)
class DocumentSpec:
  """A local PDF the registry uploads under a logical name."""

  name: str
  file_name: str
  kind: DocumentKind
  keywords: tuple[str, ...]
  description: str


COURSE_PLANS: tuple[DocumentSpec, ...] = (
  DocumentSpec(
    name="Adaptação SC - CT Desenvolvimento de Sistemas Presencial",
    file_name="Adaptação SC - CT Desenvolvimento de Sistemas Presencial.pdf",
    kind=DocumentKind.COURSE_PLAN,
    keywords=("desenvolvimento", "sistemas", "presencial", "sc", "ct", "desenvolvimento de sistemas"),
    description="Plano de curso para Desenvolvimento de Sistemas",
  ),
  DocumentSpec(
    name="Projeto de Curso_Informática para Internet 1000 SENAI SED",
    file_name="Projeto de Curso_Informática para Internet 1000 SENAI SED.pdf",
    kind=DocumentKind.COURSE_PLAN,
    keywords=("informática", "internet", "senai", "sed", "1000", "informática para internet"),
    description="Plano de curso para Informática para Internet",
  ),
  DocumentSpec(
    name="Projeto de Curso_Programação de Jogos Digitais 1000 SENAI SED",
    file_name="Projeto de Curso_Programação de Jogos Digitais 1000 SENAI SED.pdf",
    kind=DocumentKind.COURSE_PLAN,
    keywords=("programação", "jogos", "digitais", "senai", "sed", "1000", "programação de jogos"),
    description="Plano de curso para Programação de Jogos Digitais",
  ),
)

METHODOLOGY = DocumentSpec(
  name="arquivos_MSEP",
  file_name="arquivos_MSEP.pdf",
  kind=DocumentKind.METHODOLOGY,
  keywords=("metodologia", "msep", "ensino", "estratégias"),
  description="Arquivo de metodologia e estratégias de ensino",
)

DEFAULT_CATALOG: tuple[DocumentSpec, ...] = (*COURSE_PLANS, METHODOLOGY)
