"""Parsing and truncation repair of model responses."""

from __future__ import annotations

import json

import pytest

from diario.ai.errors import ResponseParseError, ResponseTruncatedError
from diario.ai.json_parser import TRUNCATION_REPAIRED_NOTE, extract_json_object, parse_generation_result, repair_truncated_json, strip_json_fences
from diario.ai.pipeline.contracts import NOT_FOUND
from tests.fakes import ALL_CAPACITIES, diary_payload


def test_parse_well_formed_payload() -> None:
  result = parse_generation_result(diary_payload())
  assert result.title == "Variáveis em Python"
  assert result.all_capacities == ALL_CAPACITIES
  assert result.observations == []


def test_parse_strips_code_fence_and_prose() -> None:
  raw = f"```json\n{diary_payload()}\n```"
  assert parse_generation_result(raw).course == "Curso X"
  assert parse_generation_result(f"Aqui está: {diary_payload()} Obrigado").course == "Curso X"


def test_parse_accepts_not_found_sentinel() -> None:
  result = parse_generation_result(diary_payload(capacidadesUC_todas=NOT_FOUND, capacidadesUC_selecionadas=NOT_FOUND))
  assert result.all_capacities == NOT_FOUND
  assert result.selected_capacities == NOT_FOUND


def test_truncated_mid_string_is_repaired() -> None:
  result = parse_generation_result('{"titulo":"A","capacidadesUC_todas":["Cap 1","Cap 2')
  assert result.title == "A"
  assert result.all_capacities == ["Cap 1", "Cap 2"]
  assert result.selected_capacities == NOT_FOUND
  assert TRUNCATION_REPAIRED_NOTE in result.observations
  assert any("capacidadesUC_selecionadas" in note for note in result.observations)


def test_truncated_full_payload_keeps_fields() -> None:
  raw = diary_payload()
  cut = raw[: raw.index("Documentar o código") + len("Documentar")]
  result = parse_generation_result(cut)
  assert result.all_capacities == [ALL_CAPACITIES[0], ALL_CAPACITIES[1], "Documentar"]
  assert result.course == "Curso X"
  assert result.observations[0] == TRUNCATION_REPAIRED_NOTE


def test_repair_closes_in_nesting_order() -> None:
  repaired = repair_truncated_json('{"a": {"b": [1, 2,')
  assert repaired == '{"a": {"b": [1, 2]}}'
  assert json.loads(repaired) == {"a": {"b": [1, 2]}}


def test_repair_ignores_brackets_inside_strings() -> None:
  repaired = repair_truncated_json('{"a": "x { [ y", "b": ["z')
  assert json.loads(repaired) == {"a": "x { [ y", "b": ["z"]}


def test_repair_drops_dangling_backslash() -> None:
  repaired = repair_truncated_json('{"a": "line\\')
  assert json.loads(repaired) == {"a": "line"}


def test_repair_drops_array_element_cut_at_opening_quote() -> None:
  assert repair_truncated_json('{"a": ["x", "') == '{"a": ["x"]}'
  assert repair_truncated_json('{"a": ["') == '{"a": []}'
  assert repair_truncated_json('{"a": "') == '{"a": ""}'


def test_truncated_after_opening_quote_of_capacity_is_repaired() -> None:
  result = parse_generation_result('{"titulo":"A","capacidadesUC_todas":["Cap 1.","')
  assert result.all_capacities == ["Cap 1."]
  assert result.selected_capacities == NOT_FOUND
  assert TRUNCATION_REPAIRED_NOTE in result.observations


def test_repair_returns_none_for_balanced_or_mismatched_input() -> None:
  assert repair_truncated_json('{"a": 1}') is None
  assert repair_truncated_json('{"a": [1}') is None
  assert repair_truncated_json("no json here") is None


def test_unrepairable_truncation_raises_truncated_error() -> None:
  raw = '{"titulo": "A", "atividades":'
  with pytest.raises(ResponseTruncatedError) as exc_info:
    parse_generation_result(raw)
  assert exc_info.value.length == len(raw)
  assert exc_info.value.offset == len(raw)
  assert str(exc_info.value).startswith("JSON_TRUNCATED")


def test_malformed_json_raises_parse_error() -> None:
  raw = '{"titulo": oops}'
  with pytest.raises(ResponseParseError) as exc_info:
    parse_generation_result(raw)
  assert exc_info.value.offset == raw.index("oops")
  assert exc_info.value.length == len(raw)


def test_schema_mismatch_raises_parse_error() -> None:
  with pytest.raises(ResponseParseError):
    parse_generation_result(diary_payload(capacidadesUC_todas="nenhuma"))


def test_fence_and_object_helpers() -> None:
  assert strip_json_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
  assert extract_json_object('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'
  assert extract_json_object('x {"a": [1') == '{"a": [1'
