"""Persistence of registered documents."""

from __future__ import annotations

import errno
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from diario.ai.pipeline.contracts import DocumentKind, DocumentResource
from diario.storage.resource_store import ResourceStore


def _resource(name: str = "Curso X", kind: DocumentKind = DocumentKind.COURSE_PLAN) -> DocumentResource:
  return DocumentResource(name=name, file_id="files/1", uri="https://files.example/1", kind=kind, keywords=("curso",))


def test_save_and_load_round_trip_uses_wire_aliases(tmp_path: Path) -> None:
  path = tmp_path / "data" / "resources.json"
  store = ResourceStore(path)
  store.save([_resource()])

  document = json.loads(path.read_text(encoding="utf-8"))
  assert document["resources"][0]["fileId"] == "files/1"
  assert document["resources"][0]["type"] == "course-plan"
  assert ResourceStore(path).load() == [_resource()]
  assert not (tmp_path / "data" / ".write-probe").exists()


def test_missing_file_loads_empty(tmp_path: Path) -> None:
  assert ResourceStore(tmp_path / "resources.json").load() == []


def test_corrupt_file_loads_empty(tmp_path: Path) -> None:
  path = tmp_path / "resources.json"
  path.write_text("{not json", encoding="utf-8")
  assert ResourceStore(path).load() == []


def test_clear_discards_everything(tmp_path: Path) -> None:
  store = ResourceStore(tmp_path / "resources.json")
  store.save([_resource()])
  store.clear()
  assert store.load() == []


def test_read_only_directory_keeps_state_in_memory(tmp_path: Path) -> None:
  store = ResourceStore(tmp_path / "resources.json")
  with patch.object(Path, "write_text", side_effect=OSError(errno.EROFS, "Read-only file system")):
    assert store.is_read_only()
    store.save([_resource()])

  info = store.storage_info()
  assert info.kind == "memory"
  assert info.read_only
  assert store.load() == [_resource()]
  assert not (tmp_path / "resources.json").exists()


def test_write_failure_after_probe_falls_back_to_memory(tmp_path: Path) -> None:
  store = ResourceStore(tmp_path / "resources.json")
  assert not store.is_read_only()

  with patch("diario.storage.resource_store.os.replace", side_effect=OSError(errno.EROFS, "Read-only file system")):
    store.save([_resource()])

  assert store.storage_info().kind == "memory"
  assert store.load() == [_resource()]


def test_unexpected_write_error_propagates(tmp_path: Path) -> None:
  store = ResourceStore(tmp_path / "resources.json")
  assert not store.is_read_only()

  with patch("diario.storage.resource_store.os.replace", side_effect=OSError(errno.ENOSPC, "No space left on device")):
    with pytest.raises(OSError, match="No space left"):
      store.save([_resource()])


def _read_only_store(path: Path) -> ResourceStore:
  store = ResourceStore(path)
  with patch.object(Path, "write_text", side_effect=OSError(errno.EROFS, "Read-only file system")):
    assert store.is_read_only()
  return store


def test_read_only_store_reads_packaged_file(tmp_path: Path) -> None:
  path = tmp_path / "resources.json"
  ResourceStore(path).save([_resource()])
  assert _read_only_store(path).load() == [_resource()]


def test_read_only_clear_is_not_undone_by_packaged_file(tmp_path: Path) -> None:
  path = tmp_path / "resources.json"
  ResourceStore(path).save([_resource()])
  store = _read_only_store(path)

  store.clear()

  assert store.load() == []
  assert path.exists()
