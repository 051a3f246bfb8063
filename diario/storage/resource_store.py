"""JSON-backed store of registered documents with an in-memory fallback."""

from __future__ import annotations

import errno
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import ValidationError

from diario.ai.pipeline.contracts import DocumentResource, ResourceSnapshot

logger = logging.getLogger(__name__)

_PROBE_NAME = ".write-probe"


@dataclass(frozen=True)
class StorageInfo:
  """Where the registry currently keeps its state."""

  kind: Literal["file", "memory"]
  read_only: bool


class ResourceStore:
  """
  Ordered list of DocumentResource persisted as `{"resources": [...]}`.

  Write capability is probed once per instance. On a read-only filesystem
  (serverless deploys) reads prefer the in-memory snapshot and writes stay in
  memory, so the registry keeps working but does not survive a restart.
  """

  def __init__(self, path: Path) -> None:
    self._path = path
    # None until the first read; afterwards the authoritative state in read-only mode.
    self._snapshot: list[DocumentResource] | None = None
    self._read_only: bool | None = None

  @property
  def path(self) -> Path:
    return self._path

  def is_read_only(self) -> bool:
    """Probe write access once by writing and removing a scratch file."""
    if self._read_only is not None:
      return self._read_only

    probe = self._path.parent / _PROBE_NAME
    try:
      self._path.parent.mkdir(parents=True, exist_ok=True)
      probe.write_text("probe", encoding="utf-8")
      probe.unlink()
      self._read_only = False
      logger.info("Resource store directory %s is writable", self._path.parent)
    except OSError as exc:
      self._read_only = True
      logger.info("Resource store directory %s is read-only (%s); using in-memory snapshot", self._path.parent, exc.strerror or exc)

    return self._read_only

  def storage_info(self) -> StorageInfo:
    read_only = self.is_read_only()
    return StorageInfo(kind="memory" if read_only else "file", read_only=read_only)

  def load(self) -> list[DocumentResource]:
    """Return the registered resources in insertion order."""
    read_only = self.is_read_only()

    # Read-only deploys read the packaged file once; after that, including a clear, the snapshot wins.
    if read_only and self._snapshot is not None:
      return list(self._snapshot)

    try:
      raw = self._path.read_text(encoding="utf-8")
    except FileNotFoundError:
      if read_only:
        self._snapshot = []
      return []

    try:
      snapshot = ResourceSnapshot.model_validate_json(raw)
    except ValidationError:
      logger.warning("Resource store %s is corrupt; treating it as empty", self._path, exc_info=True)
      return []

    self._snapshot = list(snapshot.resources)
    return list(self._snapshot)

  def save(self, resources: list[DocumentResource]) -> None:
    """Persist atomically, or keep the data in memory when the disk is read-only."""
    self._snapshot = list(resources)

    if self.is_read_only():
      return

    payload = ResourceSnapshot(resources=self._snapshot).model_dump_json(by_alias=True, indent=2)
    tmp_path = self._path.with_name(f"{self._path.name}.tmp")
    try:
      self._path.parent.mkdir(parents=True, exist_ok=True)
      tmp_path.write_text(payload + "\n", encoding="utf-8")
      os.replace(tmp_path, self._path)
    except PermissionError:
      # The probe passed but this write did not; keep serving from memory from now on.
      logger.warning("Resource store %s became unwritable; falling back to memory", self._path, exc_info=True)
      self._read_only = True
    except OSError as exc:
      if exc.errno != errno.EROFS:
        raise
      logger.warning("Resource store %s is on a read-only filesystem; falling back to memory", self._path)
      self._read_only = True

  def clear(self) -> None:
    """Discard every registered resource on disk and in memory."""
    self.save([])
