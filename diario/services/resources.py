"""Registry of reference documents uploaded to the model provider."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from diario.ai.documents import DocumentSpec
from diario.ai.errors import RegistrationFailedError
from diario.ai.pipeline.contracts import DocumentKind, DocumentResource
from diario.ai.providers.base import FILE_STATE_ACTIVE, FILE_STATE_FAILED, ModelClient, RemoteFile
from diario.storage.resource_store import ResourceStore, StorageInfo
from diario.utils.text import normalize

logger = logging.getLogger(__name__)


class ResourceRegistry:
  """Idempotent mapping from logical document names to provider file handles."""

  def __init__(self, store: ResourceStore, client: ModelClient, *, poll_interval_seconds: float = 10.0, max_poll_attempts: int = 6) -> None:
    self._store = store
    self._client = client
    self._poll_interval_seconds = poll_interval_seconds
    self._max_poll_attempts = max_poll_attempts

  def storage_info(self) -> StorageInfo:
    return self._store.storage_info()

  def all(self) -> list[DocumentResource]:
    return self._store.load()

  async def ensure_registered(self, name: str, source: Path, kind: DocumentKind, keywords: Iterable[str] | None = None, *, mime_type: str = "application/pdf") -> DocumentResource:
    """Return the existing handle for `name`, uploading the document only when missing."""
    existing = next((resource for resource in self._store.load() if resource.name == name), None)
    if existing is not None and existing.uri:
      logger.debug("Document %s already registered as %s", name, existing.file_id)
      return existing

    if not source.is_file():
      raise RegistrationFailedError(f"Document {name!r} not found at {source}")

    logger.info("Registering document %s from %s", name, source)
    try:
      remote = await self._client.register_file(source, mime_type=mime_type, display_name=name)
    except Exception as exc:
      raise RegistrationFailedError(f"Upload of document {name!r} failed: {exc}") from exc

    if not remote.uri:
      raise RegistrationFailedError(f"Provider returned no URI for document {name!r}")

    await self._wait_until_active(name, remote)

    resource = DocumentResource(name=name, file_id=remote.file_id, uri=remote.uri, mime_type=remote.mime_type or mime_type, kind=kind, keywords=tuple(keywords or ()))

    # Reload before writing so registrations of other names in between are kept.
    resources = [item for item in self._store.load() if item.name != name]
    resources.append(resource)
    self._store.save(resources)
    logger.info("Document %s registered as %s", name, resource.file_id)
    return resource

  async def _wait_until_active(self, name: str, remote: RemoteFile) -> None:
    """Poll the provider until the upload finishes processing."""
    if remote.state == FILE_STATE_ACTIVE:
      return

    for attempt in range(1, self._max_poll_attempts + 1):
      await asyncio.sleep(self._poll_interval_seconds)
      try:
        state = await self._client.get_file_state(remote.file_id)
      except Exception as exc:  # noqa: BLE001
        # Freshly uploaded files can briefly 404; count it as a pending poll.
        logger.info("Poll %d/%d for %s not available yet: %s", attempt, self._max_poll_attempts, name, exc)
        continue

      if state == FILE_STATE_ACTIVE:
        return

      if state == FILE_STATE_FAILED:
        raise RegistrationFailedError(f"Provider failed to process document {name!r} ({remote.file_id})")

      logger.info("Document %s still %s (poll %d/%d)", name, state or "pending", attempt, self._max_poll_attempts)

    raise RegistrationFailedError(f"Timed out waiting for document {name!r} ({remote.file_id}) to become active")

  async def ensure_catalog_registered(self, catalog: Sequence[DocumentSpec], documents_dir: Path) -> list[DocumentResource]:
    """Register every configured document, sequentially and idempotently."""
    registered: list[DocumentResource] = []
    for spec in catalog:
      resource = await self.ensure_registered(spec.name, documents_dir / spec.file_name, spec.kind, spec.keywords)
      registered.append(resource)
    return registered

  def find_by_approximate_name(self, query: str) -> DocumentResource | None:
    """
    Resolve a course plan by loose name matching, first match wins.

    Pass one: the resource name contains the query, or the query contains one
    of its keywords. Pass two: keyword containment in either direction.
    """
    needle = normalize(query)
    if not needle:
      return None

    plans = [resource for resource in self._store.load() if resource.kind == DocumentKind.COURSE_PLAN and resource.uri]

    for resource in plans:
      keywords = [normalize(keyword) for keyword in resource.keywords if normalize(keyword)]
      if needle in normalize(resource.name) or any(keyword in needle for keyword in keywords):
        return resource

    for resource in plans:
      keywords = [normalize(keyword) for keyword in resource.keywords if normalize(keyword)]
      if any(keyword in needle or needle in keyword for keyword in keywords):
        return resource

    return None

  def find_by_classification(self, kind: DocumentKind) -> DocumentResource | None:
    return next((resource for resource in self._store.load() if resource.kind == kind and resource.uri), None)

  def clear_all(self) -> None:
    """Forget every handle so stale provider files are re-uploaded."""
    logger.warning("Clearing registered documents from %s", self._store.path)
    self._store.clear()
