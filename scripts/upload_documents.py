"""Re-register every reference PDF with Gemini (run after rotating the API key)."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure repo root is on sys.path so local imports work when invoked directly.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from diario.ai.documents import DEFAULT_CATALOG  # noqa: E402
from diario.ai.errors import RegistrationFailedError  # noqa: E402
from diario.ai.providers.gemini import build_gemini_client  # noqa: E402
from diario.config import get_settings  # noqa: E402
from diario.services.resources import ResourceRegistry  # noqa: E402
from diario.storage.resource_store import ResourceStore  # noqa: E402

logger = logging.getLogger("scripts.upload_documents")


async def upload_documents(*, documents_dir: Path, keep_existing: bool) -> int:
  """Register the catalog and return the number of documents now known."""
  settings = get_settings()
  store = ResourceStore(settings.resource_store_path)
  registry = ResourceRegistry(store, build_gemini_client(settings), poll_interval_seconds=settings.file_poll_interval_seconds, max_poll_attempts=settings.file_poll_max_attempts)

  if not keep_existing:
    registry.clear_all()

  resources = await registry.ensure_catalog_registered(DEFAULT_CATALOG, documents_dir)
  for resource in resources:
    logger.info("%s [%s] -> %s", resource.name, resource.kind.value, resource.uri)

  info = registry.storage_info()
  if info.read_only:
    logger.warning("Store is read-only; handles were kept in memory and are lost when this script exits.")
  return len(resources)


def main() -> None:
  logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
  parser = argparse.ArgumentParser(description="Upload the course plan and methodology PDFs to the Gemini File API.")
  parser.add_argument("--documents-dir", type=Path, default=None, help="Directory holding the PDFs (default: DIARIO_DOCUMENTS_DIR).")
  parser.add_argument("--keep-existing", action="store_true", help="Skip documents that already have a handle instead of re-uploading everything.")
  args = parser.parse_args()

  documents_dir = args.documents_dir or get_settings().documents_dir
  try:
    count = asyncio.run(upload_documents(documents_dir=documents_dir, keep_existing=args.keep_existing))
  except (RegistrationFailedError, ValueError) as exc:
    logger.error("Upload failed: %s", exc)
    sys.exit(1)
  logger.info("Registered %d documents.", count)


if __name__ == "__main__":
  main()
