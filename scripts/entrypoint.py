import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Replace this process with uvicorn serving the diary API."""
  port = os.getenv("PORT", "8000")
  logger.info("Starting diario-engine on port %s", port)
  # execvp hands signals (SIGTERM, etc.) straight to uvicorn.
  os.execvp("uvicorn", ["uvicorn", "diario.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"])


if __name__ == "__main__":
  main()
