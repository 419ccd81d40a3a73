"""Reading progress persistence.

A progress record is a single non-negative page index keyed by document
identity (the uploaded file name). ``FileProgressStore`` keeps one plain-text
file per document; ``FirestoreProgressStore`` lives in db/firestore.py.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote

logger = logging.getLogger(__name__)


class ProgressStoreError(Exception):
    """Raised when reading progress cannot be read or written."""

    pass


class ProgressStore(ABC):
    """Durable key-value store for last-viewed page indices."""

    @abstractmethod
    async def get_saved_page(self, document_key: str) -> int | None:
        """Return the saved page index, or None if nothing is stored."""

    @abstractmethod
    async def save_progress(self, document_key: str, page_index: int) -> None:
        """Store ``page_index`` for ``document_key``, overwriting any previous value."""

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy"}


def validate_page_index(page_index: int) -> None:
    if page_index < 0:
        raise ValueError(f"page_index must be >= 0, got {page_index}")


class FileProgressStore(ProgressStore):
    """Stores each document's page index as plain text in its own file.

    All file I/O is wrapped with asyncio.to_thread.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path_for(self, document_key: str) -> Path:
        return self.directory / f"progress_{quote(document_key, safe='')}.txt"

    async def get_saved_page(self, document_key: str) -> int | None:
        return await asyncio.to_thread(self._read_sync, document_key)

    async def save_progress(self, document_key: str, page_index: int) -> None:
        validate_page_index(page_index)
        await asyncio.to_thread(self._write_sync, document_key, page_index)

    def _read_sync(self, document_key: str) -> int | None:
        path = self._path_for(document_key)
        try:
            raw = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.warning("Ignoring undecodable progress file %s", path)
            return None
        except OSError as e:
            raise ProgressStoreError(f"Failed to read progress for {document_key}: {e}") from e

        try:
            page_index = int(raw)
        except ValueError:
            logger.warning("Ignoring malformed progress value %r in %s", raw, path)
            return None
        return page_index if page_index >= 0 else None

    def _write_sync(self, document_key: str, page_index: int) -> None:
        path = self._path_for(document_key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(str(page_index), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise ProgressStoreError(f"Failed to save progress for {document_key}: {e}") from e

        logger.debug("Saved progress %s -> %d", document_key, page_index)

    async def health_check(self) -> dict[str, Any]:
        """Check the progress directory is writable."""
        start = time.time()
        try:
            await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
            probe = self.directory / ".health_check"
            await asyncio.to_thread(probe.write_text, "ok", encoding="utf-8")

            latency = (time.time() - start) * 1000
            return {"status": "healthy", "latency_ms": round(latency, 2)}
        except OSError as e:
            return {"status": "unhealthy", "error": str(e)}
