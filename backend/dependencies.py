"""FastAPI dependency injection for services.

Services are cached with @lru_cache() so the reader session (and the
document and chat it owns) lives for the whole process.
"""

from functools import lru_cache

from config import get_settings
from db import FileProgressStore, ProgressStore
from llm import BaseGenerator, Generator
from services.document import DocumentParser
from services.reader import ReaderSession

# --- Cached Singletons ---
# These are created once and reused across all requests


@lru_cache
def get_progress_store() -> ProgressStore:
    """Get cached progress store for the configured backend."""
    settings = get_settings()
    if settings.progress_backend == "firestore":
        from db.firestore import FirestoreProgressStore

        return FirestoreProgressStore()
    return FileProgressStore(settings.progress_dir)


@lru_cache
def get_generator() -> BaseGenerator:
    """Get cached generator (expensive - has API client)."""
    return Generator()


@lru_cache
def get_reader_session() -> ReaderSession:
    """Get the process-wide reading session with its collaborators injected."""
    settings = get_settings()
    return ReaderSession(
        parser=DocumentParser(settings),
        progress_store=get_progress_store(),
        generator=get_generator(),
        history_window=settings.history_window_turns,
    )
