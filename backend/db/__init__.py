"""Persistence for reading progress."""

from db.progress import FileProgressStore, ProgressStore, ProgressStoreError

__all__ = ["ProgressStore", "ProgressStoreError", "FileProgressStore"]
