"""Documents module - upload, pages and reading progress."""

from apps.documents.routes import router

__all__ = ["router"]
