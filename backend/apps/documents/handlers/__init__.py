"""Document handlers."""

from apps.documents.handlers.close_document import close_document
from apps.documents.handlers.get_document import get_document
from apps.documents.handlers.get_page import get_page
from apps.documents.handlers.update_progress import update_progress
from apps.documents.handlers.upload_document import upload_document

__all__ = [
    "upload_document",
    "get_document",
    "get_page",
    "update_progress",
    "close_document",
]
