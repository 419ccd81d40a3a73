"""Main API router for the reader.

Mounted under /api in main.py:
- /health - service status
- /documents - upload, pages, reading progress
- /chat - reading assistant over the pages read so far
"""

from fastapi import APIRouter

from apps.chat import router as chat_router
from apps.documents import router as documents_router
from apps.health import router as health_router

router = APIRouter()

router.include_router(health_router)
router.include_router(documents_router)
router.include_router(chat_router)
