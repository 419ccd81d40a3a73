"""Document routes - registers all document endpoints."""

from fastapi import APIRouter

from apps.documents.handlers import (
    close_document,
    get_document,
    get_page,
    update_progress,
    upload_document,
)
from apps.documents.models.document import DocumentSummary

router = APIRouter(prefix="/documents", tags=["Documents"])

# POST /documents/upload - Upload and open document
router.post("/upload")(upload_document)

# GET /documents/current - Open document metadata
router.get("/current", response_model=DocumentSummary)(get_document)

# GET /documents/current/pages/{page_index} - Page render payload
router.get("/current/pages/{page_index}")(get_page)

# PUT /documents/current/progress - Save reading position
router.put("/current/progress")(update_progress)

# DELETE /documents/current - Close document
router.delete("/current")(close_document)
