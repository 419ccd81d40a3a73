"""POST /documents/upload - Upload and open a PDF or EPUB."""

import logging
import uuid

from fastapi import Depends, File, UploadFile
from fastapi.responses import JSONResponse

from apps.documents.models.document import DocumentSummary
from dependencies import get_reader_session
from responses import ResponseCode, error_response, success_response
from services.document import (
    FileTooLargeError,
    ParseFailureError,
    UnsupportedFormatError,
)
from services.reader import DocumentSupersededError, ReaderSession

logger = logging.getLogger(__name__)


# --- Error mapping ---

UPLOAD_ERROR_MAP = {
    UnsupportedFormatError: ResponseCode.UNSUPPORTED_FILE_TYPE,
    FileTooLargeError: ResponseCode.FILE_TOO_LARGE,
    ParseFailureError: ResponseCode.CORRUPTED_FILE,
    DocumentSupersededError: ResponseCode.DOCUMENT_SUPERSEDED,
    ValueError: ResponseCode.EMPTY_FILE,
}


def upload_error_code(exc: Exception) -> ResponseCode | None:
    """Response code for an upload failure, matching subclasses too."""
    for exc_type, code in UPLOAD_ERROR_MAP.items():
        if isinstance(exc, exc_type):
            return code
    return None


# --- Handler ---


async def upload_document(
    file: UploadFile = File(...),
    reader: ReaderSession = Depends(get_reader_session),
) -> JSONResponse:
    """Upload and open a document (PDF, EPUB).

    Flow:
    1. Read upload
    2. Parse into pages + outline (background thread, newest upload wins)
    3. Restore saved reading position
    4. Start a fresh conversation for the document
    """
    request_id = str(uuid.uuid4())[:8]
    filename = file.filename or "document"

    content = await file.read()
    logger.info("[%s] Upload: %s (%d bytes)", request_id, filename, len(content))

    try:
        document = await reader.open_document(content, file.content_type, filename)

        summary = DocumentSummary.from_document(document, reader.current_page)
        logger.info(
            "[%s] Opened: %s (%d pages)", request_id, document.file_name, document.page_count
        )
        return success_response(
            ResponseCode.DOCUMENT_OPENED,
            summary.model_dump(mode="json"),
            request_id,
        )

    except Exception as e:
        code = upload_error_code(e)
        if code is None:
            logger.exception("[%s] Unexpected error during upload", request_id)
            return error_response(ResponseCode.INTERNAL_ERROR, str(e), request_id)

        logger.warning("[%s] %s: %s", request_id, type(e).__name__, e)
        return error_response(code, str(e), request_id)
