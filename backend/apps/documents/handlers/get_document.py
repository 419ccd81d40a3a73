"""GET /documents/current - Describe the open document."""

from fastapi import Depends, HTTPException

from apps.documents.models.document import DocumentSummary
from dependencies import get_reader_session
from responses import ResponseCode, error_dict
from services.reader import ReaderSession


async def get_document(
    reader: ReaderSession = Depends(get_reader_session),
) -> DocumentSummary:
    """Return metadata and outline for the open document."""
    if reader.document is None:
        raise HTTPException(
            status_code=404, detail=error_dict(ResponseCode.DOCUMENT_NOT_FOUND)
        )
    return DocumentSummary.from_document(reader.document, reader.current_page)
