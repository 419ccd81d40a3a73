"""PUT /documents/current/progress - Move to a page and remember it."""

from fastapi import Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from dependencies import get_reader_session
from responses import ResponseCode, success_response
from services.reader import ReaderSession


class ProgressRequest(BaseModel):
    """Request body for progress updates."""

    page_index: int = Field(..., ge=0, description="0-based page now being viewed")


async def update_progress(
    request: ProgressRequest,
    reader: ReaderSession = Depends(get_reader_session),
) -> JSONResponse:
    """Set the current page; later chat turns see context up to it.

    Raises:
        NoDocumentError: Mapped to 404 by the app.
        PageOutOfRangeError: Mapped to 422 by the app.
    """
    page_index = await reader.go_to_page(request.page_index)

    return success_response(
        ResponseCode.PROGRESS_SAVED,
        {"page_index": page_index, "page_count": reader.document.page_count},
    )
