"""DELETE /documents/current - Close the open document."""

import logging

from fastapi import Depends
from fastapi.responses import JSONResponse

from dependencies import get_reader_session
from responses import ResponseCode, success_response
from services.reader import ReaderSession

logger = logging.getLogger(__name__)


async def close_document(
    reader: ReaderSession = Depends(get_reader_session),
) -> JSONResponse:
    """Close the document and tear down its conversation.

    Any answer still streaming stops delivering.
    """
    file_name = reader.document.file_name if reader.document else None
    reader.close_document()
    logger.info("Closed document %s", file_name)
    return success_response(ResponseCode.DOCUMENT_CLOSED, {"file_name": file_name})
