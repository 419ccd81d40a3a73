"""DELETE /chat/history - Start a fresh conversation for the open document."""

import logging
import uuid

from fastapi import Depends
from fastapi.responses import JSONResponse

from dependencies import get_reader_session
from responses import ResponseCode, success_response
from services.reader import ReaderSession

logger = logging.getLogger(__name__)


async def clear_chat_history(
    reader: ReaderSession = Depends(get_reader_session),
) -> JSONResponse:
    """Tear down the conversation (cancelling any stream) and start over."""
    request_id = str(uuid.uuid4())[:8]

    reader.reset_conversation()

    logger.info("[%s] Chat history cleared", request_id)
    return success_response(
        ResponseCode.SUCCESS,
        {"total_count": len(reader.conversation.turns)},
        request_id,
    )
