"""GET /chat/history - Get the conversation for the open document."""

from fastapi import Depends, HTTPException

from apps.chat.models.message import ChatHistoryResponse, ChatTurnModel
from dependencies import get_reader_session
from responses import ResponseCode, error_dict
from services.reader import ReaderSession


async def get_chat_history(
    reader: ReaderSession = Depends(get_reader_session),
) -> ChatHistoryResponse:
    """Get all turns of the current conversation, oldest first."""
    conversation = reader.conversation
    if conversation is None:
        raise HTTPException(
            status_code=404, detail=error_dict(ResponseCode.DOCUMENT_NOT_FOUND)
        )

    turns = conversation.turns
    return ChatHistoryResponse(
        messages=[ChatTurnModel.from_turn(turn) for turn in turns],
        total_count=len(turns),
        current_page=reader.current_page,
    )
