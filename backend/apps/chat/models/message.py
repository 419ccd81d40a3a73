"""API schemas for chat turns."""

from datetime import datetime

from pydantic import BaseModel, Field

from services.types import ChatTurn


class ChatTurnModel(BaseModel):
    """A single turn in the conversation log."""

    id: str = Field(..., description="Turn ID")
    role: str = Field(..., description="Turn role: 'user' or 'assistant'")
    text: str = Field(..., description="Turn text (latest snapshot while streaming)")
    created_at: datetime = Field(..., description="When the turn was created")
    is_streaming: bool = Field(
        default=False, description="True while the assistant is still answering"
    )

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> "ChatTurnModel":
        return cls(
            id=turn.id,
            role=turn.role.value,
            text=turn.text,
            created_at=turn.created_at,
            is_streaming=turn.is_streaming,
        )


class ChatHistoryResponse(BaseModel):
    """Response for chat history endpoint."""

    messages: list[ChatTurnModel]
    total_count: int = Field(..., description="Total turn count")
    current_page: int = Field(..., description="Page the assistant currently knows up to")
