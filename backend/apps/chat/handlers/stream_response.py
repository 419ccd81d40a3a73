"""POST /chat - Stream the reading assistant's answer.

Orchestrates the chat flow:
1. Append the user turn and an empty streaming assistant turn
2. Build context from pages up to the current one
3. Stream cumulative answer snapshots as SSE
"""

import json
import logging
import uuid
from contextlib import aclosing

from fastapi import Depends
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from dependencies import get_reader_session
from responses import ResponseCode, error_response
from services.reader import ReaderSession

logger = logging.getLogger(__name__)


# --- Request Schema ---


class ChatRequest(BaseModel):
    """Request body for chat endpoint."""

    message: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="User's question about the pages read so far",
    )


# --- Handler ---


async def stream_response(
    request: ChatRequest,
    reader: ReaderSession = Depends(get_reader_session),
) -> Response:
    """Stream a chat response.

    Returns Server-Sent Events (SSE) with chunks:
    - type: "snapshot" - Full answer text so far (replaces the previous one)
    - type: "done" - Stream complete, with the final text
    - type: "error" - Error occurred
    """
    request_id = str(uuid.uuid4())[:8]
    logger.info(
        "[%s] Chat at page %d: %s",
        request_id,
        reader.current_page + 1,
        request.message[:100],
    )

    # Submit before streaming so a busy session is rejected up front;
    # NoDocumentError and SessionBusyError are mapped by the app handlers
    try:
        snapshots = reader.submit(request.message)
    except ValueError as e:
        return error_response(ResponseCode.VALIDATION_ERROR, str(e), request_id)

    page_index = reader.current_page

    # --- SSE Generator ---
    async def generate_sse_events():
        text = ""
        try:
            async with aclosing(snapshots) as stream:
                async for snapshot in stream:
                    text = snapshot
                    yield f"data: {json.dumps({'type': 'snapshot', 'text': snapshot})}\n\n"

            done = {"type": "done", "text": text, "page_index": page_index}
            yield f"data: {json.dumps(done)}\n\n"

        except Exception as e:
            logger.exception("[%s] Stream error", request_id)
            yield f"data: {json.dumps({'type': 'error', 'error': str(e)})}\n\n"

    # Ends the turn even if the client leaves before the body starts
    return StreamingResponse(
        generate_sse_events(),
        background=BackgroundTask(snapshots.aclose),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Request-ID": request_id,
        },
    )
