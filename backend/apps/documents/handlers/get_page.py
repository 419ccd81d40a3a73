"""GET /documents/current/pages/{page_index} - Render payload for a page."""

from fastapi import Depends
from fastapi.responses import Response

from dependencies import get_reader_session
from responses import ResponseCode, success_response
from services.reader import ReaderSession


async def get_page(
    page_index: int,
    reader: ReaderSession = Depends(get_reader_session),
) -> Response:
    """Return the original PDF bytes, or the page markup for EPUBs.

    PDF pages all share the unmodified source file; the Viewer renders the
    requested index from it.
    """
    unit = reader.render_unit(page_index)

    if isinstance(unit, bytes):
        return Response(
            content=unit,
            media_type="application/pdf",
            headers={"X-Page-Index": str(page_index)},
        )

    return success_response(
        ResponseCode.SUCCESS, {"page_index": page_index, "html": unit}
    )
