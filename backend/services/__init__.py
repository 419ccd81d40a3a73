"""Services module for the reader's business logic.

Contains:
- Document parsing (PDF via PyMuPDF, EPUB via zipfile + BeautifulSoup)
- Context window building
- Conversation session (turns, history window, streaming)
- Reader session (open document, page position, progress)

Note: Service instances are managed via dependencies.py using FastAPI DI.
"""

from services.context import build_context
from services.conversation import (
    ConversationSession,
    ReplyStream,
    SessionBusyError,
    SessionClosedError,
    SessionState,
)
from services.document import (
    DocumentParser,
    FileTooLargeError,
    ParseFailureError,
    UnsupportedFormatError,
)
from services.reader import (
    DocumentSupersededError,
    NoDocumentError,
    PageOutOfRangeError,
    ReaderSession,
)
from services.types import (
    ChatTurn,
    Document,
    DocumentKind,
    GenerationRequest,
    OutlineEntry,
    Role,
)

__all__ = [
    # Core services
    "build_context",
    "ConversationSession",
    "ReplyStream",
    "SessionBusyError",
    "SessionClosedError",
    "SessionState",
    "ReaderSession",
    "DocumentSupersededError",
    "NoDocumentError",
    "PageOutOfRangeError",
    # Document services
    "DocumentParser",
    "FileTooLargeError",
    "ParseFailureError",
    "UnsupportedFormatError",
    # Types
    "ChatTurn",
    "Document",
    "DocumentKind",
    "GenerationRequest",
    "OutlineEntry",
    "Role",
]
