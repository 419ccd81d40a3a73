"""Reading session: the open document, the reader's position and the chat.

The Viewer talks to a single ``ReaderSession``. It owns:
- the current ``Document`` (read-only once parsed)
- the current page index, persisted through a ``ProgressStore``
- the ``ConversationSession`` for that document

Loading is last-submission-wins: if a second file is opened while the first
is still parsing, the first result is discarded and never installed.
"""

import logging

from db.progress import ProgressStore, ProgressStoreError
from llm.base import BaseGenerator
from llm.prompts import WELCOME_MESSAGE
from services.conversation import (
    DEFAULT_HISTORY_WINDOW,
    ConversationSession,
    ReplyStream,
)
from services.document import DocumentParser
from services.types import Document

logger = logging.getLogger(__name__)


class NoDocumentError(Exception):
    """Raised when an operation needs an open document and there is none."""

    pass


class PageOutOfRangeError(Exception):
    """Raised when a page index falls outside the document."""

    pass


class DocumentSupersededError(Exception):
    """Raised to the caller of a load that a newer load replaced."""

    pass


class ReaderSession:
    """Single logical reading session.

    Args:
        parser: Document parser.
        progress_store: Durable store for the last viewed page.
        generator: Text generator used by each conversation.
        history_window: Prior turns sent with each chat request.
    """

    def __init__(
        self,
        parser: DocumentParser,
        progress_store: ProgressStore,
        generator: BaseGenerator,
        *,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ) -> None:
        self._parser = parser
        self._progress = progress_store
        self._generator = generator
        self._history_window = history_window

        self._document: Document | None = None
        self._current_page = 0
        self._conversation: ConversationSession | None = None
        self._load_ticket = 0

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def conversation(self) -> ConversationSession | None:
        return self._conversation

    def require_document(self) -> Document:
        if self._document is None:
            raise NoDocumentError("No document is open")
        return self._document

    async def open_document(
        self, data: bytes, declared_mime: str | None, filename: str
    ) -> Document:
        """Parse and install a document, restoring the saved page.

        Raises:
            DocumentSupersededError: A newer open_document call started, or the
                document was closed, while this one was loading.
            UnsupportedFormatError, ParseFailureError, FileTooLargeError: From
                the parser.
        """
        self._load_ticket += 1
        ticket = self._load_ticket

        document = await self._parser.parse_file(data, declared_mime, filename)
        if ticket != self._load_ticket:
            logger.info("Discarding superseded load of %s", document.file_name)
            raise DocumentSupersededError(f"Load of {document.file_name} was superseded")

        page = await self._restore_page(document)
        if ticket != self._load_ticket:
            logger.info("Discarding superseded load of %s", document.file_name)
            raise DocumentSupersededError(f"Load of {document.file_name} was superseded")

        if self._conversation is not None:
            self._conversation.close()

        self._document = document
        self._current_page = page
        self._conversation = self._new_conversation(document)

        logger.info(
            "Opened %s (%d pages) at page %d",
            document.file_name,
            document.page_count,
            page + 1,
        )
        return document

    async def _restore_page(self, document: Document) -> int:
        try:
            saved = await self._progress.get_saved_page(document.file_name)
        except ProgressStoreError as e:
            logger.warning("Could not restore progress for %s: %s", document.file_name, e)
            return 0

        if saved is None:
            return 0
        return min(max(saved, 0), document.page_count - 1)

    def _new_conversation(self, document: Document) -> ConversationSession:
        return ConversationSession(
            self._generator,
            history_window=self._history_window,
            welcome_message=WELCOME_MESSAGE.format(title=document.title),
        )

    def _check_page(self, document: Document, page_index: int) -> None:
        if not 0 <= page_index < document.page_count:
            raise PageOutOfRangeError(
                f"Page index {page_index} out of range (0-{document.page_count - 1})"
            )

    async def go_to_page(self, page_index: int) -> int:
        """Move to a page and persist it as the reading position."""
        document = self.require_document()
        self._check_page(document, page_index)
        self._current_page = page_index

        try:
            await self._progress.save_progress(document.file_name, page_index)
        except ProgressStoreError as e:
            logger.warning("Could not save progress for %s: %s", document.file_name, e)

        return page_index

    def render_unit(self, page_index: int) -> bytes | str:
        """Render payload for a page (PDF bytes or EPUB markup)."""
        document = self.require_document()
        self._check_page(document, page_index)
        return document.render_payload[page_index]

    def submit(self, user_text: str) -> ReplyStream:
        """Ask the assistant about the pages read so far.

        Raises:
            NoDocumentError: If no document is open.
            SessionBusyError: If an answer is still streaming.
        """
        document = self.require_document()
        return self._conversation.submit(user_text, document.pages, self._current_page)

    def reset_conversation(self) -> None:
        """Tear down the chat and start a fresh one for the same document."""
        document = self.require_document()
        self._conversation.close()
        self._conversation = self._new_conversation(document)

    def close_document(self) -> None:
        """Tear down the chat and forget the document.

        A load still parsing is abandoned and will not be installed.
        """
        self._load_ticket += 1
        if self._conversation is not None:
            self._conversation.close()
        self._conversation = None
        self._document = None
        self._current_page = 0
        logger.info("Document closed")
