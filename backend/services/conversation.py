"""Conversation session for the reading assistant.

Holds the ordered chat turns, builds one generation request per user turn
(bounded history + context window for the current page) and streams the
answer back as cumulative snapshots.

State machine:
    IDLE --submit--> AWAITING --stream done / failure--> IDLE
    any  --close-->  CLOSED

Only one request may be in flight. Teardown sets a cancellation token: an
in-flight stream stops delivering and never touches a turn afterwards.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable, Sequence
from contextlib import aclosing
from enum import Enum

from llm.base import BaseGenerator, GenerationError
from llm.prompts import GENERATION_FALLBACK_MESSAGE, READING_ASSISTANT_SYSTEM_PROMPT
from services.context import build_context
from services.types import ChatTurn, GenerationRequest, Role

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 6

_ROLE_LABELS = {Role.USER: "User", Role.ASSISTANT: "Assistant"}


class SessionBusyError(Exception):
    """Raised when a turn is submitted while another is still streaming."""

    pass


class SessionClosedError(Exception):
    """Raised when a turn is submitted to a torn-down session."""

    pass


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    CLOSED = "closed"


class ConversationSession:
    """Owns the turn list and the single in-flight generation.

    Args:
        generator: Text generator yielding cumulative snapshots.
        history_window: Max prior turns sent with each request.
        fallback_message: Assistant text used when generation fails.
        welcome_message: Optional assistant turn to open the conversation.
    """

    def __init__(
        self,
        generator: BaseGenerator,
        *,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        fallback_message: str = GENERATION_FALLBACK_MESSAGE,
        welcome_message: str | None = None,
    ) -> None:
        self._generator = generator
        self._history_window = history_window
        self._fallback_message = fallback_message
        self._turns: list[ChatTurn] = []
        self._state = SessionState.IDLE
        self._cancelled = asyncio.Event()
        self.last_request: GenerationRequest | None = None
        self._in_flight: ChatTurn | None = None

        if welcome_message:
            self._turns.append(ChatTurn(role=Role.ASSISTANT, text=welcome_message))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def turns(self) -> tuple[ChatTurn, ...]:
        return tuple(self._turns)

    @property
    def is_closed(self) -> bool:
        return self._cancelled.is_set()

    def history_window(self) -> list[ChatTurn]:
        """Most recent non-system turns, oldest first."""
        if self._history_window <= 0:
            return []
        eligible = [turn for turn in self._turns if turn.role is not Role.SYSTEM]
        return eligible[-self._history_window :]

    def build_request(
        self,
        user_text: str,
        pages: Sequence[str],
        current_page_index: int,
    ) -> GenerationRequest:
        """Build the system instruction and prompt for a new user turn."""
        context = build_context(pages, current_page_index)
        last_page = min(current_page_index, len(pages) - 1) + 1
        system = READING_ASSISTANT_SYSTEM_PROMPT.format(
            last_page=last_page, context=context
        )

        lines = [
            f"{_ROLE_LABELS[turn.role]}: {turn.text}" for turn in self.history_window()
        ]
        lines.append(f"User: {user_text}")
        lines.append("Assistant:")

        return GenerationRequest(
            system=system, prompt="\n".join(lines), page_index=current_page_index
        )

    def submit(
        self,
        user_text: str,
        pages: Sequence[str],
        current_page_index: int,
    ) -> "ReplyStream":
        """Start a new turn and return its snapshot stream.

        The context window is derived from ``current_page_index`` now; earlier
        turns are never re-answered with newer context. Closing the returned
        stream, even before iterating it, ends the turn.

        Raises:
            SessionClosedError: If the session was torn down.
            SessionBusyError: If a previous turn is still streaming.
            ValueError: If the message is blank.
        """
        if self._cancelled.is_set():
            raise SessionClosedError("Conversation has been closed")
        if self._state is SessionState.AWAITING:
            raise SessionBusyError("A response is already being generated")

        user_text = user_text.strip()
        if not user_text:
            raise ValueError("Message cannot be empty")

        request = self.build_request(user_text, pages, current_page_index)

        self._turns.append(ChatTurn(role=Role.USER, text=user_text))
        reply = ChatTurn(role=Role.ASSISTANT, is_streaming=True)
        self._turns.append(reply)
        self._state = SessionState.AWAITING
        self._in_flight = reply
        self.last_request = request

        logger.info(
            "Submitted turn with context up to page %d (%d turns in log)",
            current_page_index + 1,
            len(self._turns),
        )
        return ReplyStream(self._deliver(reply, request), lambda: self._finish(reply))

    async def _deliver(
        self, reply: ChatTurn, request: GenerationRequest
    ) -> AsyncGenerator[str, None]:
        try:
            async with aclosing(
                self._generator.stream(request.prompt, request.system)
            ) as upstream:
                async for snapshot in upstream:
                    if self._cancelled.is_set():
                        logger.debug("Session closed, dropping stream")
                        return
                    # upstream yields growing prefixes, so replace rather than append
                    reply.text = snapshot
                    yield snapshot

        except GenerationError as e:
            logger.warning("Generation failed: %s", e)
            if not self._cancelled.is_set():
                reply.text = self._fallback_message
                reply.is_streaming = False
                yield reply.text

        except Exception:
            logger.exception("Generator raised unexpectedly")
            if not self._cancelled.is_set():
                reply.text = self._fallback_message
                reply.is_streaming = False
                yield reply.text

        finally:
            self._finish(reply)

    def _finish(self, reply: ChatTurn) -> None:
        """End the in-flight turn once; a torn-down session is left as is."""
        if self._in_flight is not reply or self._cancelled.is_set():
            return
        self._in_flight = None
        reply.is_streaming = False
        self._state = SessionState.IDLE

    def close(self) -> None:
        """Tear down the session and cancel any in-flight stream."""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self._state = SessionState.CLOSED
        logger.info("Conversation closed (%d turns)", len(self._turns))


class ReplyStream:
    """Async iterator over one turn's snapshots.

    ``aclose()`` ends the turn whether or not iteration ever started, so a
    caller that drops the stream early does not leave the session busy.
    """

    def __init__(
        self, snapshots: AsyncGenerator[str, None], on_close: Callable[[], None]
    ) -> None:
        self._snapshots = snapshots
        self._on_close = on_close

    def __aiter__(self) -> "ReplyStream":
        return self

    async def __anext__(self) -> str:
        return await self._snapshots.__anext__()

    async def aclose(self) -> None:
        try:
            await self._snapshots.aclose()
        finally:
            self._on_close()
