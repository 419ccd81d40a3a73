"""Shared types and dataclasses for services.

Provides typed alternatives to dict[str, Any] for better type safety.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class DocumentKind(str, Enum):
    """Supported document container formats."""

    PDF = "pdf"
    EPUB = "epub"


class Role(str, Enum):
    """Author of a chat turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class OutlineEntry:
    """Table of contents entry pointing at a page."""

    title: str
    page_index: int
    level: int = 0


@dataclass(frozen=True)
class Document:
    """A parsed document, immutable once produced.

    ``pages`` holds the plain text used for the assistant's context.
    ``render_payload`` is kept 1:1 with ``pages``: for PDFs every entry is the
    original file bytes, for EPUBs it is the page's body markup.
    """

    title: str
    file_name: str
    kind: DocumentKind
    pages: tuple[str, ...]
    render_payload: tuple[bytes | str, ...]
    outline: tuple[OutlineEntry, ...] = ()

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass
class ChatTurn:
    """One message in the conversation log."""

    role: Role
    text: str = ""
    is_streaming: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class GenerationRequest:
    """Everything sent to the generator for one user turn."""

    system: str
    prompt: str
    page_index: int
