"""Tests for the reading session."""

import asyncio

import pytest

from conftest import FakeGenerator
from db.progress import ProgressStore, ProgressStoreError
from services.conversation import SessionState
from services.document import DocumentParser
from services.reader import (
    DocumentSupersededError,
    NoDocumentError,
    PageOutOfRangeError,
    ReaderSession,
)
from services.types import Document, DocumentKind


def make_document(file_name, pages):
    return Document(
        title=file_name.rsplit(".", 1)[0],
        file_name=file_name,
        kind=DocumentKind.EPUB,
        pages=tuple(pages),
        render_payload=tuple(f"<p>{text}</p>" for text in pages),
    )


class StubParser:
    """Parser returning prepared documents, optionally waiting on a gate."""

    def __init__(self, documents, gates=None):
        self.documents = documents
        self.gates = gates or {}

    async def parse_file(self, data, declared_mime, filename):
        gate = self.gates.get(filename)
        if gate is not None:
            await gate.wait()
        return self.documents[filename]


class FailingProgressStore(ProgressStore):
    async def get_saved_page(self, document_key):
        raise ProgressStoreError("disk unavailable")

    async def save_progress(self, document_key, page_index):
        raise ProgressStoreError("disk unavailable")


BOOK = make_document("book.epub", ["one", "two", "three", "four"])


@pytest.fixture
def reader(progress_store, fake_generator):
    parser = StubParser({"book.epub": BOOK})
    return ReaderSession(parser, progress_store, fake_generator)


class TestOpenDocument:
    """Tests for opening documents and restoring position."""

    @pytest.mark.asyncio
    async def test_opens_at_first_page(self, reader):
        document = await reader.open_document(b"data", None, "book.epub")

        assert document is BOOK
        assert reader.document is BOOK
        assert reader.current_page == 0

    @pytest.mark.asyncio
    async def test_restores_saved_page(self, reader, progress_store):
        await progress_store.save_progress("book.epub", 2)

        await reader.open_document(b"data", None, "book.epub")

        assert reader.current_page == 2

    @pytest.mark.asyncio
    async def test_saved_page_clamped_to_document(self, reader, progress_store):
        await progress_store.save_progress("book.epub", 40)

        await reader.open_document(b"data", None, "book.epub")

        assert reader.current_page == 3

    @pytest.mark.asyncio
    async def test_store_failure_opens_at_start(self, fake_generator):
        reader = ReaderSession(
            StubParser({"book.epub": BOOK}), FailingProgressStore(), fake_generator
        )

        await reader.open_document(b"data", None, "book.epub")
        assert reader.current_page == 0

        assert await reader.go_to_page(1) == 1
        assert reader.current_page == 1

    @pytest.mark.asyncio
    async def test_new_conversation_with_welcome(self, reader):
        await reader.open_document(b"data", None, "book.epub")

        turns = reader.conversation.turns
        assert len(turns) == 1
        assert "book" in turns[0].text

    @pytest.mark.asyncio
    async def test_reopen_closes_previous_conversation(self, reader):
        await reader.open_document(b"data", None, "book.epub")
        first = reader.conversation

        await reader.open_document(b"data", None, "book.epub")

        assert first.state is SessionState.CLOSED
        assert reader.conversation is not first
        assert reader.conversation.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_last_submission_wins(self, progress_store, fake_generator):
        slow = make_document("slow.pdf", ["slow"])
        fast = make_document("fast.pdf", ["fast"])
        gate = asyncio.Event()
        parser = StubParser({"slow.pdf": slow, "fast.pdf": fast}, gates={"slow.pdf": gate})
        reader = ReaderSession(parser, progress_store, fake_generator)

        first = asyncio.create_task(reader.open_document(b"1", None, "slow.pdf"))
        await asyncio.sleep(0)
        await reader.open_document(b"2", None, "fast.pdf")
        gate.set()

        with pytest.raises(DocumentSupersededError):
            await first
        assert reader.document is fast

    @pytest.mark.asyncio
    async def test_close_during_load_discards_result(self, progress_store, fake_generator):
        gate = asyncio.Event()
        parser = StubParser({"book.epub": BOOK}, gates={"book.epub": gate})
        reader = ReaderSession(parser, progress_store, fake_generator)

        load = asyncio.create_task(reader.open_document(b"data", None, "book.epub"))
        await asyncio.sleep(0)
        reader.close_document()
        gate.set()

        with pytest.raises(DocumentSupersededError):
            await load
        assert reader.document is None
        assert reader.conversation is None

    @pytest.mark.asyncio
    async def test_undecodable_progress_opens_at_start(self, reader, progress_store):
        await progress_store.save_progress("book.epub", 2)
        progress_store._path_for("book.epub").write_bytes(b"\xff\xfe\x00")

        await reader.open_document(b"data", None, "book.epub")

        assert reader.document is BOOK
        assert reader.current_page == 0

    @pytest.mark.asyncio
    async def test_real_parser(self, progress_store, fake_generator, sample_epub, test_settings):
        reader = ReaderSession(DocumentParser(test_settings), progress_store, fake_generator)

        document = await reader.open_document(sample_epub, None, "novel.epub")

        assert document.page_count == 2
        assert reader.render_unit(1) == "<p>The butler did it.</p>"


class TestNavigation:
    """Tests for page moves and persistence."""

    @pytest.mark.asyncio
    async def test_go_to_page_persists(self, reader, progress_store):
        await reader.open_document(b"data", None, "book.epub")

        await reader.go_to_page(3)

        assert reader.current_page == 3
        assert await progress_store.get_saved_page("book.epub") == 3

    @pytest.mark.asyncio
    async def test_go_to_page_out_of_range(self, reader):
        await reader.open_document(b"data", None, "book.epub")

        with pytest.raises(PageOutOfRangeError):
            await reader.go_to_page(4)
        assert reader.current_page == 0

    def test_render_unit_out_of_range(self, reader):
        reader._document = BOOK

        with pytest.raises(PageOutOfRangeError):
            reader.render_unit(-1)

    @pytest.mark.asyncio
    async def test_no_document(self, reader):
        with pytest.raises(NoDocumentError):
            await reader.go_to_page(0)
        with pytest.raises(NoDocumentError):
            reader.render_unit(0)
        with pytest.raises(NoDocumentError):
            reader.submit("hi")


class TestChat:
    """Tests for chat through the reading session."""

    @pytest.mark.asyncio
    async def test_chat_uses_current_page(self, progress_store):
        generator = FakeGenerator(snapshots=["ok"])
        reader = ReaderSession(StubParser({"book.epub": BOOK}), progress_store, generator)
        await reader.open_document(b"data", None, "book.epub")
        await reader.go_to_page(1)

        async for _ in reader.submit("what happened?"):
            pass

        system = generator.calls[0]["system"]
        assert "[Page 2]: two" in system
        assert "three" not in system

    @pytest.mark.asyncio
    async def test_reset_conversation(self, reader):
        await reader.open_document(b"data", None, "book.epub")
        async for _ in reader.submit("hi"):
            pass
        old = reader.conversation

        reader.reset_conversation()

        assert old.is_closed
        assert len(reader.conversation.turns) == 1

    @pytest.mark.asyncio
    async def test_close_document(self, reader):
        await reader.open_document(b"data", None, "book.epub")
        conversation = reader.conversation

        reader.close_document()

        assert reader.document is None
        assert reader.conversation is None
        assert conversation.is_closed
