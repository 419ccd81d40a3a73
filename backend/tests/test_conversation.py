"""Tests for the conversation session."""

import asyncio

import pytest

from conftest import FakeGenerator
from llm.base import GenerationError
from llm.prompts import GENERATION_FALLBACK_MESSAGE
from services.conversation import (
    ConversationSession,
    SessionBusyError,
    SessionClosedError,
    SessionState,
)
from services.types import ChatTurn, Role

PAGES = ["Alice meets the rabbit.", "Alice falls.", "The queen is revealed."]


async def collect(stream):
    return [snapshot async for snapshot in stream]


class TestSubmit:
    """Tests for submitting turns and streaming replies."""

    @pytest.mark.asyncio
    async def test_snapshots_replace_reply_text(self, fake_generator):
        session = ConversationSession(fake_generator)

        snapshots = await collect(session.submit("Who is Alice?", PAGES, 0))

        assert snapshots == ["H", "He", "Hello"]
        user, reply = session.turns
        assert user.role is Role.USER
        assert user.text == "Who is Alice?"
        assert reply.role is Role.ASSISTANT
        assert reply.text == "Hello"
        assert reply.is_streaming is False
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_reply_is_streaming_until_done(self, fake_generator):
        session = ConversationSession(fake_generator)
        stream = session.submit("hi", PAGES, 0)

        assert session.state is SessionState.AWAITING
        assert session.turns[-1].is_streaming is True
        assert session.turns[-1].text == ""

        await collect(stream)
        assert session.turns[-1].is_streaming is False

    @pytest.mark.asyncio
    async def test_busy_session_rejects_second_submit(self, fake_generator):
        session = ConversationSession(fake_generator)
        stream = session.submit("first", PAGES, 0)

        with pytest.raises(SessionBusyError):
            session.submit("second", PAGES, 0)

        await collect(stream)
        assert [turn.text for turn in session.turns] == ["first", "Hello"]
        assert len(fake_generator.calls) == 1

    @pytest.mark.asyncio
    async def test_submit_after_completion(self, fake_generator):
        session = ConversationSession(fake_generator)
        await collect(session.submit("first", PAGES, 0))
        await collect(session.submit("second", PAGES, 0))

        assert [turn.text for turn in session.turns] == [
            "first",
            "Hello",
            "second",
            "Hello",
        ]

    def test_blank_message_rejected(self, fake_generator):
        session = ConversationSession(fake_generator)

        with pytest.raises(ValueError):
            session.submit("   ", PAGES, 0)
        assert session.turns == ()
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_message_is_trimmed(self, fake_generator):
        session = ConversationSession(fake_generator)
        await collect(session.submit("  hello  ", PAGES, 0))

        assert session.turns[0].text == "hello"

    @pytest.mark.asyncio
    async def test_closing_unstarted_stream_ends_turn(self, fake_generator):
        session = ConversationSession(fake_generator)
        stream = session.submit("first", PAGES, 0)

        await stream.aclose()

        assert session.state is SessionState.IDLE
        assert session.turns[-1].is_streaming is False
        assert fake_generator.calls == []

        snapshots = await collect(session.submit("second", PAGES, 0))
        assert snapshots == ["H", "He", "Hello"]

    @pytest.mark.asyncio
    async def test_closing_partly_read_stream_ends_turn(self, fake_generator):
        session = ConversationSession(fake_generator)
        stream = session.submit("first", PAGES, 0)

        assert await stream.__anext__() == "H"
        await stream.aclose()

        assert session.state is SessionState.IDLE
        assert session.turns[-1].text == "H"
        assert session.turns[-1].is_streaming is False

    @pytest.mark.asyncio
    async def test_closing_old_stream_leaves_new_turn_alone(self, fake_generator):
        session = ConversationSession(fake_generator)
        first = session.submit("first", PAGES, 0)
        await collect(first)

        session.submit("second", PAGES, 0)
        await first.aclose()

        assert session.state is SessionState.AWAITING
        assert session.turns[-1].is_streaming is True

    def test_welcome_turn(self, fake_generator):
        session = ConversationSession(fake_generator, welcome_message="Welcome!")

        assert len(session.turns) == 1
        assert session.turns[0].role is Role.ASSISTANT
        assert session.turns[0].text == "Welcome!"


class TestGenerationFailure:
    """Tests for the fallback path."""

    @pytest.mark.asyncio
    async def test_failure_yields_fallback(self):
        generator = FakeGenerator(snapshots=["Par"], error=GenerationError("timeout"))
        session = ConversationSession(generator)

        snapshots = await collect(session.submit("hi", PAGES, 0))

        assert snapshots == ["Par", GENERATION_FALLBACK_MESSAGE]
        reply = session.turns[-1]
        assert reply.text == GENERATION_FALLBACK_MESSAGE
        assert reply.is_streaming is False
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_unexpected_generator_error_yields_fallback(self):
        generator = FakeGenerator(snapshots=["Par"], error=RuntimeError("bug"))
        session = ConversationSession(generator)

        snapshots = await collect(session.submit("hi", PAGES, 0))

        assert snapshots == ["Par", GENERATION_FALLBACK_MESSAGE]
        assert session.turns[-1].text == GENERATION_FALLBACK_MESSAGE
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_session_usable_after_failure(self):
        generator = FakeGenerator(snapshots=[], error=GenerationError("down"))
        session = ConversationSession(generator)
        await collect(session.submit("hi", PAGES, 0))

        generator.error = None
        generator.snapshots = ["Back"]
        snapshots = await collect(session.submit("again", PAGES, 0))

        assert snapshots == ["Back"]
        assert len(session.turns) == 4


class TestRequestBuilding:
    """Tests for the prompt and context sent to the generator."""

    @pytest.mark.asyncio
    async def test_context_limited_to_current_page(self, fake_generator):
        session = ConversationSession(fake_generator)

        await collect(session.submit("What happened?", PAGES, 1))

        system = fake_generator.calls[0]["system"]
        assert "[Page 1]: Alice meets the rabbit." in system
        assert "[Page 2]: Alice falls." in system
        assert "queen" not in system
        assert "pages 1 to 2" in system

    @pytest.mark.asyncio
    async def test_context_recomputed_per_turn(self, fake_generator):
        session = ConversationSession(fake_generator)

        await collect(session.submit("one", PAGES, 0))
        await collect(session.submit("two", PAGES, 2))

        assert "queen" not in fake_generator.calls[0]["system"]
        assert "queen" in fake_generator.calls[1]["system"]

    @pytest.mark.asyncio
    async def test_later_page_text_never_in_prompt(self, fake_generator):
        session = ConversationSession(fake_generator)

        await collect(session.submit("Who is the queen?", PAGES, 0))

        call = fake_generator.calls[0]
        assert "revealed" not in call["system"]
        assert "revealed" not in call["prompt"]

    @pytest.mark.asyncio
    async def test_prompt_format(self, fake_generator):
        session = ConversationSession(fake_generator)
        await collect(session.submit("first", PAGES, 0))
        await collect(session.submit("second", PAGES, 0))

        assert fake_generator.calls[1]["prompt"] == (
            "User: first\nAssistant: Hello\nUser: second\nAssistant:"
        )

    @pytest.mark.asyncio
    async def test_history_window_bounds_prior_turns(self):
        generator = FakeGenerator(snapshots=["ok"])
        session = ConversationSession(generator, history_window=6)
        for i in range(5):
            await collect(session.submit(f"question {i}", PAGES, 0))

        await collect(session.submit("latest", PAGES, 0))

        prompt = generator.calls[-1]["prompt"]
        lines = prompt.split("\n")
        # six prior turns, the new user line and the open assistant line
        assert len(lines) == 8
        assert "question 1" not in prompt
        assert lines[0] == "User: question 2"
        assert lines[-2:] == ["User: latest", "Assistant:"]

    def test_history_window_excludes_system_turns(self, fake_generator):
        session = ConversationSession(fake_generator, history_window=2)
        session._turns.extend(
            [
                ChatTurn(role=Role.USER, text="u"),
                ChatTurn(role=Role.ASSISTANT, text="a"),
                ChatTurn(role=Role.SYSTEM, text="s"),
            ]
        )

        assert [turn.text for turn in session.history_window()] == ["u", "a"]

    def test_zero_history_window(self, fake_generator):
        session = ConversationSession(
            fake_generator, history_window=0, welcome_message="Hi"
        )

        assert session.history_window() == []
        request = session.build_request("q", PAGES, 0)
        assert request.prompt == "User: q\nAssistant:"


class TestClose:
    """Tests for teardown."""

    @pytest.mark.asyncio
    async def test_close_mid_stream_stops_delivery(self):
        gate = asyncio.Event()
        generator = FakeGenerator(snapshots=["late"], gate=gate)
        session = ConversationSession(generator)
        received = []

        async def consume():
            async for snapshot in session.submit("hi", PAGES, 0):
                received.append(snapshot)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        session.close()
        gate.set()
        await task

        assert received == []
        assert session.turns[-1].text == ""
        assert session.state is SessionState.CLOSED

    def test_submit_after_close(self, fake_generator):
        session = ConversationSession(fake_generator)
        session.close()

        assert session.is_closed
        with pytest.raises(SessionClosedError):
            session.submit("hi", PAGES, 0)
        assert fake_generator.calls == []
