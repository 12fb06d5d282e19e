"""Tests for ChatSession."""

import pytest

from task_enrichment.api.models import ChatMessage, ChatRole
from task_enrichment.enrichment.chat import ChatSession


async def _echo(history: list[ChatMessage], message: str) -> ChatMessage:
    return ChatMessage(role=ChatRole.ASSISTANT, content=f"{len(history)}: {message}")


async def _broken(history: list[ChatMessage], message: str) -> ChatMessage:
    raise TimeoutError("reasoning service timed out")


@pytest.mark.asyncio
async def test_responder_receives_prior_history() -> None:
    session = ChatSession()

    await session.send("first", _echo)
    reply = await session.send("second", _echo)

    assert reply == ChatMessage(role=ChatRole.ASSISTANT, content="2: second")
    assert len(session.messages) == 4


@pytest.mark.asyncio
async def test_failure_records_error_until_next_success() -> None:
    session = ChatSession()

    assert await session.send("hello", _broken) is None
    assert session.last_error == "reasoning service timed out"
    assert session.is_thinking is False
    assert [m.role for m in session.messages] == [ChatRole.USER]

    await session.send("again", _echo)
    assert session.last_error is None


@pytest.mark.asyncio
async def test_blank_message_rejected() -> None:
    session = ChatSession()

    assert await session.send("  \n", _echo) is None
    assert session.messages == ()
