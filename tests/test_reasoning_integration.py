"""Integration tests for the Claude-backed reasoning client.

These tests make real calls through the Claude CLI and require credentials.
"""

import shutil

import pytest

from task_enrichment.api.models import ChatRole, Task, TaskType
from task_enrichment.claude.reasoning_client import ClaudeReasoningClient

requires_claude = pytest.mark.skipif(
    shutil.which("claude") is None, reason="Claude CLI not installed"
)

TASK = Task(
    id="Reply to Dana",
    title="Reply to Dana about the offsite",
    task_type=TaskType.COMMUNICATE,
)


def test_disabled_client_is_not_ready() -> None:
    assert ClaudeReasoningClient("claude", enabled=False).is_ready is False


@pytest.mark.integration
@requires_claude
@pytest.mark.asyncio
async def test_estimate_duration() -> None:
    estimate = await ClaudeReasoningClient("claude").estimate_duration(TASK)

    assert 5 <= estimate.minutes <= 480
    assert estimate.confidence in ("high", "medium", "low")


@pytest.mark.integration
@requires_claude
@pytest.mark.asyncio
async def test_generate_strategy() -> None:
    strategy = await ClaudeReasoningClient("claude").generate_strategy(TASK)

    assert strategy.overview
    assert strategy.actionable_steps


@pytest.mark.integration
@requires_claude
@pytest.mark.asyncio
async def test_converse() -> None:
    reply = await ClaudeReasoningClient("claude").converse([], "What should I do first?", task=TASK)

    assert reply.role is ChatRole.ASSISTANT
    assert reply.content
