"""Tests for ConnectionManager broadcasting."""

import asyncio
import json
from typing import Any

import pytest

from task_enrichment.enrichment.feedback import FeedbackEvent
from task_enrichment.websocket.connection_manager import BroadcastFeedback, ConnectionManager


class FakeWebSocket:
    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.sent: list[dict[str, Any]] = []

    async def accept(self) -> None:
        pass

    async def send_text(self, text: str) -> None:
        if self.broken:
            raise ConnectionError("socket closed")
        self.sent.append(json.loads(text))


@pytest.mark.asyncio
async def test_broadcast_drops_dead_connections() -> None:
    manager = ConnectionManager()
    alive, dead = FakeWebSocket(), FakeWebSocket(broken=True)
    await manager.connect(alive)  # type: ignore[arg-type]
    await manager.connect(dead)  # type: ignore[arg-type]

    await manager.broadcast({"type": "modified", "task_id": "a"})

    assert alive.sent == [{"type": "modified", "task_id": "a"}]
    assert manager.active_connections == [alive]


def test_publish_without_loop_is_dropped() -> None:
    ConnectionManager().card_changed("a", "strategy_loaded")


@pytest.mark.asyncio
async def test_feedback_is_published() -> None:
    manager = ConnectionManager()
    socket = FakeWebSocket()
    await manager.connect(socket)  # type: ignore[arg-type]

    BroadcastFeedback(manager, "a").notify(FeedbackEvent.CHALLENGE_TICK, remaining=3)
    await asyncio.sleep(0)

    assert socket.sent == [
        {"type": "feedback", "task_id": "a", "event": "challenge_tick", "remaining": 3}
    ]
