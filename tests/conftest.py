"""Test fixtures for the task enrichment service."""

import asyncio
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from task_enrichment.api.models import (
    ChatMessage,
    ChatRole,
    DurationEstimate,
    ResourceSuggestion,
    Strategy,
    SubTask,
    Task,
    TaskType,
)
from task_enrichment.claude.parser import ReasoningError
from task_enrichment.enrichment.feedback import FeedbackEvent
from task_enrichment.enrichment.orchestrator import TaskEnrichmentOrchestrator
from task_enrichment.facet_cache import FacetCache


class FakeReasoningClient:
    """Scriptable reasoning client.

    Calls block on ``gate`` when set, and raise for every operation named in
    ``failing``.
    """

    def __init__(self) -> None:
        self.ready = True
        self.failing: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.calls: Counter[str] = Counter()
        self.histories: list[list[ChatMessage]] = []
        self.strategy = Strategy(
            overview="Draft the summary first. Then fill in the numbers.",
            key_points=["Start with the summary"],
            actionable_steps=["Open last quarter's report", "Write the summary"],
            potential_obstacles=["Missing data"],
        )
        self.duration = DurationEstimate(minutes=75, confidence="high", reasoning="Similar reports")
        self.resources = [
            ResourceSuggestion(
                display_title="Quarterly Report Walkthrough",
                search_query="how to write a quarterly business report",
                relevance_score=0.95,
            )
        ]
        self.reply = "Start by opening last quarter's report."

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def _call(self, name: str, value: Any) -> Any:
        self.calls[name] += 1
        if self.gate is not None:
            await self.gate.wait()
        if name in self.failing:
            raise ReasoningError(f"{name} failed")
        return value

    async def generate_strategy(self, task: Task) -> Strategy:
        return await self._call("strategy", self.strategy)

    async def estimate_duration(self, task: Task) -> DurationEstimate:
        return await self._call("duration", self.duration)

    async def generate_resource_searches(
        self, title: str, context: str | None, max_results: int
    ) -> list[ResourceSuggestion]:
        return await self._call("resources", self.resources[:max_results])

    async def converse(
        self, history: list[ChatMessage], message: str, task: Task | None = None
    ) -> ChatMessage:
        self.histories.append(list(history))
        return await self._call("converse", ChatMessage(role=ChatRole.ASSISTANT, content=self.reply))


class FakeSubTaskStore:
    """In-memory sub-task store that can be switched to fail."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, SubTask]] = {}
        self.fail_writes = False
        self.fail_reads = False

    async def list_subtasks(self, task_id: str) -> list[SubTask]:
        if self.fail_reads:
            raise OSError("store offline")
        return sorted(self.records.get(task_id, {}).values(), key=lambda s: s.order_index)

    async def upsert_subtask(self, subtask: SubTask) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise OSError("store offline")
        self.records.setdefault(subtask.task_id, {})[subtask.id] = subtask

    async def delete_subtask(self, task_id: str, subtask_id: str) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise OSError("store offline")
        self.records.get(task_id, {}).pop(subtask_id, None)


class RecordingFeedback:
    """Feedback sink that records every event."""

    def __init__(self) -> None:
        self.events: list[tuple[FeedbackEvent, dict[str, Any]]] = []

    def notify(self, event: FeedbackEvent, **details: Any) -> None:
        self.events.append((event, details))

    def names(self) -> list[FeedbackEvent]:
        return [event for event, _ in self.events]


async def instant_sleep(_: float) -> None:
    """Tick without waiting real time."""
    await asyncio.sleep(0)


@pytest.fixture
def client() -> FakeReasoningClient:
    return FakeReasoningClient()


@pytest.fixture
def subtask_store() -> FakeSubTaskStore:
    return FakeSubTaskStore()


@pytest.fixture
def cache() -> FacetCache:
    return FacetCache()


@pytest.fixture
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture
def sample_task() -> Task:
    """The quarterly report task used throughout the tests."""
    return Task(
        id="Prepare quarterly report",
        title="Prepare quarterly report",
        notes="Numbers are in the finance folder.",
        priority=2,
        task_type=TaskType.CREATE,
    )


@pytest.fixture
def make_card(
    client: FakeReasoningClient,
    cache: FacetCache,
    subtask_store: FakeSubTaskStore,
    feedback: RecordingFeedback,
) -> Callable[..., TaskEnrichmentOrchestrator]:
    """Build orchestrators wired to the fakes."""

    def factory(task: Task, **kwargs: Any) -> TaskEnrichmentOrchestrator:
        kwargs.setdefault("feedback", feedback)
        kwargs.setdefault("sleep", instant_sleep)
        return TaskEnrichmentOrchestrator(
            task, client=client, cache=cache, subtask_store=subtask_store, **kwargs
        )

    return factory


@pytest.fixture
def tasks_dir(tmp_path: Path) -> Path:
    """Create an empty tasks folder."""
    directory = tmp_path / "tasks"
    directory.mkdir()
    return directory


@pytest.fixture
def sample_task_file(tasks_dir: Path) -> Path:
    """Create a sample task file."""
    task_file = tasks_dir / "Prepare quarterly report.md"

    content = """---
title: Prepare quarterly report
task_type: create
priority: high
duration: 90
scheduled_time: 2026-03-02T09:00:00
times_rescheduled: 2
---
Numbers are in the finance folder.
"""

    task_file.write_text(content)
    return task_file
