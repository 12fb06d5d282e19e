"""Tests for YamlSubTaskStore."""

import asyncio
from datetime import datetime
from pathlib import Path

import pytest

from task_enrichment.api.models import SubTask, SubTaskStatus
from task_enrichment.store.subtask_store import YamlSubTaskStore


@pytest.mark.asyncio
async def test_missing_file_lists_nothing(tmp_path: Path) -> None:
    assert await YamlSubTaskStore(str(tmp_path)).list_subtasks("task") == []


@pytest.mark.asyncio
async def test_upsert_and_list_in_order(tmp_path: Path) -> None:
    store = YamlSubTaskStore(str(tmp_path))
    second = SubTask(task_id="task", title="Write", order_index=2)
    first = SubTask(
        task_id="task",
        title="Research",
        order_index=1,
        status=SubTaskStatus.COMPLETED,
        estimated_minutes=15,
        completed_at=datetime(2026, 3, 1, 10, 0),
    )

    await store.upsert_subtask(second)
    await store.upsert_subtask(first)

    assert await store.list_subtasks("task") == [first, second]


@pytest.mark.asyncio
async def test_upsert_replaces_existing(tmp_path: Path) -> None:
    store = YamlSubTaskStore(str(tmp_path))
    subtask = SubTask(task_id="task", title="Draft", order_index=1)
    await store.upsert_subtask(subtask)

    subtask.title = "Draft the reply"
    await store.upsert_subtask(subtask)

    stored = await store.list_subtasks("task")
    assert [s.title for s in stored] == ["Draft the reply"]


@pytest.mark.asyncio
async def test_delete(tmp_path: Path) -> None:
    store = YamlSubTaskStore(str(tmp_path))
    keep = SubTask(task_id="task", title="Keep", order_index=1)
    drop = SubTask(task_id="task", title="Drop", order_index=2)
    await store.upsert_subtask(keep)
    await store.upsert_subtask(drop)

    await store.delete_subtask("task", drop.id)
    await store.delete_subtask("task", "unknown")

    assert await store.list_subtasks("task") == [keep]


@pytest.mark.asyncio
async def test_concurrent_upserts_are_not_lost(tmp_path: Path) -> None:
    store = YamlSubTaskStore(str(tmp_path))
    subtasks = [SubTask(task_id="task", title=f"Step {i}", order_index=i) for i in range(1, 11)]

    await asyncio.gather(*(store.upsert_subtask(s) for s in subtasks))

    assert await store.list_subtasks("task") == subtasks


@pytest.mark.asyncio
async def test_invalid_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / "task.yaml").write_text("key: [unclosed")

    with pytest.raises(ValueError):
        await YamlSubTaskStore(str(tmp_path)).list_subtasks("task")
