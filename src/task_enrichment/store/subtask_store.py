"""Sub-task persistence."""

import asyncio
import logging
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import yaml

from task_enrichment.api.models import SubTask, SubTaskStatus

logger = logging.getLogger(__name__)


class SubTaskStore(Protocol):
    """Protocol for the remote sub-task store."""

    async def list_subtasks(self, task_id: str) -> list[SubTask]:
        """List sub-tasks of a task ordered by order_index."""
        ...

    async def upsert_subtask(self, subtask: SubTask) -> None:
        """Insert or replace a sub-task."""
        ...

    async def delete_subtask(self, task_id: str, subtask_id: str) -> None:
        """Delete a sub-task."""
        ...


class YamlSubTaskStore:
    """Sub-task store keeping one YAML file per task.

    File I/O runs in a worker thread; a lock serializes read-modify-write
    cycles because persists are fired concurrently.
    """

    def __init__(self, root: str) -> None:
        """Initialize store rooted at a directory."""
        self._root = Path(root)
        self._lock = threading.Lock()

    async def list_subtasks(self, task_id: str) -> list[SubTask]:
        return await asyncio.to_thread(self._list, task_id)

    async def upsert_subtask(self, subtask: SubTask) -> None:
        await asyncio.to_thread(self._upsert, subtask)

    async def delete_subtask(self, task_id: str, subtask_id: str) -> None:
        await asyncio.to_thread(self._delete, task_id, subtask_id)

    def _path(self, task_id: str) -> Path:
        return self._root / f"{task_id}.yaml"

    def _list(self, task_id: str) -> list[SubTask]:
        with self._lock:
            records = self._read(task_id)
        subtasks = [self._from_record(task_id, record) for record in records]
        return sorted(subtasks, key=lambda s: s.order_index)

    def _upsert(self, subtask: SubTask) -> None:
        with self._lock:
            records = [r for r in self._read(subtask.task_id) if r.get("id") != subtask.id]
            records.append(self._to_record(subtask))
            self._write(subtask.task_id, records)
        logger.debug(f"Upserted sub-task {subtask.id} for task {subtask.task_id}")

    def _delete(self, task_id: str, subtask_id: str) -> None:
        with self._lock:
            records = self._read(task_id)
            remaining = [r for r in records if r.get("id") != subtask_id]
            if len(remaining) == len(records):
                logger.debug(f"Sub-task {subtask_id} not stored for task {task_id}")
                return
            self._write(task_id, remaining)
        logger.debug(f"Deleted sub-task {subtask_id} for task {task_id}")

    def _read(self, task_id: str) -> list[dict[str, Any]]:
        path = self._path(task_id)
        if not path.exists():
            return []
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in sub-tasks of {task_id}") from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"Sub-tasks of {task_id} must be a YAML list")
        return [record for record in data if isinstance(record, dict)]

    def _write(self, task_id: str, records: list[dict[str, Any]]) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        records = sorted(records, key=lambda r: r.get("order_index", 0))
        self._path(task_id).write_text(
            yaml.safe_dump(records, default_flow_style=False, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )

    def _to_record(self, subtask: SubTask) -> dict[str, Any]:
        record = asdict(subtask)
        record["status"] = subtask.status.value
        record["completed_at"] = subtask.completed_at.isoformat() if subtask.completed_at else None
        del record["task_id"]
        return record

    def _from_record(self, task_id: str, record: dict[str, Any]) -> SubTask:
        completed_at = record.get("completed_at")
        if isinstance(completed_at, str):
            completed_at = datetime.fromisoformat(completed_at)
        return SubTask(
            id=str(record["id"]),
            task_id=task_id,
            title=str(record.get("title", "")),
            order_index=int(record.get("order_index", 0)),
            status=SubTaskStatus(record.get("status", SubTaskStatus.PENDING.value)),
            estimated_minutes=record.get("estimated_minutes"),
            ai_reasoning=record.get("ai_reasoning"),
            completed_at=completed_at,
        )
