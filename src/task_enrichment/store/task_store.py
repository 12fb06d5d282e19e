"""Task store backed by markdown files with YAML frontmatter."""

import logging
import re
from contextlib import suppress
from datetime import date, datetime
from pathlib import Path
from typing import Any, Protocol

import yaml

from task_enrichment.api.models import Task, TaskType

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


class TaskStore(Protocol):
    """Protocol for reading and saving tasks."""

    def list_tasks(self) -> list[Task]:
        """List all tasks."""
        ...

    def read_task(self, task_id: str) -> Task:
        """Read a specific task by ID."""
        ...

    def save_task(self, task: Task) -> None:
        """Write task fields back to storage."""
        ...

    def is_own_write(self, task_id: str) -> bool:
        """Whether the stored task is unchanged since this store last saved it."""
        ...


class MarkdownTaskStore:
    """Task store for a folder of markdown files.

    The filename (without .md) is the task id, the frontmatter holds the task
    fields and the body holds the free-text notes.
    """

    def __init__(self, tasks_dir: str) -> None:
        """Initialize store with the tasks folder path."""
        self._tasks_dir = Path(tasks_dir)
        self._written: dict[str, str] = {}  # task id -> content of our last save

    @property
    def tasks_dir(self) -> Path:
        return self._tasks_dir

    def list_tasks(self) -> list[Task]:
        """List all tasks, skipping files that fail to parse."""
        tasks: list[Task] = []
        for file_path in sorted(self._tasks_dir.glob("*.md")):
            try:
                tasks.append(self._parse_task(file_path))
            except Exception as e:
                logger.warning(f"Failed to parse {file_path.name}: {e}")
                continue
        return tasks

    def read_task(self, task_id: str) -> Task:
        """Read a specific task by ID (filename without .md)."""
        file_path = self._tasks_dir / f"{task_id}.md"
        if not file_path.exists():
            raise FileNotFoundError(f"Task not found: {task_id}")
        return self._parse_task(file_path)

    def save_task(self, task: Task) -> None:
        """Update frontmatter and notes of an existing task file, or create it."""
        file_path = self._tasks_dir / f"{task.id}.md"
        data: dict[str, Any] = {}
        if file_path.exists():
            data = self._extract_frontmatter(self._read_text(file_path))

        data.update(
            {
                "title": task.title,
                "task_type": task.task_type.value,
                "priority": task.priority,
                "duration": task.duration_minutes,
                "scheduled_time": task.scheduled_time.isoformat() if task.scheduled_time else None,
                "recurring": task.recurring,
                "times_rescheduled": task.times_rescheduled,
                "emotional_blocker": task.emotional_blocker,
                "updated_at": task.updated_at.isoformat() if task.updated_at else None,
                "ai_advice": task.ai_advice,
                "ai_thought_process": task.ai_thought_process,
            }
        )
        data = {key: value for key, value in data.items() if value is not None}

        frontmatter = yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        body = task.notes.strip()
        content = f"---\n{frontmatter}---\n" + (f"\n{body}\n" if body else "")

        self._tasks_dir.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        self._written[task.id] = content
        logger.info(f"Saved task {task.id}")

    def is_own_write(self, task_id: str) -> bool:
        """Whether the task file still holds exactly what save_task wrote."""
        written = self._written.get(task_id)
        if written is None:
            return False
        file_path = self._tasks_dir / f"{task_id}.md"
        try:
            return self._read_text(file_path) == written
        except OSError:
            return False

    def _read_text(self, file_path: Path) -> str:
        # Try UTF-8 first, fallback to latin-1 for non-UTF-8 files
        try:
            return file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return file_path.read_text(encoding="latin-1")

    def _parse_task(self, file_path: Path) -> Task:
        """Parse markdown file into Task object."""
        content = self._read_text(file_path)
        frontmatter = self._extract_frontmatter(content)

        match = FRONTMATTER_RE.match(content)
        notes = (content[match.end() :] if match else content).strip()

        return Task(
            id=file_path.stem,
            title=str(frontmatter.get("title") or file_path.stem),
            notes=notes,
            duration_minutes=self._normalize_int(frontmatter.get("duration")),
            scheduled_time=self._to_datetime(frontmatter.get("scheduled_time")),
            priority=self._normalize_priority(frontmatter.get("priority")),
            recurring=frontmatter.get("recurring"),
            times_rescheduled=self._normalize_int(frontmatter.get("times_rescheduled")) or 0,
            emotional_blocker=frontmatter.get("emotional_blocker"),
            task_type=self._normalize_task_type(frontmatter.get("task_type")),
            updated_at=self._to_datetime(frontmatter.get("updated_at")),
            ai_advice=frontmatter.get("ai_advice"),
            ai_thought_process=frontmatter.get("ai_thought_process"),
        )

    def _normalize_int(self, value: Any) -> int | None:
        """Accept ints and numeric strings; reject bools, floats and everything else."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            with suppress(ValueError):
                return int(value.strip())
        return None

    def _normalize_priority(self, value: Any) -> int:
        """Normalize priority to 0-3.

        Accepts ints, numeric strings and the names low/medium/high/highest.
        """
        if isinstance(value, str) and value.strip().lower() in _PRIORITY_NAMES:
            return _PRIORITY_NAMES[value.strip().lower()]
        number = self._normalize_int(value)
        if number is None:
            return 0
        return min(max(number, 0), 3)

    def _normalize_task_type(self, value: Any) -> TaskType:
        if isinstance(value, str):
            with suppress(ValueError):
                return TaskType(value.strip().lower())
        return TaskType.CREATE

    def _to_datetime(self, value: Any) -> datetime | None:
        """Convert YAML date/datetime/ISO string to datetime or return None."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            with suppress(ValueError):
                return datetime.fromisoformat(value)
        return None

    def _extract_frontmatter(self, content: str) -> dict[str, Any]:
        """Extract YAML frontmatter from markdown content."""
        match = FRONTMATTER_RE.match(content)
        if not match:
            return {}

        try:
            data = yaml.safe_load(match.group(1))
            return data if isinstance(data, dict) else {}
        except yaml.YAMLError:
            return {}


_PRIORITY_NAMES = {"low": 1, "medium": 2, "high": 3, "highest": 3}
