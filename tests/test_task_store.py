"""Tests for MarkdownTaskStore."""

from datetime import datetime
from pathlib import Path

import pytest
import yaml

from task_enrichment.api.models import Task, TaskType
from task_enrichment.store.task_store import MarkdownTaskStore


def test_list_tasks_empty(tasks_dir: Path) -> None:
    """Test listing tasks from empty folder."""
    assert MarkdownTaskStore(str(tasks_dir)).list_tasks() == []


def test_read_task(tasks_dir: Path, sample_task_file: Path) -> None:
    store = MarkdownTaskStore(str(tasks_dir))
    task = store.read_task("Prepare quarterly report")

    assert task.id == "Prepare quarterly report"
    assert task.title == "Prepare quarterly report"
    assert task.task_type is TaskType.CREATE
    assert task.priority == 3  # "high"
    assert task.duration_minutes == 90
    assert task.scheduled_time == datetime(2026, 3, 2, 9, 0)
    assert task.times_rescheduled == 2
    assert task.notes == "Numbers are in the finance folder."


def test_read_task_not_found(tasks_dir: Path) -> None:
    with pytest.raises(FileNotFoundError):
        MarkdownTaskStore(str(tasks_dir)).read_task("NonExistent")


def test_task_without_frontmatter_uses_filename(tasks_dir: Path) -> None:
    (tasks_dir / "Call the bank.md").write_text("Ask about the mortgage rate.\n")

    task = MarkdownTaskStore(str(tasks_dir)).read_task("Call the bank")

    assert task.title == "Call the bank"
    assert task.notes == "Ask about the mortgage rate."
    assert task.priority == 0
    assert task.task_type is TaskType.CREATE


def test_invalid_values_are_normalized(tasks_dir: Path) -> None:
    (tasks_dir / "Odd.md").write_text(
        "---\npriority: 12\nduration: soon\ntask_type: dance\ntimes_rescheduled: '4'\n---\n"
    )

    task = MarkdownTaskStore(str(tasks_dir)).read_task("Odd")

    assert task.priority == 3
    assert task.duration_minutes is None
    assert task.task_type is TaskType.CREATE
    assert task.times_rescheduled == 4


def test_list_tasks_skips_other_files(tasks_dir: Path, sample_task_file: Path) -> None:
    (tasks_dir / "notes.txt").write_text("not a task")

    tasks = MarkdownTaskStore(str(tasks_dir)).list_tasks()

    assert [t.id for t in tasks] == ["Prepare quarterly report"]


def test_save_task_keeps_unknown_frontmatter(tasks_dir: Path) -> None:
    task_file = tasks_dir / "Email Dana.md"
    task_file.write_text("---\ntags: [work]\npriority: 1\n---\nOld notes\n")
    store = MarkdownTaskStore(str(tasks_dir))

    task = store.read_task("Email Dana")
    task.title = "Email Dana the draft"
    task.notes = "Attach the Q1 numbers."
    task.task_type = TaskType.COMMUNICATE
    task.updated_at = datetime(2026, 3, 1, 14, 30)
    store.save_task(task)

    content = task_file.read_text()
    frontmatter = yaml.safe_load(content.split("---")[1])
    assert frontmatter["tags"] == ["work"]
    assert frontmatter["title"] == "Email Dana the draft"
    assert frontmatter["task_type"] == "communicate"
    assert "Attach the Q1 numbers." in content

    reread = store.read_task("Email Dana")
    assert reread.title == "Email Dana the draft"
    assert reread.updated_at == datetime(2026, 3, 1, 14, 30)


def test_save_task_creates_file(tasks_dir: Path) -> None:
    store = MarkdownTaskStore(str(tasks_dir / "new"))

    store.save_task(Task(id="Read chapter 3", title="Read chapter 3", task_type=TaskType.CONSUME))

    assert store.read_task("Read chapter 3").task_type is TaskType.CONSUME


def test_save_task_keeps_strategy_reasoning(tasks_dir: Path) -> None:
    store = MarkdownTaskStore(str(tasks_dir))
    task = Task(id="Plan offsite", title="Plan offsite", ai_advice="Book the venue first.")
    task.ai_thought_process = "The venue constrains every other choice"

    store.save_task(task)

    assert store.read_task("Plan offsite").ai_thought_process == "The venue constrains every other choice"


def test_is_own_write_tracks_external_edits(tasks_dir: Path, sample_task_file: Path) -> None:
    store = MarkdownTaskStore(str(tasks_dir))
    assert store.is_own_write("Prepare quarterly report") is False

    task = store.read_task("Prepare quarterly report")
    task.title = "Prepare Q1 report"
    store.save_task(task)
    assert store.is_own_write("Prepare quarterly report") is True

    sample_task_file.write_text(sample_task_file.read_text() + "Edited by hand.\n")
    assert store.is_own_write("Prepare quarterly report") is False

    sample_task_file.unlink()
    assert store.is_own_write("Prepare quarterly report") is False
