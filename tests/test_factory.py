"""Tests for factory wiring of the task watcher."""

from pathlib import Path

import pytest

from task_enrichment.api.models import DurationEstimate
from task_enrichment.facet_cache import FacetCache, FacetKind
from task_enrichment.factory import handle_task_file_change
from task_enrichment.store.task_store import MarkdownTaskStore

TASK_ID = "Prepare quarterly report"
ESTIMATE = DurationEstimate(minutes=75, confidence="high", reasoning="Similar reports")


@pytest.fixture
def store(tasks_dir: Path, sample_task_file: Path, monkeypatch: pytest.MonkeyPatch) -> MarkdownTaskStore:
    store = MarkdownTaskStore(str(tasks_dir))
    monkeypatch.setattr("task_enrichment.factory._task_store", store)
    return store


@pytest.fixture
def facet_cache(monkeypatch: pytest.MonkeyPatch) -> FacetCache:
    facet_cache = FacetCache()
    facet_cache.set(TASK_ID, FacetKind.DURATION, ESTIMATE)
    monkeypatch.setattr("task_enrichment.factory._facet_cache", facet_cache)
    return facet_cache


def test_external_change_invalidates_cache(
    store: MarkdownTaskStore, facet_cache: FacetCache, sample_task_file: Path
) -> None:
    sample_task_file.write_text(sample_task_file.read_text() + "New notes.\n")

    assert handle_task_file_change(TASK_ID) is True
    assert facet_cache.get(TASK_ID, FacetKind.DURATION) is None


def test_own_save_keeps_cache(store: MarkdownTaskStore, facet_cache: FacetCache) -> None:
    task = store.read_task(TASK_ID)
    task.priority = 1
    store.save_task(task)

    assert handle_task_file_change(TASK_ID) is False
    assert facet_cache.get(TASK_ID, FacetKind.DURATION) == ESTIMATE
