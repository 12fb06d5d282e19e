"""File system watcher for the tasks folder."""

import logging
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

TaskEventCallback = Callable[[str, str], None]


class TaskWatcher:
    """Watches the tasks folder and reports which task files changed."""

    def __init__(self, tasks_dir: Path, callback: TaskEventCallback | None = None):
        """Initialize watcher for a task directory.

        Args:
            tasks_dir: Folder holding the task markdown files
            callback: Function(event_type, task_id) called on events
        """
        self.tasks_dir = tasks_dir
        self._observer: BaseObserver | None = None
        self._callback = callback

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """Start watching in the observer's background thread."""
        handler = _TaskEventHandler(self._callback)
        self._observer = Observer()
        self._observer.daemon = True
        self._observer.schedule(handler, str(self.tasks_dir), recursive=False)
        logger.info(f"[TaskWatcher] Watching {self.tasks_dir}")
        self._observer.start()

    def stop(self) -> None:
        """Stop watching and clean up resources."""
        if self._observer:
            logger.info(f"[TaskWatcher] Stopping watcher for {self.tasks_dir}")
            self._observer.stop()
            self._observer.join(timeout=2)
            self._observer = None


class _TaskEventHandler(FileSystemEventHandler):
    """Internal handler for task file system events."""

    def __init__(self, callback: TaskEventCallback | None):
        self.callback = callback

    def _extract_task_id(self, file_path: str) -> str | None:
        """Task ID is the filename without .md; other files are ignored."""
        path = Path(file_path)
        if path.suffix == ".md":
            return path.stem
        return None

    def _handle_event(self, event_type: str, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode("utf-8")

        task_id = self._extract_task_id(src_path)
        if not task_id:
            return

        logger.debug(f"[TaskEventHandler] {event_type}: {task_id}")

        if self.callback:
            try:
                self.callback(event_type, task_id)
            except Exception as e:
                logger.error(f"[TaskEventHandler] Callback error: {e}", exc_info=True)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events."""
        self._handle_event("modified", event)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation events."""
        self._handle_event("created", event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle file deletion events."""
        self._handle_event("deleted", event)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file move/rename events."""
        self._handle_event("moved", event)
