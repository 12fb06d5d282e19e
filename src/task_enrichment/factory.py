"""Dependency injection factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from task_enrichment.api.models import Task
from task_enrichment.claude.reasoning_client import ClaudeReasoningClient, ReasoningClient
from task_enrichment.config import Config
from task_enrichment.enrichment.orchestrator import TaskEnrichmentOrchestrator
from task_enrichment.enrichment.registry import CardRegistry
from task_enrichment.facet_cache import FacetCache
from task_enrichment.store.subtask_store import SubTaskStore, YamlSubTaskStore
from task_enrichment.store.task_store import MarkdownTaskStore, TaskStore
from task_enrichment.store.task_watcher import TaskWatcher
from task_enrichment.websocket.connection_manager import BroadcastFeedback, ConnectionManager

logger = logging.getLogger(__name__)

# Global instances for dependency injection
_config: Config | None = None
_facet_cache: FacetCache | None = None
_reasoning_client: ReasoningClient | None = None
_task_store: TaskStore | None = None
_subtask_store: SubTaskStore | None = None
_card_registry: CardRegistry | None = None
_connection_manager: ConnectionManager | None = None
_watcher: TaskWatcher | None = None


def get_config() -> Config:
    """Get or create Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_facet_cache() -> FacetCache:
    """Get or create the process-wide FacetCache singleton."""
    global _facet_cache
    if _facet_cache is None:
        _facet_cache = FacetCache(ttl_seconds=get_config().cache_ttl_seconds)
    return _facet_cache


def get_reasoning_client() -> ReasoningClient:
    """Get or create the reasoning client."""
    global _reasoning_client
    if _reasoning_client is None:
        config = get_config()
        _reasoning_client = ClaudeReasoningClient(
            config.claude_cli,
            model=config.reasoning_model,
            enabled=config.reasoning_enabled,
        )
    return _reasoning_client


def get_task_store() -> TaskStore:
    global _task_store
    if _task_store is None:
        _task_store = MarkdownTaskStore(get_config().tasks_dir)
    return _task_store


def get_subtask_store() -> SubTaskStore:
    global _subtask_store
    if _subtask_store is None:
        _subtask_store = YamlSubTaskStore(get_config().subtasks_dir)
    return _subtask_store


def get_connection_manager() -> ConnectionManager:
    """Get or create ConnectionManager singleton."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def create_orchestrator(task: Task) -> TaskEnrichmentOrchestrator:
    """Build an orchestrator wired to the shared services."""
    config = get_config()
    manager = get_connection_manager()
    return TaskEnrichmentOrchestrator(
        task,
        client=get_reasoning_client(),
        cache=get_facet_cache(),
        subtask_store=get_subtask_store(),
        task_store=get_task_store(),
        feedback=BroadcastFeedback(manager, task.id),
        on_change=manager.card_changed,
        challenge_seconds=config.challenge_seconds,
        challenge_title=config.challenge_title,
        max_resources=config.max_resources,
    )


def get_card_registry() -> CardRegistry:
    """Get or create CardRegistry singleton."""
    global _card_registry
    if _card_registry is None:
        _card_registry = CardRegistry(create_orchestrator)
    return _card_registry


def handle_task_file_change(task_id: str) -> bool:
    """Invalidate cached facets of a task changed outside this service.

    Returns:
        Whether the cache entries were dropped
    """
    if get_task_store().is_own_write(task_id):
        logger.debug(f"[Factory] Ignoring own write of '{task_id}'")
        return False
    get_facet_cache().invalidate(task_id)
    return True


def start_task_watcher() -> None:
    """Watch the tasks folder; invalidate cached facets of changed tasks."""
    global _watcher
    config = get_config()
    connection_manager = get_connection_manager()

    # Get the running event loop to schedule coroutines from the watcher thread
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.error("[Factory] No running event loop found")
        return

    tasks_dir = Path(config.tasks_dir)
    if not tasks_dir.exists():
        logger.warning(f"[Factory] Tasks folder not found: {tasks_dir}")
        return

    def callback(event_type: str, task_id: str) -> None:
        handle_task_file_change(task_id)
        message = {"type": event_type, "task_id": task_id}
        asyncio.run_coroutine_threadsafe(connection_manager.broadcast(message), loop)

    try:
        watcher = TaskWatcher(tasks_dir, callback)
        watcher.start()
        _watcher = watcher
    except Exception as e:
        logger.error(f"[Factory] Failed to start watcher for {tasks_dir}: {e}", exc_info=True)


def stop_task_watcher() -> None:
    """Stop the running file watcher."""
    global _watcher
    if _watcher is None:
        return
    try:
        _watcher.stop()
    except Exception as e:
        logger.error(f"[Factory] Failed to stop watcher: {e}")
    _watcher = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    logger.info("[Lifespan] Starting task watcher...")
    start_task_watcher()
    try:
        yield
    finally:
        logger.info("[Lifespan] Closing open cards and stopping task watcher...")
        get_card_registry().close_all()
        stop_task_watcher()


def create_app() -> FastAPI:
    """Create FastAPI application (composition root)."""
    from task_enrichment.api.tasks import router as tasks_router
    from task_enrichment.api.websocket import router as ws_router

    app = FastAPI(
        title="TaskEnrichment",
        description="AI enrichment for task cards with offline fallbacks",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(tasks_router, prefix="/api")
    app.include_router(ws_router)  # WebSocket at /ws

    return app
