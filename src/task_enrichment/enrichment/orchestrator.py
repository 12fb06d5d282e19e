"""Per-task enrichment orchestrator.

Owns every facet shown on one task card. Each remote facet (strategy,
duration, resources) follows the same policy: serve the cached value if there
is one, otherwise ask the reasoning client, otherwise compute a deterministic
fallback. Fallback values are never cached so a later refresh can reach the
network again.

All methods run on one event loop. Facet state lives in separate
``FacetSlot`` objects, so concurrent loads of different facets never touch the
same fields.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from task_enrichment.api.models import (
    ChatMessage,
    ChatRole,
    DurationEstimate,
    Emotion,
    ResourceSuggestion,
    ScheduleSuggestion,
    Strategy,
    SubTask,
    SubTaskStatus,
    Task,
)
from task_enrichment.claude.reasoning_client import ReasoningClient
from task_enrichment.enrichment.challenge import MicroChallengeTimer
from task_enrichment.enrichment.chat import ChatSession
from task_enrichment.enrichment.checkin import response_for, should_offer_checkin
from task_enrichment.enrichment.fallbacks import (
    default_schedule,
    fallback_chat_reply,
    fallback_duration,
    fallback_resources,
    fallback_strategy,
    fallback_subtasks,
    recommend_work_mode,
)
from task_enrichment.enrichment.feedback import FeedbackEvent, FeedbackSink, NullFeedback, emit
from task_enrichment.facet_cache import FacetCache, FacetKind
from task_enrichment.store.subtask_store import SubTaskStore
from task_enrichment.store.task_store import TaskStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChangeCallback = Callable[[str, str], None]


class FacetStatus(str, Enum):
    """Lifecycle of one facet."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FALLBACK = "fallback"


SOURCE_LABELS = {
    FacetStatus.LOADED: "AI Genius",
    FacetStatus.FALLBACK: "Offline Analysis",
}


@dataclass
class FacetSlot(Generic[T]):
    """Current state and value of one facet."""

    kind: FacetKind
    status: FacetStatus = FacetStatus.UNLOADED
    value: T | None = None
    error: str | None = None  # Diagnostic text of the last remote failure

    @property
    def source(self) -> str | None:
        """Trust label shown next to the facet."""
        return SOURCE_LABELS.get(self.status)


@dataclass
class TaskEdits:
    """Unsaved shadow copy of the editable task fields."""

    title: str
    notes: str
    duration_minutes: int | None
    scheduled_time: datetime | None
    priority: int
    recurring: str | None

    @classmethod
    def from_task(cls, task: Task) -> "TaskEdits":
        return cls(
            title=task.title,
            notes=task.notes,
            duration_minutes=task.duration_minutes,
            scheduled_time=task.scheduled_time,
            priority=task.priority,
            recurring=task.recurring,
        )


EDITABLE_FIELDS = frozenset(f.name for f in fields(TaskEdits))
MAX_PRIORITY = 3


class TaskEnrichmentOrchestrator:
    """Coordinates cache lookups, remote calls and fallbacks for one task card."""

    def __init__(
        self,
        task: Task,
        client: ReasoningClient,
        cache: FacetCache,
        subtask_store: SubTaskStore,
        task_store: TaskStore | None = None,
        feedback: FeedbackSink | None = None,
        on_change: ChangeCallback | None = None,
        challenge_seconds: int = 30,
        challenge_title: str = "Open and write just the first line",
        max_resources: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize card state for a task.

        Args:
            task: Canonical task; only modified by save() and strategy results
            client: Reasoning service
            cache: Facet cache shared between cards
            subtask_store: Remote sub-task persistence
            task_store: Persistence for save(); None keeps changes in memory
            feedback: Receiver of haptic/sound style events
            on_change: Called with (task_id, event) after every state change
            challenge_seconds: Micro-challenge countdown length
            challenge_title: The tiny first action offered by the challenge
            max_resources: Number of resource suggestions to request
            sleep: Tick function for the micro-challenge
            clock: Wall-clock source for timestamps and schedule suggestions
        """
        self.task = task
        self._client = client
        self._cache = cache
        self._subtask_store = subtask_store
        self._task_store = task_store
        self._feedback = feedback or NullFeedback()
        self._on_change = on_change
        self._max_resources = max_resources
        self._clock = clock

        self.strategy: FacetSlot[Strategy] = FacetSlot(FacetKind.STRATEGY)
        self.duration: FacetSlot[DurationEstimate] = FacetSlot(FacetKind.DURATION)
        self.resources: FacetSlot[list[ResourceSuggestion]] = FacetSlot(FacetKind.RESOURCES)

        self.subtasks: list[SubTask] = []
        self.subtasks_status = FacetStatus.UNLOADED
        self.subtask_rationale: str | None = None
        self.is_loading_subtasks = False

        self.schedule: list[ScheduleSuggestion] = []
        self.is_loading_schedule = False

        self.chat = ChatSession()
        self.challenge = MicroChallengeTimer(
            total_seconds=challenge_seconds,
            title=challenge_title,
            on_tick=self._on_challenge_tick,
            on_complete=self._on_challenge_complete,
            sleep=sleep,
        )

        self.selected_emotion: Emotion | None = None
        self.emotion_response: str | None = None

        self.work_mode, self.work_mode_reason = recommend_work_mode(task)

        self.edits = TaskEdits.from_task(task)
        self.needs_resync = False
        self.is_initial_load_complete = False

        self._initial_load: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._last_persist: asyncio.Task[None] | None = None
        self._closed = False

    # Observation

    @property
    def has_unsaved_changes(self) -> bool:
        return self.edits != TaskEdits.from_task(self.task)

    @property
    def show_emotional_checkin(self) -> bool:
        return should_offer_checkin(self.task)

    @property
    def subtask_progress(self) -> float:
        if not self.subtasks:
            return 0.0
        done = sum(1 for s in self.subtasks if s.status is SubTaskStatus.COMPLETED)
        return done / len(self.subtasks)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _notify(self, event: str) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.task.id, event)
        except Exception as e:
            logger.warning(f"[Orchestrator] Change listener failed for '{event}': {e}")

    # Bulk load

    async def load_all(self) -> None:
        """Load every facet concurrently. Later calls reuse the first run."""
        if self.is_initial_load_complete:
            return
        if self._initial_load is None:
            self._initial_load = asyncio.create_task(
                self._run_initial_load(), name=f"initial-load-{self.task.id}"
            )
        await asyncio.shield(self._initial_load)

    async def _run_initial_load(self) -> None:
        results = await asyncio.gather(
            self.load_subtasks(),
            self.load_resources(),
            self.load_schedule(),
            self.load_strategy(),
            self.load_duration(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"[Orchestrator] Initial load step failed for '{self.task.id}': {result}")
        self.is_initial_load_complete = True
        logger.info(f"[Orchestrator] Initial load complete for '{self.task.id}'")
        self._notify("initial_load_complete")

    # Remote facets

    async def load_strategy(self) -> None:
        await self._load_facet(
            self.strategy,
            lambda: self._client.generate_strategy(self.task),
            lambda: fallback_strategy(self.task),
        )

    async def load_duration(self) -> None:
        await self._load_facet(
            self.duration,
            lambda: self._client.estimate_duration(self.task),
            lambda: fallback_duration(self.task),
        )

    async def load_resources(self) -> None:
        await self._load_facet(
            self.resources,
            lambda: self._client.generate_resource_searches(
                self.task.title, self.task.notes or None, self._max_resources
            ),
            lambda: fallback_resources(self.task.title, self._max_resources),
        )

    async def refresh_strategy(self) -> None:
        """Drop the cached strategy and load it again."""
        await self._refresh(self.strategy, self.load_strategy)

    async def refresh_duration(self) -> None:
        await self._refresh(self.duration, self.load_duration)

    async def refresh_resources(self) -> None:
        await self._refresh(self.resources, self.load_resources)

    async def _refresh(self, slot: FacetSlot[Any], load: Callable[[], Awaitable[None]]) -> None:
        if slot.status is FacetStatus.LOADING:
            logger.debug(f"[Orchestrator] Refresh of {slot.kind.value} ignored while loading")
            return
        self._cache.invalidate(self.task.id, slot.kind)
        slot.value = None
        slot.error = None
        slot.status = FacetStatus.UNLOADED
        await load()
        emit(self._feedback, FeedbackEvent.REFRESHED, facet=slot.kind.value)

    async def _load_facet(
        self,
        slot: FacetSlot[T],
        fetch: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> None:
        # Only unloaded facets load; refresh resets a settled facet first
        if slot.status is not FacetStatus.UNLOADED:
            return

        cached = self._cache.get(self.task.id, slot.kind)
        if cached is not None:
            logger.debug(f"[Orchestrator] Cache hit for {slot.kind.value} of '{self.task.id}'")
            self._apply_loaded(slot, cached, from_remote=False)
            return

        slot.status = FacetStatus.LOADING
        slot.error = None
        self._notify(f"{slot.kind.value}_loading")

        if not self._client.is_ready:
            logger.info(
                f"[Orchestrator] Reasoning client not ready, offline {slot.kind.value} "
                f"for '{self.task.id}'"
            )
            self._apply_fallback(slot, fallback(), error=None)
            return

        try:
            value = await fetch()
        except Exception as e:
            if self._closed:
                return
            logger.warning(
                f"[Orchestrator] {slot.kind.value} request failed for '{self.task.id}': {e}"
            )
            self._apply_fallback(slot, fallback(), error=str(e) or type(e).__name__)
            return

        # Cache before exposing the value as loaded
        self._cache.set(self.task.id, slot.kind, value)
        if self._closed:
            logger.info(f"[Orchestrator] Dropping late {slot.kind.value} for closed card")
            return
        self._apply_loaded(slot, value, from_remote=True)

    def _apply_loaded(self, slot: FacetSlot[T], value: T, from_remote: bool) -> None:
        slot.value = value
        slot.error = None
        slot.status = FacetStatus.LOADED
        if slot.kind is FacetKind.STRATEGY:
            self._on_strategy_loaded(value, from_remote)  # type: ignore[arg-type]
        elif slot.kind is FacetKind.DURATION:
            self._on_duration_loaded(value)  # type: ignore[arg-type]
        self._notify(f"{slot.kind.value}_loaded")

    def _apply_fallback(self, slot: FacetSlot[T], value: T, error: str | None) -> None:
        slot.value = value
        slot.error = error
        slot.status = FacetStatus.FALLBACK
        self._notify(f"{slot.kind.value}_fallback")

    def _on_strategy_loaded(self, strategy: Strategy, from_remote: bool) -> None:
        if from_remote:
            self.task.ai_advice = strategy.overview
            self.task.ai_thought_process = strategy.thought_process

        # A strategy that already carries an estimate pre-empts the duration call
        if strategy.estimated_minutes is None or self.duration.status is not FacetStatus.UNLOADED:
            return
        if self._cache.get(self.task.id, FacetKind.DURATION) is not None:
            return
        estimate = DurationEstimate(
            minutes=strategy.estimated_minutes,
            confidence=strategy.confidence or "medium",
            reasoning="Included in the strategy analysis",
        )
        self._cache.set(self.task.id, FacetKind.DURATION, estimate)
        self._apply_loaded(self.duration, estimate, from_remote=False)

    def _on_duration_loaded(self, estimate: DurationEstimate) -> None:
        # Suggest the estimate as the unsaved duration of a task that has none
        if self.task.duration_minutes is None and self.edits.duration_minutes is None:
            self.edits.duration_minutes = estimate.minutes

    # Local facets

    async def load_schedule(self) -> None:
        self.is_loading_schedule = True
        try:
            self.schedule = default_schedule(self.task, self._clock())
        finally:
            self.is_loading_schedule = False
        self._notify("schedule_loaded")

    async def load_subtasks(self) -> None:
        """Load stored sub-tasks, generating a checklist when none exist."""
        if self.is_loading_subtasks:
            return
        self.is_loading_subtasks = True
        self.subtasks_status = FacetStatus.LOADING
        stored: list[SubTask] = []
        read_ok = False
        try:
            stored = await self._subtask_store.list_subtasks(self.task.id)
            read_ok = True
            self.needs_resync = False
        except Exception as e:
            logger.warning(f"[Orchestrator] Failed to load sub-tasks for '{self.task.id}': {e}")
        finally:
            self.is_loading_subtasks = False

        if self._closed:
            return
        if stored:
            self.subtasks = stored
            self.subtask_rationale = None
            self.subtasks_status = FacetStatus.LOADED
        else:
            breakdown = fallback_subtasks(self.task)
            self.subtasks = breakdown.subtasks
            self.subtask_rationale = breakdown.rationale
            self.subtasks_status = FacetStatus.FALLBACK
            # The store may hold items a failed read could not see
            # so only a confirmed empty store receives the generated checklist
            if read_ok:
                for subtask in self.subtasks:
                    self._persist(
                        lambda s=subtask: self._subtask_store.upsert_subtask(s),
                        f"save generated sub-task {subtask.id}",
                    )
        self._notify("subtasks_loaded")

    # Sub-task mutations: local change now, persistence in the background

    def toggle_subtask(self, subtask_id: str) -> SubTask | None:
        """Flip a sub-task between pending and completed."""
        index = self._subtask_index(subtask_id)
        if index is None:
            return None

        current = self.subtasks[index]
        if current.status is SubTaskStatus.COMPLETED:
            updated = replace(current, status=SubTaskStatus.PENDING, completed_at=None)
        else:
            updated = replace(current, status=SubTaskStatus.COMPLETED, completed_at=self._clock())
        self.subtasks[index] = updated

        emit(self._feedback, FeedbackEvent.SELECTION)
        self._persist(lambda: self._subtask_store.upsert_subtask(updated), f"save sub-task {updated.id}")
        self._notify("subtasks_changed")
        return updated

    def add_subtask(self, title: str) -> SubTask | None:
        """Append a sub-task. Blank titles are rejected."""
        title = title.strip()
        if not title:
            logger.debug("[Orchestrator] Rejected blank sub-task title")
            return None

        subtask = SubTask(task_id=self.task.id, title=title, order_index=len(self.subtasks) + 1)
        self.subtasks.append(subtask)
        self._persist(lambda: self._subtask_store.upsert_subtask(subtask), f"save sub-task {subtask.id}")
        self._notify("subtasks_changed")
        return subtask

    def delete_subtask(self, subtask_id: str) -> bool:
        """Remove a sub-task and renumber the rest from 1."""
        index = self._subtask_index(subtask_id)
        if index is None:
            return False

        removed = self.subtasks.pop(index)
        renumbered: list[SubTask] = []
        for position, subtask in enumerate(self.subtasks, start=1):
            if subtask.order_index != position:
                subtask = replace(subtask, order_index=position)
                self.subtasks[position - 1] = subtask
                renumbered.append(subtask)

        self._persist(
            lambda: self._subtask_store.delete_subtask(self.task.id, removed.id),
            f"delete sub-task {removed.id}",
        )
        for subtask in renumbered:
            self._persist(
                lambda s=subtask: self._subtask_store.upsert_subtask(s),
                f"renumber sub-task {subtask.id}",
            )
        self._notify("subtasks_changed")
        return True

    def rename_subtask(self, subtask_id: str, new_title: str) -> SubTask | None:
        """Change a sub-task title. Blank titles are rejected."""
        new_title = new_title.strip()
        index = self._subtask_index(subtask_id)
        if index is None or not new_title:
            return None

        updated = replace(self.subtasks[index], title=new_title)
        self.subtasks[index] = updated

        emit(self._feedback, FeedbackEvent.SELECTION)
        self._persist(lambda: self._subtask_store.upsert_subtask(updated), f"save sub-task {updated.id}")
        self._notify("subtasks_changed")
        return updated

    def _subtask_index(self, subtask_id: str) -> int | None:
        for index, subtask in enumerate(self.subtasks):
            if subtask.id == subtask_id:
                return index
        logger.debug(f"[Orchestrator] Unknown sub-task {subtask_id}")
        return None

    def _persist(self, operation: Callable[[], Awaitable[None]], description: str) -> None:
        # Each write waits for the previous one so the store sees them in call order
        background_task = asyncio.create_task(
            self._run_persist(operation, description, self._last_persist)
        )
        self._last_persist = background_task
        # Keep a strong reference until the write finishes
        self._background_tasks.add(background_task)
        background_task.add_done_callback(self._background_tasks.discard)

    async def _run_persist(
        self,
        operation: Callable[[], Awaitable[None]],
        description: str,
        previous: asyncio.Task[None] | None,
    ) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        try:
            await operation()
        except Exception as e:
            logger.error(f"[Orchestrator] Failed to {description}: {e}")
            self.needs_resync = True
            self._notify("sync_failed")

    async def flush(self) -> None:
        """Wait for all pending background writes."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # Emotional check-in

    def select_emotion(self, emotion: Emotion) -> str:
        """Record the user's emotion and return the supportive response."""
        self.selected_emotion = emotion
        self.emotion_response = response_for(emotion)
        emit(self._feedback, FeedbackEvent.SELECTION, emotion=emotion.value)
        self._notify("emotion_selected")
        return self.emotion_response

    # Micro-challenge

    def start_challenge(self) -> bool:
        started = self.challenge.start()
        if started:
            self._notify("challenge_started")
        return started

    def complete_challenge(self) -> bool:
        return self.challenge.complete()

    def reset_challenge(self) -> None:
        self.challenge.reset()
        self._notify("challenge_reset")

    def _on_challenge_tick(self, remaining: int) -> None:
        emit(self._feedback, FeedbackEvent.CHALLENGE_TICK, remaining=remaining)
        self._notify("challenge_tick")

    def _on_challenge_complete(self) -> None:
        emit(self._feedback, FeedbackEvent.CHALLENGE_COMPLETED)
        self._notify("challenge_completed")

    # Chat

    async def send_chat(self, text: str) -> ChatMessage | None:
        """Send a chat message; returns the reply or None if rejected or failed."""
        if self._closed:
            return None
        reply = await self.chat.send(text, self._respond)
        self._notify("chat_updated")
        return reply

    async def _respond(self, history: list[ChatMessage], message: str) -> ChatMessage:
        emit(self._feedback, FeedbackEvent.MESSAGE_SENT)
        self._notify("chat_thinking")
        if not self._client.is_ready:
            return ChatMessage(role=ChatRole.ASSISTANT, content=fallback_chat_reply(self.task))
        return await self._client.converse(history, message, task=self.task)

    # Editing

    def edit(self, **changes: Any) -> bool:
        """Update unsaved task fields.

        Returns:
            Whether the card now has unsaved changes

        Raises:
            ValueError: For unknown fields or a priority outside 0-3
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        if "title" in changes:
            title = changes["title"]
            if not isinstance(title, str) or not title.strip():
                logger.debug("[Orchestrator] Ignoring blank title edit")
                del changes["title"]
            else:
                changes["title"] = title.strip()

        if "priority" in changes:
            priority = changes["priority"]
            if not isinstance(priority, int) or not 0 <= priority <= MAX_PRIORITY:
                raise ValueError(f"Priority must be between 0 and {MAX_PRIORITY}")

        if "notes" in changes and changes["notes"] is None:
            changes["notes"] = ""

        self.edits = replace(self.edits, **changes)
        self._notify("edited")
        return self.has_unsaved_changes

    async def save(self) -> None:
        """Commit the edited fields to the task and persist it."""
        for name in EDITABLE_FIELDS:
            setattr(self.task, name, getattr(self.edits, name))
        self.task.updated_at = self._clock()
        self.edits = TaskEdits.from_task(self.task)
        self._notify("saved")

        if self._task_store is None:
            return
        try:
            await asyncio.to_thread(self._task_store.save_task, self.task)
        except Exception as e:
            logger.error(f"[Orchestrator] Failed to save task '{self.task.id}': {e}")
            self.needs_resync = True
            self._notify("sync_failed")

    # Teardown

    def close(self) -> None:
        """Tear down the card: stop the challenge tick and ignore late results."""
        if self._closed:
            return
        self._closed = True
        self.challenge.cancel()
        logger.info(f"[Orchestrator] Closed card for '{self.task.id}'")
