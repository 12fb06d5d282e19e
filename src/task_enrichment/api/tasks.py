"""Task card API endpoints."""

import asyncio
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel

from task_enrichment.api.models import (
    CardResponse,
    ChallengeResponse,
    ChatResponse,
    DurationEstimate,
    Emotion,
    FacetResponse,
    ResourceResponse,
    ResourceSuggestion,
    Strategy,
    StrategyResponse,
    SubTask,
    SubTaskResponse,
    Task,
    TaskResponse,
    format_minutes,
)
from task_enrichment.enrichment.orchestrator import FacetSlot, TaskEnrichmentOrchestrator
from task_enrichment.facet_cache import FacetKind
from task_enrichment.factory import get_card_registry, get_facet_cache, get_task_store

logger = logging.getLogger(__name__)

router = APIRouter()


class EditTaskRequest(BaseModel):
    """Request model for editing card fields. Omitted fields stay unchanged."""

    title: str | None = None
    notes: str | None = None
    duration_minutes: int | None = None
    scheduled_time: datetime | None = None
    priority: int | None = None
    recurring: str | None = None


class SubTaskTitleRequest(BaseModel):
    """Request model for adding or renaming a sub-task."""

    title: str


class EmotionRequest(BaseModel):
    emotion: Emotion


class ChatRequest(BaseModel):
    message: str


class InvalidateCacheRequest(BaseModel):
    """Request model for cache invalidation. No task id clears everything."""

    task_id: str | None = None
    facet: FacetKind | None = None


def _task_to_response(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        notes=task.notes,
        duration_minutes=task.duration_minutes,
        formatted_duration=format_minutes(task.duration_minutes),
        scheduled_time=task.scheduled_time,
        priority=task.priority,
        recurring=task.recurring,
        times_rescheduled=task.times_rescheduled,
        emotional_blocker=task.emotional_blocker,
        task_type=task.task_type,
        updated_at=task.updated_at,
    )


def _strategy_to_response(strategy: Strategy) -> StrategyResponse:
    return StrategyResponse(
        overview=strategy.overview,
        key_points=list(strategy.key_points),
        actionable_steps=list(strategy.actionable_steps),
        potential_obstacles=strategy.potential_obstacles,
        estimated_minutes=strategy.estimated_minutes,
        confidence=strategy.confidence,
        thought_process=strategy.thought_process,
        brief_summary=strategy.brief_summary,
        formatted=strategy.formatted(),
    )


def _resource_to_response(resource: ResourceSuggestion) -> ResourceResponse:
    return ResourceResponse(
        display_title=resource.display_title,
        search_query=resource.search_query,
        reasoning=resource.reasoning,
        relevance_label=resource.relevance_label,
        relevance_icon=resource.relevance_icon,
        search_url=resource.search_url,
    )


def _subtask_to_response(subtask: SubTask) -> SubTaskResponse:
    return SubTaskResponse(
        id=subtask.id,
        title=subtask.title,
        status=subtask.status,
        order_index=subtask.order_index,
        estimated_minutes=subtask.estimated_minutes,
        ai_reasoning=subtask.ai_reasoning,
        completed_at=subtask.completed_at,
    )


def _facet_to_response(slot: FacetSlot[Any], value: Any) -> dict[str, Any]:
    return {
        "status": slot.status.value,
        "source": slot.source,
        "value": value,
        "error": slot.error,
    }


def _card_to_response(card: TaskEnrichmentOrchestrator) -> CardResponse:
    """Snapshot of everything shown on a card."""
    strategy = card.strategy.value
    resources = card.resources.value
    return CardResponse(
        task=_task_to_response(card.task),
        strategy=FacetResponse[StrategyResponse](
            **_facet_to_response(card.strategy, _strategy_to_response(strategy) if strategy else None)
        ),
        duration=FacetResponse[DurationEstimate](
            **_facet_to_response(card.duration, card.duration.value)
        ),
        resources=FacetResponse[list[ResourceResponse]](
            **_facet_to_response(
                card.resources,
                [_resource_to_response(r) for r in resources] if resources is not None else None,
            )
        ),
        schedule=list(card.schedule),
        subtasks=[_subtask_to_response(s) for s in card.subtasks],
        subtasks_status=card.subtasks_status.value,
        subtask_rationale=card.subtask_rationale,
        subtask_progress=card.subtask_progress,
        chat=ChatResponse(
            messages=list(card.chat.messages),
            is_thinking=card.chat.is_thinking,
            last_error=card.chat.last_error,
        ),
        challenge=ChallengeResponse(
            title=card.challenge.title,
            total_seconds=card.challenge.total_seconds,
            remaining_seconds=card.challenge.remaining_seconds,
            state=card.challenge.state.value,
        ),
        selected_emotion=card.selected_emotion,
        emotion_response=card.emotion_response,
        show_emotional_checkin=card.show_emotional_checkin,
        work_mode=card.work_mode,
        work_mode_reason=card.work_mode_reason,
        has_unsaved_changes=card.has_unsaved_changes,
        needs_resync=card.needs_resync,
        is_initial_load_complete=card.is_initial_load_complete,
    )


def _require_card(task_id: str) -> TaskEnrichmentOrchestrator:
    card = get_card_registry().get(task_id)
    if card is None:
        raise HTTPException(status_code=404, detail=f"No open card for task: {task_id}")
    return card


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks() -> list[TaskResponse]:
    """List all tasks in the tasks folder."""
    tasks = await asyncio.to_thread(get_task_store().list_tasks)
    return [_task_to_response(task) for task in tasks]


@router.post("/tasks/{task_id}/card", response_model=CardResponse)
async def open_card(task_id: str, background_tasks: BackgroundTasks) -> CardResponse:
    """Open the card for a task and start loading every facet.

    Raises:
        HTTPException: If the task does not exist
    """
    try:
        task = await asyncio.to_thread(get_task_store().read_task, task_id)
    except FileNotFoundError as e:
        logger.error(f"Task not found: {e}")
        raise HTTPException(status_code=404, detail=str(e)) from e

    card = get_card_registry().open(task)
    background_tasks.add_task(card.load_all)
    return _card_to_response(card)


@router.get("/tasks/{task_id}/card", response_model=CardResponse)
async def get_card(task_id: str) -> CardResponse:
    return _card_to_response(_require_card(task_id))


@router.delete("/tasks/{task_id}/card")
async def close_card(task_id: str) -> dict[str, str]:
    if not get_card_registry().close(task_id):
        raise HTTPException(status_code=404, detail=f"No open card for task: {task_id}")
    return {"status": "closed", "task_id": task_id}


@router.patch("/tasks/{task_id}/card", response_model=CardResponse)
async def edit_card(task_id: str, request: EditTaskRequest) -> CardResponse:
    """Update unsaved task fields.

    Raises:
        HTTPException: If the card is not open or a value is invalid
    """
    card = _require_card(task_id)
    try:
        card.edit(**request.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/save", response_model=CardResponse)
async def save_card(task_id: str) -> CardResponse:
    card = _require_card(task_id)
    await card.save()
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/{facet}/refresh", response_model=CardResponse)
async def refresh_facet(task_id: str, facet: FacetKind) -> CardResponse:
    """Drop the cached facet and load it again."""
    card = _require_card(task_id)
    refresh = {
        FacetKind.STRATEGY: card.refresh_strategy,
        FacetKind.DURATION: card.refresh_duration,
        FacetKind.RESOURCES: card.refresh_resources,
    }[facet]
    await refresh()
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/subtasks", response_model=CardResponse)
async def add_subtask(task_id: str, request: SubTaskTitleRequest) -> CardResponse:
    card = _require_card(task_id)
    if card.add_subtask(request.title) is None:
        raise HTTPException(status_code=400, detail="Sub-task title must not be blank")
    return _card_to_response(card)


@router.patch("/tasks/{task_id}/card/subtasks/{subtask_id}", response_model=CardResponse)
async def rename_subtask(task_id: str, subtask_id: str, request: SubTaskTitleRequest) -> CardResponse:
    card = _require_card(task_id)
    if not request.title.strip():
        raise HTTPException(status_code=400, detail="Sub-task title must not be blank")
    if card.rename_subtask(subtask_id, request.title) is None:
        raise HTTPException(status_code=404, detail=f"Sub-task not found: {subtask_id}")
    return _card_to_response(card)


@router.delete("/tasks/{task_id}/card/subtasks/{subtask_id}", response_model=CardResponse)
async def delete_subtask(task_id: str, subtask_id: str) -> CardResponse:
    card = _require_card(task_id)
    if not card.delete_subtask(subtask_id):
        raise HTTPException(status_code=404, detail=f"Sub-task not found: {subtask_id}")
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/subtasks/{subtask_id}/toggle", response_model=CardResponse)
async def toggle_subtask(task_id: str, subtask_id: str) -> CardResponse:
    card = _require_card(task_id)
    if card.toggle_subtask(subtask_id) is None:
        raise HTTPException(status_code=404, detail=f"Sub-task not found: {subtask_id}")
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/emotion", response_model=CardResponse)
async def select_emotion(task_id: str, request: EmotionRequest) -> CardResponse:
    card = _require_card(task_id)
    card.select_emotion(request.emotion)
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/challenge/start", response_model=CardResponse)
async def start_challenge(task_id: str) -> CardResponse:
    card = _require_card(task_id)
    if not card.start_challenge():
        raise HTTPException(status_code=409, detail="Challenge already started")
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/challenge/complete", response_model=CardResponse)
async def complete_challenge(task_id: str) -> CardResponse:
    card = _require_card(task_id)
    if not card.complete_challenge():
        raise HTTPException(status_code=409, detail="Challenge is not running")
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/challenge/reset", response_model=CardResponse)
async def reset_challenge(task_id: str) -> CardResponse:
    card = _require_card(task_id)
    card.reset_challenge()
    return _card_to_response(card)


@router.post("/tasks/{task_id}/card/chat", response_model=CardResponse)
async def send_chat(task_id: str, request: ChatRequest) -> CardResponse:
    """Send a chat message and wait for the reply.

    A failed reply is reported through chat.last_error, not as an HTTP error.
    """
    card = _require_card(task_id)
    if not request.message.strip():
        raise HTTPException(status_code=400, detail="Message must not be blank")
    if card.chat.is_thinking:
        raise HTTPException(status_code=409, detail="A reply is already pending")
    await card.send_chat(request.message)
    return _card_to_response(card)


@router.post("/cache/invalidate")
async def invalidate_cache(request: InvalidateCacheRequest) -> dict[str, str]:
    """Drop cached facets for one task, or everything when no task is given."""
    cache = get_facet_cache()
    if request.task_id is None:
        cache.clear()
        return {"status": "cleared"}
    cache.invalidate(request.task_id, request.facet)
    return {"status": "invalidated", "task_id": request.task_id}
