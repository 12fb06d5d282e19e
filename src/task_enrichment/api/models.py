"""Domain and API models for TaskEnrichment."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar
from urllib.parse import quote_plus

from pydantic import BaseModel

T = TypeVar("T")


class TaskType(str, Enum):
    """Task category used to bias offline heuristics."""

    CREATE = "create"  # High cognitive: writing, coding, designing
    COMMUNICATE = "communicate"  # Emails, calls, meetings
    CONSUME = "consume"  # Reading, courses, videos
    COORDINATE = "coordinate"  # Quick admin: scheduling, organizing

    @property
    def display_name(self) -> str:
        """Human readable name."""
        return {
            TaskType.CREATE: "Create",
            TaskType.COMMUNICATE: "Communicate",
            TaskType.CONSUME: "Learn",
            TaskType.COORDINATE: "Coordinate",
        }[self]

    @property
    def suggested_minutes(self) -> int:
        """Preset default duration in minutes."""
        return {
            TaskType.CREATE: 90,
            TaskType.COMMUNICATE: 30,
            TaskType.CONSUME: 45,
            TaskType.COORDINATE: 15,
        }[self]


class SubTaskStatus(str, Enum):
    """Sub-task progress."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ScheduleRank(str, Enum):
    """Ranking for schedule suggestions."""

    BEST = "best"
    GOOD = "good"
    OKAY = "okay"


class ChatRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class Emotion(str, Enum):
    """Emotional check-in options."""

    ANXIOUS = "anxious"
    OVERWHELMED = "overwhelmed"
    UNMOTIVATED = "unmotivated"
    READY = "ready"


class WorkMode(str, Enum):
    """Suggested working style for a task."""

    DEEP_WORK = "deep_work"
    POMODORO = "pomodoro"


@dataclass
class Task:
    """Task being enriched."""

    id: str  # Filename without .md
    title: str
    notes: str = ""
    duration_minutes: int | None = None
    scheduled_time: datetime | None = None
    priority: int = 0  # 0-3
    recurring: str | None = None  # daily, weekly, monthly, ...
    times_rescheduled: int = 0
    emotional_blocker: str | None = None
    task_type: TaskType = TaskType.CREATE
    updated_at: datetime | None = None
    ai_advice: str | None = None  # Overview of the last remote strategy
    ai_thought_process: str | None = None  # Reasoning behind that strategy


@dataclass
class SubTask:
    """Checklist item belonging to a task."""

    task_id: str
    title: str
    order_index: int
    status: SubTaskStatus = SubTaskStatus.PENDING
    estimated_minutes: int | None = None
    ai_reasoning: str | None = None
    completed_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class Strategy:
    """Strategy breakdown for a task."""

    overview: str
    key_points: list[str]
    actionable_steps: list[str]
    potential_obstacles: list[str] | None = None
    estimated_minutes: int | None = None
    confidence: str | None = None
    thought_process: str | None = None

    @property
    def brief_summary(self) -> str:
        """First sentence of the overview, for the collapsed card."""
        first = self.overview.split(". ")[0]
        return first if first.endswith(".") else first + "."

    def formatted(self) -> str:
        """Render the strategy as display text."""
        lines = [self.overview, "", "Key Strategy Points:"]
        lines.extend(f"• {point}" for point in self.key_points)
        lines.extend(["", "Actionable Steps:"])
        lines.extend(f"{i}. {step}" for i, step in enumerate(self.actionable_steps, start=1))
        if self.potential_obstacles:
            lines.extend(["", "Watch Out For:"])
            lines.extend(f"! {obstacle}" for obstacle in self.potential_obstacles)
        return "\n".join(lines)


@dataclass(frozen=True)
class DurationEstimate:
    """Estimated task duration."""

    minutes: int
    confidence: str  # high, medium, low
    reasoning: str | None = None


@dataclass(frozen=True)
class ResourceSuggestion:
    """Tutorial search lead (deep-links to search results, not a specific video)."""

    display_title: str
    search_query: str
    reasoning: str | None = None
    relevance_score: float | None = None  # 0.0-1.0

    @property
    def relevance_label(self) -> str | None:
        """Relevance label for UI."""
        if self.relevance_score is None:
            return None
        if self.relevance_score >= 0.9:
            return "Highly relevant"
        if self.relevance_score >= 0.7:
            return "Very relevant"
        if self.relevance_score >= 0.5:
            return "Relevant"
        return "Suggested"

    @property
    def relevance_icon(self) -> str:
        """Icon hint based on relevance."""
        if self.relevance_score is None:
            return "magnifyingglass"
        if self.relevance_score >= 0.8:
            return "star.fill"
        if self.relevance_score >= 0.6:
            return "star.leadinghalf.filled"
        return "magnifyingglass"

    @property
    def search_url(self) -> str:
        """Web URL for the search results."""
        return f"https://www.youtube.com/results?search_query={quote_plus(self.search_query)}"


@dataclass(frozen=True)
class ScheduleSuggestion:
    """Proposed time slot for a task."""

    rank: ScheduleRank
    proposed_at: datetime
    reason: str


@dataclass(frozen=True)
class ChatMessage:
    """One entry in a card's conversation."""

    role: ChatRole
    content: str


def format_minutes(minutes: int | None) -> str | None:
    """Format minutes as "45m", "1h" or "1h 30m"."""
    if minutes is None:
        return None
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    return f"{minutes}m"


class TaskResponse(BaseModel):
    """API response model for tasks."""

    id: str
    title: str
    notes: str
    duration_minutes: int | None
    formatted_duration: str | None
    scheduled_time: datetime | None
    priority: int
    recurring: str | None
    times_rescheduled: int
    emotional_blocker: str | None
    task_type: TaskType
    updated_at: datetime | None


class FacetResponse(BaseModel, Generic[T]):
    """Observed state of one facet."""

    status: str
    source: str | None
    value: T | None
    error: str | None = None


class StrategyResponse(BaseModel):
    """Strategy facet value with display text."""

    overview: str
    key_points: list[str]
    actionable_steps: list[str]
    potential_obstacles: list[str] | None
    estimated_minutes: int | None
    confidence: str | None
    thought_process: str | None
    brief_summary: str
    formatted: str


class ResourceResponse(BaseModel):
    """Resource suggestion with display hints."""

    display_title: str
    search_query: str
    reasoning: str | None
    relevance_label: str | None
    relevance_icon: str
    search_url: str


class SubTaskResponse(BaseModel):
    """API response model for sub-tasks."""

    id: str
    title: str
    status: SubTaskStatus
    order_index: int
    estimated_minutes: int | None
    ai_reasoning: str | None
    completed_at: datetime | None


class ChallengeResponse(BaseModel):
    """Micro-challenge countdown state."""

    title: str
    total_seconds: int
    remaining_seconds: int
    state: str


class ChatResponse(BaseModel):
    """Conversation log and in-flight flag."""

    messages: list[ChatMessage]
    is_thinking: bool
    last_error: str | None


class CardResponse(BaseModel):
    """Snapshot of everything the card renders."""

    task: TaskResponse
    strategy: FacetResponse[StrategyResponse]
    duration: FacetResponse[DurationEstimate]
    resources: FacetResponse[list[ResourceResponse]]
    schedule: list[ScheduleSuggestion]
    subtasks: list[SubTaskResponse]
    subtasks_status: str
    subtask_rationale: str | None
    subtask_progress: float
    chat: ChatResponse
    challenge: ChallengeResponse
    selected_emotion: Emotion | None
    emotion_response: str | None
    show_emotional_checkin: bool
    work_mode: WorkMode
    work_mode_reason: str
    has_unsaved_changes: bool
    needs_resync: bool
    is_initial_load_complete: bool
