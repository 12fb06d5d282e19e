"""Deterministic offline substitutes for AI-derived facets.

Every function here works from the task's own attributes only. None of them
perform I/O and none of them can fail, so the orchestrator can always fall
back to them when the reasoning service is unavailable.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from task_enrichment.api.models import (
    DurationEstimate,
    ResourceSuggestion,
    ScheduleRank,
    ScheduleSuggestion,
    Strategy,
    SubTask,
    Task,
    TaskType,
    WorkMode,
)

# (title, minutes, per-step reasoning)
_Step = tuple[str, int, str | None]

DOCUMENT_KEYWORDS = ("report", "presentation", "document")
MEETING_KEYWORDS = ("meeting", "call")
COMMUNICATION_KEYWORDS = ("email", "reply", "respond")

_DOCUMENT_STEPS: list[_Step] = [
    ("Research and gather data", 15, "Start with data collection to inform content"),
    ("Create outline/structure", 10, "Structure before detailed content"),
    ("Write main content", 25, None),
    ("Add visuals/formatting", 15, None),
    ("Review and polish", 10, None),
]
_DOCUMENT_RATIONALE = (
    "Recognized this as a document creation task. Research comes before drafting: "
    "research -> outline -> content -> visuals -> review."
)

_MEETING_STEPS: list[_Step] = [
    ("Prepare agenda points", 10, "Clear agenda ensures productive meeting"),
    ("Gather relevant materials", 10, None),
    ("Send calendar invite/reminder", 5, None),
    ("Conduct meeting", 30, None),
]
_MEETING_RATIONALE = (
    "Identified as a meeting task. Preparation happens before execution."
)

_COMMUNICATION_STEPS: list[_Step] = [
    ("Review context/thread", 5, None),
    ("Draft response", 10, None),
    ("Proofread and send", 5, None),
]
_COMMUNICATION_RATIONALE = (
    "Communication task identified. Simple three-step flow: review -> draft -> send."
)

_GENERIC_STEPS: list[_Step] = [
    ("Define clear objectives", 5, "Clarity on goals improves focus"),
    ("Break into actionable steps", 10, None),
    ("Execute main work", 20, None),
    ("Review and complete", 10, None),
]
_GENERIC_RATIONALE = (
    "Created a general task breakdown following the define -> plan -> execute -> review pattern."
)


@dataclass(frozen=True)
class SubTaskBreakdown:
    """Generated checklist plus the reasoning behind its ordering."""

    subtasks: list[SubTask]
    rationale: str


def _matches(title: str, keywords: tuple[str, ...]) -> bool:
    lowered = title.lower()
    return any(keyword in lowered for keyword in keywords)


def fallback_subtasks(task: Task) -> SubTaskBreakdown:
    """Decompose a task into a fixed template chosen by title keywords."""
    if _matches(task.title, DOCUMENT_KEYWORDS):
        steps, rationale = _DOCUMENT_STEPS, _DOCUMENT_RATIONALE
    elif _matches(task.title, MEETING_KEYWORDS):
        steps, rationale = _MEETING_STEPS, _MEETING_RATIONALE
    elif _matches(task.title, COMMUNICATION_KEYWORDS):
        steps, rationale = _COMMUNICATION_STEPS, _COMMUNICATION_RATIONALE
    else:
        steps, rationale = _GENERIC_STEPS, _GENERIC_RATIONALE

    subtasks = [
        SubTask(
            task_id=task.id,
            title=title,
            order_index=index,
            estimated_minutes=minutes,
            ai_reasoning=reasoning,
        )
        for index, (title, minutes, reasoning) in enumerate(steps, start=1)
    ]
    return SubTaskBreakdown(subtasks=subtasks, rationale=rationale)


def fallback_strategy(task: Task) -> Strategy:
    """Pattern-based strategy for the task's type."""
    title = task.title
    if task.task_type is TaskType.CREATE:
        overview = (
            f"Creative work like '{title}' requires sustained focus and an uninterrupted "
            "environment. Block out distractions and commit to a deep work session."
        )
        key_points = [
            "Creative tasks need longer uninterrupted blocks",
            "Morning hours often yield best creative output",
            "Silence notifications and close unnecessary tabs",
            "Start with the easiest part to build momentum",
        ]
        steps = [
            "Open the relevant document/tool (30 seconds)",
            "Write just the first line or make the first mark",
            "Set a 25-minute timer and work without stopping",
            "Take a 5-minute break, then continue",
        ]
        obstacles = [
            "Perfectionism - aim for a 'good enough' first draft",
            "Research rabbit holes - set a research time limit",
        ]
    elif task.task_type is TaskType.COMMUNICATE:
        overview = (
            "Communication tasks benefit from clear preparation and focused execution. "
            "Prepare your key points before starting to prevent back-and-forth."
        )
        key_points = [
            "Clarity prevents follow-up clarifications",
            "Batch similar communications together",
            "Use templates for recurring messages",
        ]
        steps = [
            "List 3 key points you need to convey",
            "Draft the core message (under 5 minutes)",
            "Review for clarity and brevity",
            "Send and set a reminder for follow-up if needed",
        ]
        obstacles = [
            "Over-explaining - keep it concise",
            "Waiting for perfect timing",
        ]
    elif task.task_type is TaskType.CONSUME:
        overview = (
            f"Learning tasks like '{title}' require active engagement. Take notes and "
            "connect new information to what you already know."
        )
        key_points = [
            "Active engagement beats passive consumption",
            "Take brief notes to improve retention",
            "Teach someone else to solidify understanding",
        ]
        steps = [
            "Set a clear learning objective before starting",
            "Read/watch for 20 minutes with focused attention",
            "Write 3 key takeaways in your own words",
            "Identify one immediate application",
        ]
        obstacles = [
            "Information overload - limit scope",
            "Passive consumption - engage actively",
        ]
    else:
        overview = (
            f"Administrative tasks are best batched together. '{title}' benefits from "
            "quick, decisive action rather than overthinking."
        )
        key_points = [
            "Batch similar admin tasks together",
            "Set time limits to prevent overthinking",
            "Automate or delegate when possible",
        ]
        steps = [
            "Gather all necessary information first (2 min)",
            "Make decisions quickly - most are reversible",
            "Complete the task without interruption",
            "Document any follow-up items immediately",
        ]
        obstacles = [
            "Overthinking simple decisions",
            "Context switching - batch similar tasks",
        ]

    return Strategy(
        overview=overview,
        key_points=key_points,
        actionable_steps=steps,
        potential_obstacles=obstacles,
        estimated_minutes=task.task_type.suggested_minutes,
        confidence="low",
        thought_process=(
            f"Pattern-based strategy for {task.task_type.display_name} tasks (offline fallback)"
        ),
    )


def fallback_duration(task: Task) -> DurationEstimate:
    """Task-type default duration with low confidence."""
    return DurationEstimate(
        minutes=task.task_type.suggested_minutes,
        confidence="low",
        reasoning=f"Default for {task.task_type.display_name} tasks (offline estimate)",
    )


_RESOURCE_FAMILIES: list[tuple[tuple[str, ...], list[ResourceSuggestion]]] = [
    (
        ("presentation", "slides", "powerpoint"),
        [
            ResourceSuggestion(
                display_title="Presentation Design Tips",
                search_query="how to create effective presentation slides tips",
                reasoning="Learn visual design principles for impactful slides",
                relevance_score=0.9,
            ),
            ResourceSuggestion(
                display_title="Presentation Storytelling",
                search_query="presentation structure storytelling business",
                reasoning="Structure your message for maximum impact",
                relevance_score=0.85,
            ),
        ],
    ),
    (
        ("report", "document", "write"),
        [
            ResourceSuggestion(
                display_title="Report Writing Guide",
                search_query="professional report writing tutorial structure",
                reasoning="Structure and clarity tips for professional documents",
                relevance_score=0.9,
            )
        ],
    ),
    (
        ("meeting", "call"),
        [
            ResourceSuggestion(
                display_title="Meeting Preparation",
                search_query="effective meeting preparation agenda tips",
                reasoning="Prepare agendas for productive meetings",
                relevance_score=0.85,
            )
        ],
    ),
    (
        ("email", "reply"),
        [
            ResourceSuggestion(
                display_title="Email Writing Tips",
                search_query="professional email writing tips templates",
                reasoning="Write clear, professional emails",
                relevance_score=0.85,
            )
        ],
    ),
    (
        ("code", "develop", "bug", "feature"),
        [
            ResourceSuggestion(
                display_title="Developer Productivity",
                search_query="coding productivity tips developer workflow",
                reasoning="Optimize your coding workflow",
                relevance_score=0.8,
            )
        ],
    ),
]


def fallback_resources(title: str, max_results: int = 3) -> list[ResourceSuggestion]:
    """Generic tutorial searches derived from title keywords."""
    resources: list[ResourceSuggestion] = []
    for keywords, suggestions in _RESOURCE_FAMILIES:
        if _matches(title, keywords):
            resources.extend(suggestions)

    if not resources:
        resources = [
            ResourceSuggestion(
                display_title="Task Tutorial",
                search_query=f"{title} tutorial how to guide",
                reasoning="General guidance for this type of task",
                relevance_score=0.7,
            ),
            ResourceSuggestion(
                display_title="Productivity Tips",
                search_query="productivity tips get things done focus",
                reasoning="General productivity techniques",
                relevance_score=0.6,
            ),
        ]

    return resources[:max_results]


def default_schedule(task: Task, now: datetime) -> list[ScheduleSuggestion]:
    """Suggest tomorrow morning at 9."""
    tomorrow = (now + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
    return [
        ScheduleSuggestion(
            rank=ScheduleRank.BEST,
            proposed_at=tomorrow,
            reason="Your calendar is free and you're typically most productive in the morning.",
        )
    ]


def recommend_work_mode(task: Task) -> tuple[WorkMode, str]:
    """Pick a working style from the task type."""
    if task.task_type is TaskType.CREATE:
        return (
            WorkMode.DEEP_WORK,
            "Creative tasks need uninterrupted flow. Pomodoro breaks would fragment your thinking.",
        )
    return WorkMode.POMODORO, "This task is well-suited for focused sprints with short breaks."


def fallback_chat_reply(task: Task) -> str:
    """Offline assistant reply."""
    return (
        f"Based on your task '{task.title}', I'd suggest starting with the smallest "
        "possible action. Would you like me to break this down further?"
    )
