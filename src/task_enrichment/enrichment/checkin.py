"""Emotional check-in responses."""

from task_enrichment.api.models import Emotion, Task

EMOTION_RESPONSES: dict[Emotion, str] = {
    Emotion.ANXIOUS: (
        "I hear you. Anxiety often protects us from failure, but it can also hold us back. "
        "Let's shrink this down to something so tiny your brain won't see it as a threat."
    ),
    Emotion.OVERWHELMED: (
        "When something feels too big, our brain protects us by avoiding it. That's completely "
        "normal. Let's break this into a 30-second action."
    ),
    Emotion.UNMOTIVATED: (
        "Here's a secret: motivation comes AFTER starting, not before. You just need to do "
        "the tiniest thing to get momentum going."
    ),
    Emotion.READY: "Excellent! Let's channel that energy. Your first step is waiting for you below.",
}

# Reschedules before the card offers a check-in
CHECKIN_RESCHEDULE_THRESHOLD = 2


def response_for(emotion: Emotion) -> str:
    """Canned supportive response for an emotion."""
    return EMOTION_RESPONSES[emotion]


def should_offer_checkin(task: Task) -> bool:
    """Offer a check-in for repeatedly postponed or flagged tasks."""
    return (
        task.times_rescheduled >= CHECKIN_RESCHEDULE_THRESHOLD
        or task.emotional_blocker is not None
    )
