"""Fire-and-forget feedback notifications (haptics, sounds, UI pulses)."""

import logging
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class FeedbackEvent(str, Enum):
    """Discrete events the card reports to the feedback layer."""

    SELECTION = "selection"
    CHALLENGE_TICK = "challenge_tick"
    CHALLENGE_COMPLETED = "challenge_completed"
    MESSAGE_SENT = "message_sent"
    REFRESHED = "refreshed"


class FeedbackSink(Protocol):
    """Protocol for receiving feedback events."""

    def notify(self, event: FeedbackEvent, **details: Any) -> None:
        """Handle a feedback event."""
        ...


class NullFeedback:
    """Feedback sink that drops every event."""

    def notify(self, event: FeedbackEvent, **details: Any) -> None:
        logger.debug(f"[Feedback] {event.value} {details}")


def emit(sink: FeedbackSink, event: FeedbackEvent, **details: Any) -> None:
    """Send an event without letting sink failures reach the caller."""
    try:
        sink.notify(event, **details)
    except Exception as e:
        logger.warning(f"[Feedback] Sink failed for {event.value}: {e}")
