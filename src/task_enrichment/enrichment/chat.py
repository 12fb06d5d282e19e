"""Conversation log for a task card."""

import logging
from collections.abc import Awaitable, Callable

from task_enrichment.api.models import ChatMessage, ChatRole

logger = logging.getLogger(__name__)

Responder = Callable[[list[ChatMessage], str], Awaitable[ChatMessage]]


class ChatSession:
    """Append-only message log with a single in-flight guard."""

    def __init__(self) -> None:
        """Initialize an empty conversation."""
        self._messages: list[ChatMessage] = []
        self.is_thinking = False
        self.last_error: str | None = None

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    async def send(self, text: str, responder: Responder) -> ChatMessage | None:
        """Send a user message and append the assistant's reply.

        Args:
            text: User message
            responder: Called with the history before this message and the new text

        Returns:
            The assistant reply, or None when rejected or the responder failed
        """
        if not text.strip():
            logger.debug("[Chat] Rejected blank message")
            return None
        if self.is_thinking:
            logger.debug("[Chat] Rejected message while a reply is pending")
            return None

        history = list(self._messages)
        self._messages.append(ChatMessage(role=ChatRole.USER, content=text))
        self.is_thinking = True
        try:
            reply = await responder(history, text)
        except Exception as e:
            logger.warning(f"[Chat] Reply failed: {e}")
            self.last_error = str(e) or type(e).__name__
            return None
        finally:
            self.is_thinking = False

        self._messages.append(reply)
        self.last_error = None
        return reply
