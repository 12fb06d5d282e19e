"""Reasoning service client backed by the Claude SDK."""

import logging
import shutil
from typing import Protocol

from claude_code_sdk import AssistantMessage, ClaudeCodeOptions, ClaudeSDKClient, TextBlock

from task_enrichment.api.models import (
    ChatMessage,
    ChatRole,
    DurationEstimate,
    ResourceSuggestion,
    Strategy,
    Task,
)
from task_enrichment.claude.parser import (
    ReasoningError,
    parse_duration,
    parse_resources,
    parse_strategy,
)
from task_enrichment.claude.prompts import (
    CHAT_PROMPT,
    DURATION_PROMPT,
    RESOURCES_PROMPT,
    STRATEGY_PROMPT,
    SYSTEM_PROMPT,
    optional_line,
)

logger = logging.getLogger(__name__)

__all__ = ["ClaudeReasoningClient", "ReasoningClient", "ReasoningError"]


class ReasoningClient(Protocol):
    """Protocol for requesting AI-derived facets.

    Any exception raised by an operation is treated as a generic failure.
    """

    @property
    def is_ready(self) -> bool:
        """Whether calls should be attempted at all."""
        ...

    async def generate_strategy(self, task: Task) -> Strategy:
        """Generate a strategy breakdown."""
        ...

    async def estimate_duration(self, task: Task) -> DurationEstimate:
        """Estimate how long the task takes."""
        ...

    async def generate_resource_searches(
        self, title: str, context: str | None, max_results: int
    ) -> list[ResourceSuggestion]:
        """Suggest tutorial searches."""
        ...

    async def converse(
        self, history: list[ChatMessage], message: str, task: Task | None = None
    ) -> ChatMessage:
        """Reply to a chat message given the prior conversation about a task."""
        ...


class ClaudeReasoningClient:
    """Reasoning client that sends one-shot prompts through the Claude CLI."""

    def __init__(self, claude_cli: str, model: str = "sonnet", enabled: bool = True) -> None:
        """Initialize with Claude CLI command path and model alias."""
        self._claude_cli = claude_cli
        self._model = model
        self._enabled = enabled

    @property
    def is_ready(self) -> bool:
        if not self._enabled:
            return False
        return shutil.which(self._claude_cli) is not None

    async def _ask(self, prompt: str) -> str:
        """Send a prompt and collect the text reply.

        Raises:
            ReasoningError: If the CLI is missing or no text came back
        """
        options = ClaudeCodeOptions(
            model=self._model,
            system_prompt=SYSTEM_PROMPT,
            max_turns=1,
            allowed_tools=[],
        )
        client = ClaudeSDKClient(options=options)
        response_text = ""

        logger.debug(f"Sending query ({len(prompt)} chars)")

        try:
            async with client:
                await client.query(prompt)
                async for message in client.receive_response():
                    if isinstance(message, AssistantMessage):
                        for block in message.content:
                            if isinstance(block, TextBlock):
                                response_text += block.text
        except FileNotFoundError as e:
            logger.error(f"Claude CLI not found: {self._claude_cli}")
            raise ReasoningError(f"Claude CLI not found: {self._claude_cli}") from e
        except ReasoningError:
            raise
        except Exception as e:
            raise ReasoningError(f"Claude request failed: {e}") from e

        if not response_text.strip():
            raise ReasoningError("Claude returned an empty response")

        logger.debug(f"Response length: {len(response_text)} chars")
        return response_text

    async def generate_strategy(self, task: Task) -> Strategy:
        prompt = STRATEGY_PROMPT.format(
            title=task.title,
            task_type=task.task_type.display_name,
            priority=task.priority,
            notes_section=optional_line("Notes", task.notes),
            scheduled_section=optional_line(
                "Due", task.scheduled_time.date().isoformat() if task.scheduled_time else None
            ),
        )
        return parse_strategy(await self._ask(prompt))

    async def estimate_duration(self, task: Task) -> DurationEstimate:
        prompt = DURATION_PROMPT.format(
            title=task.title,
            task_type=task.task_type.display_name,
            notes_section=optional_line("Notes", task.notes),
        )
        return parse_duration(await self._ask(prompt))

    async def generate_resource_searches(
        self, title: str, context: str | None, max_results: int
    ) -> list[ResourceSuggestion]:
        prompt = RESOURCES_PROMPT.format(
            title=title,
            max_results=max_results,
            context_section=optional_line("Context", context),
        )
        return parse_resources(await self._ask(prompt), max_results)

    async def converse(
        self, history: list[ChatMessage], message: str, task: Task | None = None
    ) -> ChatMessage:
        transcript = "\n".join(
            f"{'User' if m.role is ChatRole.USER else 'Assistant'}: {m.content}" for m in history
        )
        prompt = CHAT_PROMPT.format(
            title=task.title if task else "this task",
            task_type=task.task_type.display_name if task else "General",
            history=transcript or "(no messages yet)",
            message=message,
        )
        reply = await self._ask(prompt)
        return ChatMessage(role=ChatRole.ASSISTANT, content=reply.strip())
