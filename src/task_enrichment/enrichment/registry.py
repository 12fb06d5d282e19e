"""Registry of open task cards."""

import logging
from collections.abc import Callable

from task_enrichment.api.models import Task
from task_enrichment.enrichment.orchestrator import TaskEnrichmentOrchestrator

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[Task], TaskEnrichmentOrchestrator]


class CardRegistry:
    """Keeps one orchestrator per open card, keyed by task id."""

    def __init__(self, factory: OrchestratorFactory) -> None:
        """Initialize registry.

        Args:
            factory: Builds an orchestrator for a task
        """
        self._factory = factory
        self._cards: dict[str, TaskEnrichmentOrchestrator] = {}

    def open(self, task: Task) -> TaskEnrichmentOrchestrator:
        """Return the open card for a task, creating it if needed."""
        card = self._cards.get(task.id)
        if card is not None:
            return card
        card = self._factory(task)
        self._cards[task.id] = card
        logger.info(f"[CardRegistry] Opened card for '{task.id}' (open: {len(self._cards)})")
        return card

    def get(self, task_id: str) -> TaskEnrichmentOrchestrator | None:
        return self._cards.get(task_id)

    def close(self, task_id: str) -> bool:
        """Close and forget a card. Returns False if it was not open."""
        card = self._cards.pop(task_id, None)
        if card is None:
            return False
        card.close()
        return True

    def close_all(self) -> None:
        for task_id in list(self._cards):
            self.close(task_id)

    def __len__(self) -> int:
        return len(self._cards)
