"""
Browser environment the agent acts on.

Implemented by the browser automation layer; the agent clients and the search
orchestrator only call it.
"""
from abc import ABC, abstractmethod
from typing import Any

from .types import AgentAction


class BrowserEnvironment(ABC):
    """One controlled page, owned by a single search tree at a time."""

    @abstractmethod
    async def navigate_to(self, url: str) -> None:
        """Load url and wait for the page to settle."""
        pass

    @abstractmethod
    async def perform_action(self, action: AgentAction) -> None:
        """
        Execute a model-proposed action (click, type, scroll, keypress, ...).

        Raises:
            Exception: Any failure; the agent reports it back to the model
        """
        pass

    @abstractmethod
    async def observe_candidate_actions(self, instruction: str) -> AgentAction | None:
        """Suggest the action that would carry out instruction, if any."""
        pass

    @abstractmethod
    async def extract_structured(self, instruction: str, schema: dict[str, Any]) -> dict[str, Any]:
        """Extract page content matching a JSON schema."""
        pass

    @abstractmethod
    async def screenshot(self) -> str:
        """Base64-encoded PNG of the current viewport."""
        pass

    @abstractmethod
    async def current_url(self) -> str:
        pass
