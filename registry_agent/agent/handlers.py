"""
Default provider call path: direct SDK connections.

Any coroutine with the RemoteHandler signature can replace this to proxy
provider calls through another service.
"""
from typing import Any

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from ..core.exceptions import UnknownAgentTypeError
from ..utils.logging import get_logger
from .types import AgentType

logger = get_logger(__name__)


class DirectProviderHandler:
    """
    Calls the agentic endpoint of each provider SDK.

    Holds open HTTP connection pools; share one instance across task
    executions and aclose() it when done.
    """

    def __init__(self):
        self._clients: dict[str, Any] = {}

    def _get_client(self, provider: str, client_options: dict[str, Any]) -> Any:
        """Lazy-load one SDK client per provider."""
        if provider not in self._clients:
            if provider == AgentType.OPENAI.value:
                self._clients[provider] = AsyncOpenAI(**client_options)
            elif provider == AgentType.ANTHROPIC.value:
                self._clients[provider] = AsyncAnthropic(**client_options)
            else:
                raise UnknownAgentTypeError(provider)
            logger.debug("provider_client_created", provider=provider)
        return self._clients[provider]

    async def __call__(self, provider: str, options: dict[str, Any]) -> Any:
        client = self._get_client(provider, options.get("client_options") or {})
        body = options["body"]

        if provider == AgentType.OPENAI.value:
            return await client.responses.create(**body)
        return await client.beta.messages.create(**body)

    async def aclose(self) -> None:
        """Close every SDK client. The handler can still be used afterwards."""
        clients, self._clients = self._clients, {}
        for provider, client in clients.items():
            await client.close()
            logger.debug("provider_client_closed", provider=provider)
