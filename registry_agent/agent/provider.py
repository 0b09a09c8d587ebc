"""
Resolves a model name to the agent client that speaks its provider's API.
"""
from typing import Any

from ..core.exceptions import UnknownAgentTypeError, UnknownModelError
from ..utils.logging import get_logger
from .anthropic_client import AnthropicAgentClient
from .base_client import AgentClient
from .openai_client import OpenAIAgentClient
from .types import AgentType, RemoteHandler

# Unknown models are an error; a wrong provider would get the wrong request shape.
MODEL_TO_AGENT_TYPE: dict[str, AgentType] = {
    "computer-use-preview": AgentType.OPENAI,
    "computer-use-preview-2025-02-04": AgentType.OPENAI,
    "computer-use-preview-2025-03-11": AgentType.OPENAI,
    "claude-3-5-sonnet-20240620": AgentType.ANTHROPIC,
    "claude-3-5-sonnet-20241022": AgentType.ANTHROPIC,
    "claude-3-7-sonnet-20250219": AgentType.ANTHROPIC,
}


class AgentProvider:
    """Factory for agent clients."""

    def __init__(self):
        self.logger = get_logger(__name__, component="agent_provider")

    @staticmethod
    def get_agent_provider(model_name: str) -> AgentType:
        """
        Look up the provider type for a model.

        Raises:
            UnknownModelError: If model_name is not in MODEL_TO_AGENT_TYPE
        """
        if model_name in MODEL_TO_AGENT_TYPE:
            return MODEL_TO_AGENT_TYPE[model_name]
        raise UnknownModelError(model_name)

    def get_client(
        self,
        model_name: str,
        client_options: dict[str, Any] | None = None,
        user_instructions: str | None = None,
        remote_handler: RemoteHandler | None = None
    ) -> AgentClient:
        """
        Build the client for model_name.

        Args:
            model_name: Computer-use model to drive
            client_options: Provider SDK options (api_key, base_url, ...)
            user_instructions: Appended to the agent's system prompt
            remote_handler: Replaces the direct SDK call path

        Returns:
            AgentClient for the model's provider

        Raises:
            UnknownModelError: Model not in the table
            UnknownAgentTypeError: Table maps to a type with no client
        """
        agent_type = self.get_agent_provider(model_name)
        self.logger.info(
            "agent_client_resolved",
            agent_type=agent_type.value,
            model=model_name
        )

        try:
            if agent_type == AgentType.OPENAI:
                return OpenAIAgentClient(
                    agent_type,
                    model_name,
                    user_instructions,
                    client_options,
                    remote_handler
                )
            elif agent_type == AgentType.ANTHROPIC:
                return AnthropicAgentClient(
                    agent_type,
                    model_name,
                    user_instructions,
                    client_options,
                    remote_handler
                )
            raise UnknownAgentTypeError(str(agent_type))
        except Exception as e:
            self.logger.error(
                "agent_client_creation_failed",
                model=model_name,
                error=str(e),
                error_type=type(e).__name__
            )
            raise
