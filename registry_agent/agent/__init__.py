"""
Provider-polymorphic computer-use agent clients.
"""
from registry_agent.agent.anthropic_client import AnthropicAgentClient
from registry_agent.agent.base_client import AgentClient
from registry_agent.agent.environment import BrowserEnvironment
from registry_agent.agent.handlers import DirectProviderHandler
from registry_agent.agent.openai_client import OpenAIAgentClient
from registry_agent.agent.provider import MODEL_TO_AGENT_TYPE, AgentProvider
from registry_agent.agent.types import (
    AgentAction,
    AgentType,
    AgentUsage,
    RemoteHandler,
    TaskExecutionRequest,
    TaskExecutionResult,
)

__all__ = [
    "AgentAction",
    "AgentClient",
    "AgentProvider",
    "AgentType",
    "AgentUsage",
    "AnthropicAgentClient",
    "BrowserEnvironment",
    "DirectProviderHandler",
    "MODEL_TO_AGENT_TYPE",
    "OpenAIAgentClient",
    "RemoteHandler",
    "TaskExecutionRequest",
    "TaskExecutionResult",
]
