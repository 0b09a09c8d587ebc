"""
Registry agent: drive computer-use agents and resolve which business registry
record belongs to a company.
"""
from registry_agent.agent import AgentProvider, BrowserEnvironment, TaskExecutionRequest
from registry_agent.agents import ClassificationGate, EntitySearchOrchestrator, ValidationGate
from registry_agent.models.domain import Company, SearchOutcome, SearchStatus
from registry_agent.utils import JsonExtractor

__all__ = [
    "AgentProvider",
    "BrowserEnvironment",
    "ClassificationGate",
    "Company",
    "EntitySearchOrchestrator",
    "JsonExtractor",
    "SearchOutcome",
    "SearchStatus",
    "TaskExecutionRequest",
    "ValidationGate",
]
