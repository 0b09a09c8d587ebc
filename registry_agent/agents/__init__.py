"""
Search components for registry entity resolution.

- ClassificationGate: labels principals listed on a registry record
- ValidationGate: confirms a record matches the target business
- EntitySearchOrchestrator: depth-bounded search over registry results
"""
from registry_agent.agents.classifier import ClassificationGate
from registry_agent.agents.orchestrator import EntitySearchOrchestrator, parse_search_result
from registry_agent.agents.validator import ValidationGate

__all__ = [
    "ClassificationGate",
    "EntitySearchOrchestrator",
    "ValidationGate",
    "parse_search_result",
]
