"""
Types shared by agent clients: provider enumeration, task requests and results.
"""
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field


class AgentType(str, Enum):
    """Remote agentic API a client variant speaks."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


# (provider name, {"client_options": ..., "body": ...}) -> provider response
RemoteHandler = Callable[[str, dict[str, Any]], Awaitable[Any]]


class TaskExecutionRequest(BaseModel):
    """A natural-language goal plus pacing and step budget. Delays are milliseconds."""

    instruction: str
    wait_between_actions: int = Field(default=0, ge=0)
    wait_between_steps: int | None = Field(default=None, ge=0)
    max_steps: int = Field(default=10, gt=0)


class AgentAction(BaseModel):
    """A browser action proposed by the model, normalised across providers."""

    type: str
    params: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = None


class AgentUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    inference_time_ms: float = 0.0


class TaskExecutionResult(BaseModel):
    """
    What one task execution produced.

    completed is True when the model reported the task finished and False when
    the step budget ran out first.
    """

    success: bool
    completed: bool
    message: str = ""
    actions: list[AgentAction] = Field(default_factory=list)
    steps_taken: int = 0
    usage: AgentUsage = Field(default_factory=AgentUsage)
