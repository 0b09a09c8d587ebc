"""
Abstract agent client: the provider-independent task execution loop.

Each step asks the provider for the next actions, performs them in the browser
environment and feeds the observations back, until the model stops proposing
actions or the step budget runs out.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from ..core.exceptions import AgentExecutionError, ConfigurationError
from ..utils.logging import get_logger
from .environment import BrowserEnvironment
from .handlers import DirectProviderHandler
from .types import (
    AgentAction,
    AgentType,
    AgentUsage,
    RemoteHandler,
    TaskExecutionRequest,
    TaskExecutionResult,
)

BASE_SYSTEM_PROMPT = (
    "You are a computer-use agent operating a web browser to complete the "
    "user's task. Act step by step, and when the task is complete reply with "
    "the final answer instead of requesting another action."
)


class StepOutcome(BaseModel):
    """Provider response for one step, normalised."""

    actions: list[AgentAction] = Field(default_factory=list)
    message: str = ""
    usage: AgentUsage = Field(default_factory=AgentUsage)


class Observation(BaseModel):
    """Environment state after an action."""

    screenshot: str
    url: str | None = None
    error: str | None = None


class AgentClient(ABC):
    """
    One provider's agentic API behind a common execute() contract.

    Constructed per task execution. Every provider call goes through
    remote_handler, which defaults to a direct SDK connection.
    """

    def __init__(
        self,
        agent_type: AgentType,
        model_name: str,
        user_instructions: str | None = None,
        client_options: dict[str, Any] | None = None,
        remote_handler: RemoteHandler | None = None
    ):
        self.agent_type = agent_type
        self.model_name = model_name
        self.user_instructions = user_instructions
        self.client_options = dict(client_options or {})
        self.remote_handler = remote_handler or DirectProviderHandler()
        self.environment: BrowserEnvironment | None = None
        self.logger = get_logger(self.__class__.__name__, agent_type=agent_type.value, model=model_name)

    def set_environment(self, environment: BrowserEnvironment) -> None:
        """Attach the browser the proposed actions are executed in."""
        self.environment = environment

    def build_system_prompt(self) -> str:
        if self.user_instructions:
            return f"{BASE_SYSTEM_PROMPT}\n\n{self.user_instructions}"
        return BASE_SYSTEM_PROMPT

    @abstractmethod
    def start_conversation(self, instruction: str) -> Any:
        """Provider-specific conversation state for a new task."""
        pass

    @abstractmethod
    def build_request_body(self, conversation: Any) -> dict[str, Any]:
        """Request body for the next provider call."""
        pass

    @abstractmethod
    def parse_response(self, response: dict[str, Any]) -> StepOutcome:
        """Extract proposed actions and message text from a provider response."""
        pass

    @abstractmethod
    def continue_conversation(
        self,
        conversation: Any,
        response: dict[str, Any],
        outcome: StepOutcome,
        observations: list[Observation]
    ) -> Any:
        """Conversation state after the step's actions were performed."""
        pass

    async def execute(self, request: TaskExecutionRequest) -> TaskExecutionResult:
        """
        Run the task until the model finishes or max_steps is reached.

        Budget exhaustion is a normal return with completed=False.

        Raises:
            AgentExecutionError: Provider or transport failure (not retried here)
            ConfigurationError: An action was proposed with no environment attached
        """
        start_time = time.time()
        self.logger.info(
            "agent_execution_started",
            max_steps=request.max_steps,
            instruction_length=len(request.instruction)
        )

        conversation = self.start_conversation(request.instruction)
        performed: list[AgentAction] = []
        usage = AgentUsage()
        message = ""
        completed = False
        steps_taken = 0

        for step in range(request.max_steps):
            if request.wait_between_steps:
                await asyncio.sleep(request.wait_between_steps / 1000)

            self.logger.debug("agent_step_started", step=step)
            response, latency_ms = await self._call_provider(
                self.build_request_body(conversation)
            )
            outcome = self.parse_response(response)
            steps_taken += 1

            usage = AgentUsage(
                input_tokens=usage.input_tokens + outcome.usage.input_tokens,
                output_tokens=usage.output_tokens + outcome.usage.output_tokens,
                inference_time_ms=usage.inference_time_ms + latency_ms
            )
            if outcome.message:
                message = outcome.message

            if not outcome.actions:
                completed = True
                break

            observations = []
            for action in outcome.actions:
                if request.wait_between_actions:
                    await asyncio.sleep(request.wait_between_actions / 1000)
                observations.append(await self._perform(action))
                performed.append(action)

            self.logger.info(
                "agent_step_completed",
                step=step,
                actions=[a.type for a in outcome.actions]
            )
            conversation = self.continue_conversation(
                conversation, response, outcome, observations
            )

        if not completed:
            self.logger.warning("agent_step_budget_exhausted", max_steps=request.max_steps)

        self.logger.info(
            "agent_execution_completed",
            completed=completed,
            steps_taken=steps_taken,
            actions=len(performed),
            execution_time=time.time() - start_time
        )

        return TaskExecutionResult(
            success=completed,
            completed=completed,
            message=message,
            actions=performed,
            steps_taken=steps_taken,
            usage=usage
        )

    async def _call_provider(self, body: dict[str, Any]) -> tuple[dict[str, Any], float]:
        """Send one request through the remote handler."""
        start_time = time.time()
        try:
            response = await self.remote_handler(
                self.agent_type.value,
                {"client_options": self.client_options, "body": body}
            )
        except Exception as e:
            self.logger.error(
                "agent_provider_call_failed",
                error=str(e),
                error_type=type(e).__name__
            )
            raise AgentExecutionError(
                provider=self.agent_type.value,
                model_name=self.model_name,
                detail=str(e),
                original_error=e
            ) from e

        latency_ms = (time.time() - start_time) * 1000
        return _as_dict(response), latency_ms

    async def _perform(self, action: AgentAction) -> Observation:
        """Execute an action and capture the resulting page state."""
        if self.environment is None:
            raise ConfigurationError(
                f"Agent proposed '{action.type}' but no browser environment is attached"
            )

        error = None
        if action.type != "screenshot":
            try:
                await self.environment.perform_action(action)
            except Exception as e:
                # Reported back to the model as the tool output
                self.logger.warning(
                    "agent_action_failed",
                    action=action.type,
                    error=str(e)
                )
                error = str(e)

        return Observation(
            screenshot=await self.environment.screenshot(),
            url=await self.environment.current_url(),
            error=error
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model='{self.model_name}')"


def _as_dict(response: Any) -> dict[str, Any]:
    """
    SDK objects and proxied JSON payloads both become plain dicts.

    Unset response-only fields are dropped so content can be sent back as input.
    """
    if hasattr(response, "model_dump"):
        return response.model_dump(exclude_none=True)
    return dict(response)


def parse_usage(response: dict[str, Any]) -> AgentUsage:
    usage = response.get("usage") or {}
    return AgentUsage(
        input_tokens=usage.get("input_tokens") or 0,
        output_tokens=usage.get("output_tokens") or 0
    )
