"""
Anthropic computer-use client (beta Messages API).
"""
from typing import Any

from ..config import settings
from .base_client import AgentClient, Observation, StepOutcome, parse_usage
from .types import AgentAction, AgentType, RemoteHandler

# model -> (computer tool version, beta flag)
COMPUTER_TOOL_VERSIONS: dict[str, tuple[str, str]] = {
    "claude-3-7-sonnet-20250219": ("computer_20250124", "computer-use-2025-01-24"),
}
DEFAULT_COMPUTER_TOOL = ("computer_20241022", "computer-use-2024-10-22")


class AnthropicAgentClient(AgentClient):
    """
    Drives the Anthropic computer tool.

    The full message history is resent on every step; tool results carry a
    screenshot of the page after each action.
    """

    def __init__(
        self,
        agent_type: AgentType,
        model_name: str,
        user_instructions: str | None = None,
        client_options: dict[str, Any] | None = None,
        remote_handler: RemoteHandler | None = None
    ):
        super().__init__(agent_type, model_name, user_instructions, client_options, remote_handler)
        self.display_width = settings.display_width
        self.display_height = settings.display_height
        self.max_tokens = settings.agent_max_tokens
        self.tool_version, self.beta_flag = COMPUTER_TOOL_VERSIONS.get(
            model_name, DEFAULT_COMPUTER_TOOL
        )

    def start_conversation(self, instruction: str) -> list[dict[str, Any]]:
        return [{"role": "user", "content": instruction}]

    def build_request_body(self, conversation: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "model": self.model_name,
            "max_tokens": self.max_tokens,
            "system": self.build_system_prompt(),
            "messages": conversation,
            "tools": [
                {
                    "type": self.tool_version,
                    "name": "computer",
                    "display_width_px": self.display_width,
                    "display_height_px": self.display_height,
                    "display_number": 1,
                }
            ],
            "betas": [self.beta_flag],
        }

    def parse_response(self, response: dict[str, Any]) -> StepOutcome:
        actions = []
        texts = []
        for block in response.get("content") or []:
            block_type = block.get("type")
            if block_type == "tool_use":
                params = dict(block.get("input") or {})
                actions.append(AgentAction(
                    type=params.pop("action", "unknown"),
                    params=params,
                    call_id=block.get("id")
                ))
            elif block_type == "text" and block.get("text"):
                texts.append(block["text"])

        return StepOutcome(
            actions=actions,
            message="\n".join(texts),
            usage=parse_usage(response)
        )

    def continue_conversation(
        self,
        conversation: list[dict[str, Any]],
        response: dict[str, Any],
        outcome: StepOutcome,
        observations: list[Observation]
    ) -> list[dict[str, Any]]:
        tool_results = []
        for action, observation in zip(outcome.actions, observations):
            content: list[dict[str, Any]] = []
            if observation.error:
                content.append({"type": "text", "text": f"Error: {observation.error}"})
            if observation.url:
                content.append({"type": "text", "text": f"Current URL: {observation.url}"})
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": "image/png",
                    "data": observation.screenshot,
                },
            })
            tool_results.append({
                "type": "tool_result",
                "tool_use_id": action.call_id,
                "content": content,
                "is_error": observation.error is not None,
            })

        return conversation + [
            {"role": "assistant", "content": response.get("content") or []},
            {"role": "user", "content": tool_results},
        ]
