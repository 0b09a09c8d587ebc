"""
OpenAI computer-use client (Responses API).
"""
from typing import Any

from ..config import settings
from .base_client import AgentClient, Observation, StepOutcome, parse_usage
from .types import AgentAction, AgentType, RemoteHandler


class OpenAIAgentClient(AgentClient):
    """
    Drives the computer_use_preview tool.

    Turns are chained with previous_response_id, so each request only carries
    the outputs of the actions performed since the last response.
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

    def start_conversation(self, instruction: str) -> dict[str, Any]:
        return {
            "input": [{"role": "user", "content": instruction}],
            "previous_response_id": None,
        }

    def build_request_body(self, conversation: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model_name,
            "instructions": self.build_system_prompt(),
            "input": conversation["input"],
            "tools": [
                {
                    "type": "computer_use_preview",
                    "display_width": self.display_width,
                    "display_height": self.display_height,
                    "environment": "browser",
                }
            ],
            "truncation": "auto",
        }
        if conversation["previous_response_id"]:
            body["previous_response_id"] = conversation["previous_response_id"]
        return body

    def parse_response(self, response: dict[str, Any]) -> StepOutcome:
        actions = []
        texts = []
        for item in response.get("output") or []:
            item_type = item.get("type")
            if item_type == "computer_call":
                action = dict(item.get("action") or {})
                actions.append(AgentAction(
                    type=action.pop("type", "unknown"),
                    params=action,
                    call_id=item.get("call_id")
                ))
            elif item_type == "message":
                for part in item.get("content") or []:
                    if part.get("type") == "output_text" and part.get("text"):
                        texts.append(part["text"])

        return StepOutcome(
            actions=actions,
            message="\n".join(texts),
            usage=parse_usage(response)
        )

    def continue_conversation(
        self,
        conversation: dict[str, Any],
        response: dict[str, Any],
        outcome: StepOutcome,
        observations: list[Observation]
    ) -> dict[str, Any]:
        safety_checks = {
            item.get("call_id"): item.get("pending_safety_checks") or []
            for item in response.get("output") or []
            if item.get("type") == "computer_call"
        }

        next_input: list[dict[str, Any]] = []
        errors = []
        for action, observation in zip(outcome.actions, observations):
            output: dict[str, Any] = {
                "type": "computer_call_output",
                "call_id": action.call_id,
                "acknowledged_safety_checks": safety_checks.get(action.call_id, []),
                "output": {
                    "type": "computer_screenshot",
                    "image_url": f"data:image/png;base64,{observation.screenshot}",
                },
            }
            if observation.url:
                output["current_url"] = observation.url
            next_input.append(output)
            if observation.error:
                errors.append(f"Action '{action.type}' failed: {observation.error}")

        # computer_call_output has no text slot, so failures go in a user turn
        if errors:
            next_input.append({
                "role": "user",
                "content": [{"type": "input_text", "text": "\n".join(errors)}],
            })

        return {"input": next_input, "previous_response_id": response.get("id")}
