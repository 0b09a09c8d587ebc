"""
Tests for the task execution protocol of both agent client variants.

Provider calls go through a scripted remote handler; the browser is the
in-memory FakeBrowserEnvironment.
"""
from typing import Any, Literal

import pytest
from pydantic import BaseModel
from unittest.mock import AsyncMock, MagicMock, call, patch

from registry_agent.agent.provider import AgentProvider
from registry_agent.agent.types import TaskExecutionRequest
from registry_agent.core.exceptions import AgentExecutionError, ConfigurationError
from tests.fixtures import FakeBrowserEnvironment

ANTHROPIC_MODEL = "claude-3-7-sonnet-20250219"
OPENAI_MODEL = "computer-use-preview-2025-03-11"


def anthropic_action(tool_id: str = "tu_1", action: str = "left_click", params: dict | None = None) -> dict:
    params = {"coordinate": [100, 200]} if params is None else params
    return {
        "id": f"msg_{tool_id}",
        "content": [
            {"type": "text", "text": "Working on it"},
            {"type": "tool_use", "id": tool_id, "name": "computer", "input": {"action": action, **params}},
        ],
        "stop_reason": "tool_use",
        "usage": {"input_tokens": 100, "output_tokens": 20},
    }


def anthropic_final(text: str = '{"done": true}') -> dict:
    return {
        "id": "msg_final",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 150, "output_tokens": 30},
    }


def openai_action(response_id: str = "resp_1", call_id: str = "call_1", safety_checks: list | None = None) -> dict:
    return {
        "id": response_id,
        "output": [
            {"type": "reasoning", "summary": []},
            {
                "type": "computer_call",
                "call_id": call_id,
                "action": {"type": "click", "x": 10, "y": 20, "button": "left"},
                "pending_safety_checks": safety_checks or [],
            },
        ],
        "usage": {"input_tokens": 50, "output_tokens": 5},
    }


def openai_final(text: str = '{"done": true}') -> dict:
    return {
        "id": "resp_final",
        "output": [{"type": "message", "content": [{"type": "output_text", "text": text}]}],
        "usage": {"input_tokens": 60, "output_tokens": 10},
    }


class SdkTextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str
    citations: list[Any] | None = None


class SdkToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]
    caller: dict[str, Any] | None = None


class SdkMessage(BaseModel):
    """Stand-in for an SDK response model with unset response-only fields."""
    id: str
    content: list[SdkTextBlock | SdkToolUseBlock]
    stop_reason: str
    usage: dict[str, int]
    container: dict[str, Any] | None = None


def build_client(model_name: str, handler: AsyncMock, environment=None):
    client = AgentProvider().get_client(
        model_name,
        client_options={"api_key": "test-key"},
        user_instructions="Do not ask follow up questions.",
        remote_handler=handler
    )
    if environment is not None:
        client.set_environment(environment)
    return client


def sent_body(handler: AsyncMock, index: int) -> dict:
    return handler.call_args_list[index].args[1]["body"]


@pytest.fixture
def mock_sleep():
    with patch("registry_agent.agent.base_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestAnthropicAgentClient:
    """Anthropic computer-use loop."""

    @pytest.mark.asyncio
    async def test_runs_until_model_stops(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action(), anthropic_final('{"a": 1}')])
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9", max_steps=5))

        assert result.completed is True
        assert result.success is True
        assert result.message == '{"a": 1}'
        assert result.steps_taken == 2
        assert [a.type for a in result.actions] == ["left_click"]
        assert result.actions[0].params == {"coordinate": [100, 200]}
        assert result.usage.input_tokens == 250
        assert result.usage.output_tokens == 50
        assert fake_environment.performed == result.actions

    @pytest.mark.asyncio
    async def test_request_body_and_tool_results(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action("tu_9"), anthropic_final()])
        fake_environment.url = "https://registry.example/search"
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        provider, options = handler.call_args_list[0].args
        assert provider == "anthropic"
        assert options["client_options"] == {"api_key": "test-key"}

        first = sent_body(handler, 0)
        assert first["model"] == ANTHROPIC_MODEL
        assert first["messages"] == [{"role": "user", "content": "Find Tech9"}]
        assert first["tools"][0]["type"] == "computer_20250124"
        assert first["tools"][0]["display_width_px"] == 1024
        assert first["betas"] == ["computer-use-2025-01-24"]
        assert "Do not ask follow up questions." in first["system"]

        second = sent_body(handler, 1)
        assert len(second["messages"]) == 3
        assert second["messages"][1]["role"] == "assistant"
        tool_result = second["messages"][2]["content"][0]
        assert tool_result["type"] == "tool_result"
        assert tool_result["tool_use_id"] == "tu_9"
        assert tool_result["is_error"] is False
        image = tool_result["content"][-1]
        assert image["source"]["data"] == "c2NyZWVuc2hvdA=="
        assert {"type": "text", "text": "Current URL: https://registry.example/search"} in tool_result["content"]

    @pytest.mark.asyncio
    async def test_pacing_waits_before_steps_and_actions(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action(), anthropic_final()])
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        await client.execute(TaskExecutionRequest(
            instruction="Find Tech9",
            wait_between_actions=1500,
            wait_between_steps=500
        ))

        assert mock_sleep.call_args_list == [call(0.5), call(1.5), call(0.5)]

    @pytest.mark.asyncio
    async def test_no_step_wait_when_unspecified(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action(), anthropic_final()])
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        await client.execute(TaskExecutionRequest(instruction="Find Tech9", wait_between_actions=2000))

        assert mock_sleep.call_args_list == [call(2.0)]

    @pytest.mark.asyncio
    async def test_step_budget_exhaustion_returns_partial_result(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action(f"tu_{i}") for i in range(3)])
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9", max_steps=3))

        assert result.completed is False
        assert result.steps_taken == 3
        assert len(result.actions) == 3
        assert result.message == "Working on it"
        assert handler.call_count == 3

    @pytest.mark.asyncio
    async def test_provider_failure_is_not_retried(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=RuntimeError("overloaded_error"))
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        with pytest.raises(AgentExecutionError) as exc_info:
            await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assert exc_info.value.provider == "anthropic"
        assert exc_info.value.model_name == ANTHROPIC_MODEL
        assert "overloaded_error" in exc_info.value.detail
        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert handler.call_count == 1

    @pytest.mark.asyncio
    async def test_action_failure_is_reported_to_model(self, mock_sleep):
        environment = FakeBrowserEnvironment(fail_actions={"left_click"})
        handler = AsyncMock(side_effect=[anthropic_action(), anthropic_final()])
        client = build_client(ANTHROPIC_MODEL, handler, environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assert result.completed is True
        tool_result = sent_body(handler, 1)["messages"][2]["content"][0]
        assert tool_result["is_error"] is True
        assert tool_result["content"][0]["text"] == "Error: element not found for left_click"

    @pytest.mark.asyncio
    async def test_screenshot_action_only_captures(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action(action="screenshot", params={}), anthropic_final()])
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assert result.actions[0].type == "screenshot"
        assert fake_environment.performed == []
        assert fake_environment.screenshots_taken == 1

    @pytest.mark.asyncio
    async def test_action_without_environment_fails(self, mock_sleep):
        handler = AsyncMock(side_effect=[anthropic_action()])
        client = build_client(ANTHROPIC_MODEL, handler)

        with pytest.raises(ConfigurationError):
            await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

    @pytest.mark.asyncio
    async def test_sdk_response_objects_are_normalised(self, fake_environment, mock_sleep):
        sdk_response = MagicMock()
        sdk_response.model_dump.return_value = anthropic_final("plain answer")
        handler = AsyncMock(return_value=sdk_response)
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assert result.message == "plain answer"
        assert result.completed is True
        sdk_response.model_dump.assert_called_once_with(exclude_none=True)

    @pytest.mark.asyncio
    async def test_sdk_content_sent_back_without_unset_fields(self, fake_environment, mock_sleep):
        sdk_response = SdkMessage(
            id="msg_1",
            content=[
                SdkTextBlock(text="Clicking search"),
                SdkToolUseBlock(id="tu_1", name="computer", input={"action": "left_click", "coordinate": [5, 5]}),
            ],
            stop_reason="tool_use",
            usage={"input_tokens": 10, "output_tokens": 2},
        )
        handler = AsyncMock(side_effect=[sdk_response, anthropic_final()])
        client = build_client(ANTHROPIC_MODEL, handler, fake_environment)

        await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assistant_turn = sent_body(handler, 1)["messages"][1]
        assert assistant_turn == {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Clicking search"},
                {"type": "tool_use", "id": "tu_1", "name": "computer", "input": {"action": "left_click", "coordinate": [5, 5]}},
            ],
        }


class TestOpenAIAgentClient:
    """OpenAI Responses API computer-use loop."""

    @pytest.mark.asyncio
    async def test_runs_until_model_stops(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[openai_action(), openai_final('result {"a": 1}')])
        client = build_client(OPENAI_MODEL, handler, fake_environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assert result.completed is True
        assert result.message == 'result {"a": 1}'
        assert result.steps_taken == 2
        assert result.actions[0].type == "click"
        assert result.actions[0].params == {"x": 10, "y": 20, "button": "left"}
        assert result.actions[0].call_id == "call_1"
        assert result.usage.input_tokens == 110

    @pytest.mark.asyncio
    async def test_turns_are_chained_with_call_outputs(self, fake_environment, mock_sleep):
        checks = [{"id": "sc_1", "code": "malicious_instructions", "message": "check"}]
        handler = AsyncMock(side_effect=[openai_action("resp_1", "call_7", checks), openai_final()])
        fake_environment.url = "https://registry.example/search"
        client = build_client(OPENAI_MODEL, handler, fake_environment)

        await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        assert handler.call_args_list[0].args[0] == "openai"
        first = sent_body(handler, 0)
        assert "previous_response_id" not in first
        assert first["input"] == [{"role": "user", "content": "Find Tech9"}]
        assert first["tools"][0] == {
            "type": "computer_use_preview",
            "display_width": 1024,
            "display_height": 768,
            "environment": "browser",
        }
        assert first["truncation"] == "auto"

        second = sent_body(handler, 1)
        assert second["previous_response_id"] == "resp_1"
        output = second["input"][0]
        assert output["type"] == "computer_call_output"
        assert output["call_id"] == "call_7"
        assert output["acknowledged_safety_checks"] == checks
        assert output["output"]["image_url"] == "data:image/png;base64,c2NyZWVuc2hvdA=="
        assert output["current_url"] == "https://registry.example/search"

    @pytest.mark.asyncio
    async def test_action_failure_is_sent_as_user_text(self, mock_sleep):
        environment = FakeBrowserEnvironment(fail_actions={"click"})
        handler = AsyncMock(side_effect=[openai_action(), openai_final()])
        client = build_client(OPENAI_MODEL, handler, environment)

        await client.execute(TaskExecutionRequest(instruction="Find Tech9"))

        second = sent_body(handler, 1)
        assert len(second["input"]) == 2
        assert "element not found for click" in second["input"][1]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_step_budget_exhaustion(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=[openai_action(f"resp_{i}", f"call_{i}") for i in range(2)])
        client = build_client(OPENAI_MODEL, handler, fake_environment)

        result = await client.execute(TaskExecutionRequest(instruction="Find Tech9", max_steps=2))

        assert result.completed is False
        assert result.message == ""
        assert len(result.actions) == 2

    @pytest.mark.asyncio
    async def test_provider_failure_surfaces_detail(self, fake_environment, mock_sleep):
        handler = AsyncMock(side_effect=ConnectionError("connection reset"))
        client = build_client(OPENAI_MODEL, handler, fake_environment)

        with pytest.raises(AgentExecutionError, match="connection reset"):
            await client.execute(TaskExecutionRequest(instruction="Find Tech9"))


class TestTaskExecutionRequest:
    """Request validation."""

    def test_defaults(self):
        request = TaskExecutionRequest(instruction="go")
        assert request.wait_between_actions == 0
        assert request.wait_between_steps is None
        assert request.max_steps == 10

    @pytest.mark.parametrize("field,value", [
        ("max_steps", 0),
        ("wait_between_actions", -1),
        ("wait_between_steps", -5),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            TaskExecutionRequest(instruction="go", **{field: value})
