"""
Custom exceptions for the registry agent.
Each failure mode carries the context needed to log it without decoding.
"""


class RegistryAgentError(Exception):
    """Base exception for all system errors."""
    pass


class ConfigurationError(RegistryAgentError):
    """Configuration is invalid or missing."""
    pass


class UnknownModelError(ConfigurationError):
    """Model name is not in the model-to-provider table."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"Unknown model name: {model_name}")


class UnknownAgentTypeError(ConfigurationError):
    """Agent type has no client implementation."""

    def __init__(self, agent_type: str):
        self.agent_type = agent_type
        super().__init__(f"Unknown agent type: {agent_type}")


class ModelError(RegistryAgentError):
    """Error from language model."""
    pass


class ModelTimeoutError(ModelError):
    """Model request timed out."""
    pass


class ModelRateLimitError(ModelError):
    """Hit rate limit for model API."""
    pass


class AgentExecutionError(RegistryAgentError):
    """Provider or transport failure while an agent was executing a task."""

    def __init__(
        self,
        provider: str,
        model_name: str,
        detail: str,
        original_error: Exception | None = None
    ):
        self.provider = provider
        self.model_name = model_name
        self.detail = detail
        self.original_error = original_error
        super().__init__(f"Agent '{provider}/{model_name}' failed: {detail}")


class ParsingError(RegistryAgentError):
    """Error parsing response or data."""
    pass


class MalformedLlmJsonError(ParsingError):
    """Fallback model output could not be parsed as JSON."""

    def __init__(self, raw_payload: str):
        self.raw_payload = raw_payload
        super().__init__(f"LLM did not return valid json: {raw_payload!r}")


class MalformedAgentOutputError(ParsingError):
    """Agent output is neither a business entity record nor a no-result response."""

    def __init__(self, message: str, raw_payload: str | None):
        self.raw_payload = raw_payload
        super().__init__(f"{message}. Raw output: {(raw_payload or '')[:200]!r}")


class GateInvocationError(RegistryAgentError):
    """Remote call behind a classification or validation gate failed."""

    def __init__(self, gate: str, message: str, original_error: Exception | None = None):
        self.gate = gate
        self.original_error = original_error
        super().__init__(f"Gate '{gate}' failed: {message}")
