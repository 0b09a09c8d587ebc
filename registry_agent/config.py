"""
Configuration management using Pydantic Settings.
Loads from environment variables and .env file.
"""
from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API Keys
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")

    # Agent Configuration
    agent_model: str = Field(
        default="claude-3-7-sonnet-20250219",
        description="Computer-use model driving the browser"
    )
    wait_between_actions_ms: int = Field(
        default=60000,
        ge=0,
        description="Minimum delay before each browser action"
    )
    wait_between_steps_ms: int | None = Field(
        default=None,
        ge=0,
        description="Minimum delay before each agent step"
    )
    max_steps: int = Field(default=10, gt=0, description="Step budget per task execution")
    display_width: int = Field(default=1024, description="Viewport width reported to the agent")
    display_height: int = Field(default=768, description="Viewport height reported to the agent")
    agent_max_tokens: int = Field(default=4096, description="Max tokens per Anthropic agent turn")

    # Oracle models
    extraction_model: str = Field(default="gpt-4o-mini", description="JSON reformatting model")
    validation_model: str = Field(default="gpt-4o", description="Entity validation model")
    classification_model: str = Field(
        default="gpt-4o-mini-search-preview",
        description="Web-search capable model for principal classification"
    )
    search_context_size: Literal["low", "medium", "high"] = Field(
        default="medium",
        description="Web search context size"
    )
    oracle_temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    request_timeout: int = Field(default=60, description="Model request timeout in seconds")

    # Registry search
    registry_url: str = Field(
        default="https://businessregistration.utah.gov/EntitySearch/OnlineEntitySearch",
        description="Online entity search page of the registry"
    )
    registry_state: str = Field(default="Utah", description="State the registry belongs to")
    max_search_depth: int = Field(
        default=5,
        gt=0,
        description="Maximum search attempts along one search path"
    )
    agent_max_attempts: int = Field(
        default=2,
        gt=0,
        description="Attempts per task execution before the failure propagates"
    )
    retry_backoff_seconds: float = Field(default=2.0, ge=0.0, description="Retry backoff multiplier")

    # Caching
    enable_caching: bool = Field(default=True, description="Enable response caching")
    cache_ttl_hours: int = Field(default=24, description="Cache TTL in hours")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format"
    )

    def api_key_for(self, agent_type: str) -> str | None:
        """Return the credential for an agent provider."""
        if agent_type == "openai":
            return self.openai_api_key
        elif agent_type == "anthropic":
            return self.anthropic_api_key
        return None


# Global settings instance
settings = Settings()
