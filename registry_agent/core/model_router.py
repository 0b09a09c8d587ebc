"""
Single seam for non-agentic model calls: JSON reformatting, validation and
web-search classification. Backed by litellm, with an in-process response cache.
"""
import hashlib
import json
import os
import time
from datetime import datetime, timedelta
from typing import Any

import litellm
import structlog

from ..config import settings
from ..core.exceptions import ModelError, ModelRateLimitError, ModelTimeoutError
from ..models.domain import ModelResponse

logger = structlog.get_logger(__name__)


class ModelCache:
    """Simple in-memory cache for model responses."""

    def __init__(self, ttl_hours: int = 24):
        self._cache: dict[str, tuple[ModelResponse, datetime]] = {}
        self.ttl = timedelta(hours=ttl_hours)
        self.hits = 0
        self.misses = 0

    def _hash_key(self, model: str, prompt: str, **kwargs) -> str:
        """Create cache key from inputs."""
        key_data = {
            "model": model,
            "prompt": prompt,
            **kwargs
        }
        key_str = json.dumps(key_data, sort_keys=True)
        return hashlib.sha256(key_str.encode()).hexdigest()

    def get(self, model: str, prompt: str, **kwargs) -> ModelResponse | None:
        """Retrieve from cache if not expired."""
        key = self._hash_key(model, prompt, **kwargs)

        if key in self._cache:
            response, timestamp = self._cache[key]
            if datetime.now() - timestamp < self.ttl:
                self.hits += 1
                logger.debug("cache_hit", key=key[:8])
                data = response.model_dump(exclude={"cached"})
                return ModelResponse(**data, cached=True)
            else:
                # Expired
                del self._cache[key]

        self.misses += 1
        return None

    def set(self, model: str, prompt: str, response: ModelResponse, **kwargs) -> None:
        """Store in cache."""
        key = self._hash_key(model, prompt, **kwargs)
        self._cache[key] = (response, datetime.now())
        logger.debug("cache_set", key=key[:8])

    def get_stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        total = self.hits + self.misses
        hit_rate = self.hits / total if total > 0 else 0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
            "size": len(self._cache)
        }


class ModelRouter:
    """
    Routes oracle prompts to litellm.

    Failures are mapped to ModelError subclasses and never retried here;
    callers decide whether a failure is fatal or inconclusive.
    """

    def __init__(self):
        self.cache = ModelCache(ttl_hours=settings.cache_ttl_hours)
        self.request_counts: dict[str, int] = {}
        self.error_counts: dict[str, int] = {}
        self.logger = logger.bind(component="model_router")
        self._configure_api_keys()

    def _configure_api_keys(self) -> None:
        """Expose configured provider keys to litellm."""
        if settings.openai_api_key:
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
            self.logger.info("openai_configured")

        if settings.anthropic_api_key:
            os.environ["ANTHROPIC_API_KEY"] = settings.anthropic_api_key
            self.logger.info("anthropic_configured")

    async def generate(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int = 2000,
        json_mode: bool = False,
        use_cache: bool = True
    ) -> ModelResponse:
        """
        Plain chat completion.

        Args:
            prompt: User prompt
            model: litellm model name
            system_prompt: Optional system prompt
            temperature: Sampling temperature (defaults to settings.oracle_temperature)
            max_tokens: Max tokens to generate
            json_mode: Request a JSON object response
            use_cache: Whether to use cache

        Returns:
            ModelResponse with content and metadata
        """
        temperature = settings.oracle_temperature if temperature is None else temperature

        self.logger.info(
            "generate_start",
            model=model,
            prompt_length=len(prompt),
            json_mode=json_mode
        )

        if use_cache and settings.enable_caching:
            cached = self.cache.get(
                model, prompt,
                system_prompt=system_prompt,
                temperature=temperature,
                json_mode=json_mode
            )
            if cached:
                return cached

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params: dict[str, Any] = {
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        response = await self._call_model(model, messages, **params)

        if use_cache and settings.enable_caching:
            self.cache.set(
                model, prompt, response,
                system_prompt=system_prompt,
                temperature=temperature,
                json_mode=json_mode
            )

        return response

    async def web_search(
        self,
        prompt: str,
        model: str,
        search_context_size: str | None = None,
        max_tokens: int = 2048
    ) -> ModelResponse:
        """
        Completion grounded in a live web search. Never cached.
        """
        self.logger.info("web_search_start", model=model, prompt_length=len(prompt))

        messages = [{"role": "user", "content": prompt}]
        return await self._call_model(
            model,
            messages,
            max_tokens=max_tokens,
            web_search_options={
                "search_context_size": search_context_size or settings.search_context_size,
                "user_location": {
                    "type": "approximate",
                    "approximate": {"country": "US"},
                },
            }
        )

    async def _call_model(
        self,
        model: str,
        messages: list[dict[str, str]],
        **kwargs
    ) -> ModelResponse:
        """Call litellm and map failures to ModelError subclasses."""
        start_time = time.time()

        try:
            response = await litellm.acompletion(
                model=model,
                messages=messages,
                timeout=settings.request_timeout,
                **kwargs
            )
        except Exception as e:
            self.error_counts[model] = self.error_counts.get(model, 0) + 1
            self.logger.error(
                "generate_failed",
                model=model,
                error=str(e),
                error_type=type(e).__name__
            )
            error_str = str(e).lower()

            if "timeout" in error_str or "timed out" in error_str:
                raise ModelTimeoutError(f"Model request timed out: {e}") from e
            elif "rate" in error_str and "limit" in error_str:
                raise ModelRateLimitError(f"Rate limit exceeded: {e}") from e
            else:
                raise ModelError(f"Model error: {e}") from e

        latency_ms = (time.time() - start_time) * 1000
        self.request_counts[model] = self.request_counts.get(model, 0) + 1

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        tokens = usage.total_tokens if usage is not None else None

        return ModelResponse(
            content=content,
            model=model,
            tokens_used=tokens,
            latency_ms=latency_ms,
            cached=False
        )

    def get_metrics(self) -> dict[str, Any]:
        """Return routing metrics."""
        total_requests = sum(self.request_counts.values())
        total_errors = sum(self.error_counts.values())
        total_calls = total_requests + total_errors

        return {
            "total_requests": total_requests,
            "total_errors": total_errors,
            "success_rate": (
                total_requests / total_calls
                if total_calls > 0
                else 0
            ),
            "requests_by_model": self.request_counts,
            "errors_by_model": self.error_counts,
            "cache_stats": self.cache.get_stats()
        }
