"""
JSON extraction from model output.

Agents and oracles are asked for raw JSON but often wrap it in prose. A greedy
brace match handles the common case locally; only when that fails is a model
asked to reformat the text.
"""
import json
import re
from typing import Any

import structlog

from ..config import settings
from ..core.exceptions import MalformedLlmJsonError, ModelError
from ..core.model_router import ModelRouter

logger = structlog.get_logger(__name__)

# First "{" to last "}", across lines
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

EXTRACTION_SYSTEM_PROMPT = (
    "Your only goal is to extract the JSON data from the text. Reformat it to "
    "valid JSON if necessary. If there is no JSON found in the text, return an "
    'empty object: "{}"'
)


def match_json_object(text: str) -> Any | None:
    """
    Parse the greedy brace-delimited span of text.

    Returns:
        Parsed JSON, or None if there is no span or it does not parse

    Examples:
        >>> match_json_object('prefix {"a": 1} suffix')
        {'a': 1}
        >>> match_json_object('no json here') is None
        True
    """
    match = JSON_OBJECT_PATTERN.search(text)
    if not match:
        return None
    try:
        return json.loads(match.group())
    except json.JSONDecodeError:
        return None


def safe_get_field(
    data: dict[str, Any] | None,
    field: str,
    default: Any = None,
    expected_type: type | None = None
) -> Any:
    """
    Safely extract a field from parsed JSON with type validation.

    Examples:
        >>> safe_get_field({"count": 5}, "count", 0, int)
        5
        >>> safe_get_field({"count": "five"}, "count", 0, int)
        0
    """
    if not isinstance(data, dict):
        return default

    value = data.get(field, default)

    if expected_type is not None and value is not default:
        if not isinstance(value, expected_type):
            return default

    return value


class JsonExtractor:
    """Turns raw model text into JSON with a regex-then-model fallback."""

    def __init__(self, model_router: ModelRouter, model: str | None = None):
        self.model_router = model_router
        self.model = model or settings.extraction_model
        self.logger = logger.bind(component="json_extractor")

    async def extract(self, text: str | None) -> Any | None:
        """
        Extract JSON from text.

        None means extraction was inconclusive (empty input, or the fallback
        model could not be reached), not that the text holds no data.

        Raises:
            MalformedLlmJsonError: Fallback model output is not valid JSON
        """
        if not text:
            self.logger.info("json_extract_empty_input")
            return None

        parsed = match_json_object(text)
        if parsed is not None:
            self.logger.debug("json_regex_extracted")
            return parsed

        self.logger.info("json_llm_fallback", text_length=len(text))

        try:
            response = await self.model_router.generate(
                prompt=text,
                model=self.model,
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
                json_mode=True,
                use_cache=False
            )
        except ModelError as e:
            self.logger.warning("json_llm_fallback_failed", error=str(e))
            return None

        content = response.content.strip()
        if not content:
            self.logger.warning("json_llm_fallback_empty")
            return None

        try:
            return json.loads(content)
        except json.JSONDecodeError:
            self.logger.error("json_llm_fallback_malformed", raw=content[:200])
            raise MalformedLlmJsonError(content)


async def extract_json(text: str | None, model_router: ModelRouter) -> Any | None:
    """Convenience wrapper around JsonExtractor.extract."""
    return await JsonExtractor(model_router).extract(text)
