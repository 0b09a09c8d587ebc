"""
Utility modules for the registry agent.
"""
from registry_agent.utils.json_parsing import (
    JsonExtractor,
    extract_json,
    match_json_object,
    safe_get_field,
)
from registry_agent.utils.logging import get_logger

__all__ = [
    "JsonExtractor",
    "extract_json",
    "match_json_object",
    "safe_get_field",
    "get_logger",
]
