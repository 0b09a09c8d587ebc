"""
Test fixtures for registry search.

Usage:
    from tests.fixtures import FakeBrowserEnvironment, make_record_message
"""
from tests.fixtures.registry import (
    NO_RESULT_MESSAGE,
    FakeBrowserEnvironment,
    make_record_data,
    make_record_message,
    model_response,
)

__all__ = [
    "NO_RESULT_MESSAGE",
    "FakeBrowserEnvironment",
    "make_record_data",
    "make_record_message",
    "model_response",
]
