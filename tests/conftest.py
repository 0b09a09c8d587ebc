"""
Shared pytest fixtures for all tests.
Provides a scripted browser environment, a mocked model router and common
registry test data.
"""
import pytest
from unittest.mock import AsyncMock

from registry_agent.core.model_router import ModelRouter
from registry_agent.models.domain import Company
from tests.fixtures import FakeBrowserEnvironment, make_record_data


@pytest.fixture
def fake_environment():
    """Provide a fresh scripted browser environment."""
    return FakeBrowserEnvironment()


@pytest.fixture
def mock_model_router():
    """Provide mocked model router for oracle calls."""
    router = AsyncMock(spec=ModelRouter)
    return router


@pytest.fixture
def sample_company():
    """Provide the target business used across search tests."""
    return Company(
        name="Tech9",
        address="2975 Executive Pkwy Ste. 330, Lehi, UT 84043",
        website="http://tech9.com/",
        category="Software company"
    )


@pytest.fixture
def sample_record_data():
    """Provide a registry record with a single individual principal."""
    return make_record_data()


# Pytest markers for test categorization
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (slow, real connections)"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, mocked)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running tests"
    )
