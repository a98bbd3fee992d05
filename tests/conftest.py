"""
Pytest configuration and fixtures.

This file provides pytest-specific fixtures.
For standard test utilities, see tests/__init__.py
"""

import pytest

from tests.fixtures.firm_fixtures import sample_dataset
from tests.mocks.llm_mocks import MockLLMProvider


@pytest.fixture
def dataset():
    return sample_dataset()


@pytest.fixture
def mock_llm():
    return MockLLMProvider()
