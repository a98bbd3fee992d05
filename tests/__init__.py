#!/usr/bin/env python3
"""
Test suite configuration and utilities.

All tests run without network access: the LLM is scripted
(tests/mocks/llm_mocks.py) and the usage quota counts in-process.

    # Run all tests
    python -m pytest tests/ -v

    # Using unittest
    python -m unittest discover tests -v
"""

from typing import Optional

from core.app_context import AppContext
from core.config_loader import AppConfig
from core.dataset import FirmDataset
from core.quota import InMemoryUsageStore, UsageQuota
from core.scorer import RankingEngine


def make_app_context(
    llm,
    dataset: Optional[FirmDataset] = None,
    config: Optional[AppConfig] = None,
    quota_limit: int = 20
) -> AppContext:
    """Wire an AppContext around a mock LLM without touching disk or Redis."""
    from tests.fixtures.firm_fixtures import sample_dataset

    config = config or AppConfig()
    return AppContext(
        config=config,
        dataset=dataset if dataset is not None else sample_dataset(),
        engine=RankingEngine(config.scoring),
        llm=llm,
        quota=UsageQuota(InMemoryUsageStore(), limit=quota_limit, enabled=True),
    )
