#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.

The AppContext (dataset, engine, LLM, quota) is built once per process and
shared by every request. Tests replace it through
``app.dependency_overrides[get_app_context]``.
"""

from functools import lru_cache

from fastapi import Depends

from core.app_context import AppContext
from .config import get_config
from .services.compliance_service import ComplianceService
from .services.match_service import MatchService
from .services.memo_service import GenerationSessionManager, MemoService, get_session_manager


@lru_cache()
def _build_app_context() -> AppContext:
    return AppContext.build(get_config())


def get_app_context() -> AppContext:
    """
    FastAPI dependency returning the process-wide AppContext.

    Usage:
        @router.post("/endpoint")
        def my_endpoint(ctx: AppContext = Depends(get_app_context)):
            ...
    """
    return _build_app_context()


def get_match_service(ctx: AppContext = Depends(get_app_context)) -> MatchService:
    return MatchService(ctx)


def get_memo_service(
    ctx: AppContext = Depends(get_app_context),
    sessions: GenerationSessionManager = Depends(get_session_manager)
) -> MemoService:
    return MemoService(ctx, sessions)


def get_compliance_service(ctx: AppContext = Depends(get_app_context)) -> ComplianceService:
    return ComplianceService(ctx)
