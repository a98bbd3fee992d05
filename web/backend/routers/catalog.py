#!/usr/bin/env python3
"""
Catalog endpoints - firms, issue codes, example scenarios and usage.
"""

from fastapi import APIRouter, Depends, Query

from core.app_context import AppContext
from ..dependencies import get_app_context
from ..models.responses import (
    FirmListResponse,
    IssuesResponse,
    ScenariosResponse,
    UsageResponse,
)
from ..services.catalog_service import CatalogService

router = APIRouter(prefix="/api", tags=["catalog"])


def get_catalog_service(ctx: AppContext = Depends(get_app_context)) -> CatalogService:
    return CatalogService(ctx)


@router.get("/firms", response_model=FirmListResponse, response_model_by_alias=True)
def list_firms(service: CatalogService = Depends(get_catalog_service)):
    """All firms in dataset order."""
    return FirmListResponse(firms=service.list_firms())


@router.get("/firms/{firm_id}")
def get_firm(firm_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Full record for one firm, looked up by id or exact name."""
    return {"success": True, "firm": service.get_firm(firm_id)}


@router.get("/issues", response_model=IssuesResponse)
def list_issues(service: CatalogService = Depends(get_catalog_service)):
    """LDA issue codes and their labels."""
    return IssuesResponse(issues=service.issues())


@router.get("/scenarios", response_model=ScenariosResponse)
def list_scenarios(service: CatalogService = Depends(get_catalog_service)):
    return ScenariosResponse(scenarios=service.scenarios())


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    key: str = Query(default="", description="Usage log access key"),
    limit: int = Query(default=100, ge=1, le=1000),
    service: CatalogService = Depends(get_catalog_service)
):
    """Memo quota usage and the recent usage log. Requires the configured key."""
    return UsageResponse(**service.usage(key, limit))
