"""API route handlers."""

from .match import router as match_router
from .memo import router as memo_router
from .catalog import router as catalog_router
from .compliance import router as compliance_router
