"""Business logic services."""

from .match_service import MatchService
from .memo_service import GenerationSessionManager, MemoService
from .compliance_service import ComplianceService
from .catalog_service import CatalogService
