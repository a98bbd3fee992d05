#!/usr/bin/env python3
"""
Catalog service - read-only views of the loaded dataset and usage log.
"""

import hmac
import logging
from typing import Any, Dict, List

from core.app_context import AppContext
from core.dataset.models import Firm
from ..exceptions import FirmNotFoundException, UnauthorizedException

logger = logging.getLogger(__name__)


def firm_summary(firm: Firm) -> Dict[str, Any]:
    return {
        "id": firm.firm_id,
        "name": firm.name,
        "website": firm.website,
        "covered_official_count": len(firm.covered_lobbyists),
        "total_clients": firm.client_count,
        "top_issues": list(firm.top_issues[:5]),
    }


def firm_detail(firm: Firm) -> Dict[str, Any]:
    """Full firm record in wire (camelCase) form."""
    billing = None
    if firm.billing is not None:
        billing = {
            "minMonthly": firm.billing.min_monthly,
            "maxMonthly": firm.billing.max_monthly,
            "averagePerFiling": firm.billing.average_per_filing,
        }
    return {
        "id": firm.firm_id,
        "name": firm.name,
        "website": firm.website,
        "issueHistory": [{"code": i.code, "count": i.count} for i in firm.issues],
        "topIssues": list(firm.top_issues),
        "lobbyists": [
            {
                "name": lobbyist.name,
                "coveredPositions": list(lobbyist.covered_positions),
                "clientExperience": list(lobbyist.client_experience),
            }
            for lobbyist in firm.lobbyists
        ],
        "clients": [{"name": c.name, "description": c.description} for c in firm.clients],
        "committees": [
            {"committee": t.committee, "chamber": t.chamber, "signalStrength": t.signal_strength}
            for t in firm.committees
        ],
        "billing": billing,
        "totalClients": firm.client_count,
        "teamSize": firm.team_size,
        "coveredOfficialCount": len(firm.covered_lobbyists),
        "firmIntro": firm.firm_intro,
        "voiceProfile": dict(firm.voice_profile) if firm.voice_profile else None,
    }


class CatalogService:
    """Service for firm, issue and scenario listings."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    def list_firms(self) -> List[Dict[str, Any]]:
        return [firm_summary(f) for f in self.ctx.dataset.firms]

    def get_firm(self, firm_id: str) -> Dict[str, Any]:
        """
        Raises:
            FirmNotFoundException: If no firm has this id or name.
        """
        firm = self.ctx.dataset.find_firm(firm_id)
        if firm is None:
            raise FirmNotFoundException(f"Firm {firm_id} not found")
        return firm_detail(firm)

    def issues(self) -> Dict[str, str]:
        return dict(self.ctx.dataset.issue_labels)

    def scenarios(self) -> List[Dict[str, Any]]:
        return [dict(s) for s in self.ctx.dataset.scenarios]

    def usage(self, key: str, limit: int = 100) -> Dict[str, Any]:
        """
        Quota usage and the recent usage log.

        Raises:
            UnauthorizedException: If the key is wrong or no key is configured.
        """
        expected = self.ctx.config.quota.usage_log_key
        if not expected or not hmac.compare_digest(key or "", expected):
            raise UnauthorizedException("Invalid usage log key")

        quota = self.ctx.quota
        logs = quota.store.recent_usage(limit)
        return {
            "used": quota.used,
            "limit": quota.limit,
            "remaining": quota.remaining(),
            "count": len(logs),
            "logs": logs,
        }
