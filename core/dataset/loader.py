#!/usr/bin/env python3
"""
Dataset Loader - Reads the static JSON files once and normalizes them.

This is the only place that knows about the inconsistent shapes found in
the source data. Every branch on "is this a string or an object" lives here.
"""

import json
import logging
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Tuple

from core.config_loader import DataConfig
from core.dataset.models import (
    BillingProfile,
    ClientEngagement,
    Committee,
    CommitteeTie,
    Firm,
    FirmDataset,
    IssueActivity,
    Lobbyist,
)

logger = logging.getLogger(__name__)

# Placeholder values the source data uses for "no covered position"
_EMPTY_POSITIONS = {"", "(none)", "none listed", "none"}


class DatasetLoadError(Exception):
    """Raised when a required dataset file cannot be read or parsed."""
    pass


def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise DatasetLoadError(f"Dataset file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DatasetLoadError(f"Invalid JSON in {path}: {e}") from e


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_meaningful_position(text: Any) -> bool:
    return isinstance(text, str) and text.strip().lower() not in _EMPTY_POSITIONS


def _normalize_issue(item: Any) -> Optional[IssueActivity]:
    if isinstance(item, str):
        return IssueActivity(code=item, count=0)
    if isinstance(item, dict) and item.get("code"):
        return IssueActivity(code=str(item["code"]), count=_as_int(item.get("count")))
    return None


def _normalize_issue_code(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and item.get("code"):
        return str(item["code"])
    return None


def _normalize_lobbyist(item: Any) -> Optional[Lobbyist]:
    if isinstance(item, str):
        return Lobbyist(name=item)
    if not isinstance(item, dict) or not item.get("name"):
        return None

    positions: List[str] = []
    for pos in item.get("coveredPositions") or []:
        raw = pos.get("raw") if isinstance(pos, dict) else pos
        if _is_meaningful_position(raw):
            positions.append(raw.strip())
    single = item.get("coveredPosition")
    if not positions and _is_meaningful_position(single):
        positions.append(single.strip())

    # hasCoveredPosition without any description still counts as covered
    if not positions and item.get("hasCoveredPosition") is True:
        positions.append("Former government official")

    experience = []
    for exp in item.get("clientExperience") or []:
        name = exp.get("client") if isinstance(exp, dict) else exp
        if name:
            experience.append(str(name))

    return Lobbyist(
        name=str(item["name"]),
        covered_positions=tuple(positions),
        client_experience=tuple(experience),
    )


def _normalize_client(item: Any) -> Optional[ClientEngagement]:
    if isinstance(item, str):
        return ClientEngagement(name=item)
    if isinstance(item, dict) and item.get("name"):
        description = item.get("description") or None
        return ClientEngagement(name=str(item["name"]), description=description)
    return None


def _normalize_committee_tie(item: Any) -> Optional[CommitteeTie]:
    if isinstance(item, str):
        return CommitteeTie(committee=item)
    if isinstance(item, dict) and item.get("committee"):
        strength = _as_float(item.get("signalStrength")) or 0.0
        return CommitteeTie(
            committee=str(item["committee"]),
            chamber=item.get("chamber"),
            signal_strength=max(0.0, strength),
        )
    return None


def _normalize_billing(record: Dict[str, Any]) -> Optional[BillingProfile]:
    enrichment = record.get("enrichment") or {}
    billing = enrichment.get("billing") or record.get("billing") or {}
    billing_range = record.get("billingRange")
    if not isinstance(billing, dict):
        billing = {}
    if not isinstance(billing_range, dict):
        billing_range = {}

    profile = BillingProfile(
        min_monthly=_as_float(billing_range.get("minMonthly")),
        max_monthly=_as_float(billing_range.get("maxMonthly")),
        average_per_filing=_as_float(
            billing.get("averagePerFiling") or billing_range.get("avgQuarterly")
        ),
    )
    if profile.min_monthly is None and profile.max_monthly is None and not profile.average_per_filing:
        return None
    return profile


def _collect(items: Any, normalizer) -> Tuple:
    if not isinstance(items, list):
        return ()
    result = []
    for item in items:
        normalized = normalizer(item)
        if normalized is not None:
            result.append(normalized)
    return tuple(result)


def normalize_firm(record: Dict[str, Any], index: int = 0) -> Firm:
    """Fold one raw firm record into a Firm."""
    enrichment = record.get("enrichment") or {}

    issues = _collect(enrichment.get("issues") or record.get("issueAreas"), _normalize_issue)
    top_issues = _collect(enrichment.get("topIssues") or record.get("topIssues"), _normalize_issue_code)
    lobbyists = _collect(record.get("lobbyists") or record.get("verifiedLobbyists"), _normalize_lobbyist)
    clients = _collect(enrichment.get("clients") or record.get("recentClients"), _normalize_client)

    relationships = record.get("committeeRelationships") or {}
    committees = _collect(
        relationships.get("topCommittees") or relationships.get("committees"),
        _normalize_committee_tie,
    )

    declared_covered = record.get("coveredOfficialCount")
    client_count = _as_int(enrichment.get("clientCount") or record.get("totalClients"), default=0)
    team_size = _as_int(record.get("lobbyistCount"), default=0)

    return Firm(
        firm_id=str(record.get("registrantId") or record.get("id") or index),
        name=str(record.get("name") or f"Firm {index}"),
        website=record.get("website") or None,
        issues=issues,
        top_issues=top_issues,
        lobbyists=lobbyists,
        clients=clients,
        committees=committees,
        billing=_normalize_billing(record),
        client_count=client_count or len(clients),
        team_size=team_size or len(lobbyists),
        covered_official_count=_as_int(declared_covered) if declared_covered else None,
        firm_intro=record.get("firmIntro") or None,
        voice_profile=MappingProxyType(record["voiceProfile"]) if isinstance(record.get("voiceProfile"), dict) else None,
    )


def _firm_records(raw: Any) -> List[Dict[str, Any]]:
    # Snapshots are either a bare list or wrapped under "results" / "firms"
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        for key in ("results", "firms"):
            if isinstance(raw.get(key), list):
                return raw[key]
    raise DatasetLoadError("Firm dataset must be a list or contain a 'results'/'firms' list")


def normalize_issue_committee_map(raw: Any) -> Dict[str, Tuple[Committee, ...]]:
    mappings = raw.get("mappings", raw) if isinstance(raw, dict) else {}
    result: Dict[str, Tuple[Committee, ...]] = {}
    for code, mapping in mappings.items():
        committees = mapping.get("committees", []) if isinstance(mapping, dict) else []
        result[code] = tuple(
            Committee(name=str(c["committee"]), chamber=str(c.get("chamber") or ""))
            for c in committees
            if isinstance(c, dict) and c.get("committee")
        )
    return result


def normalize_issue_labels(raw: Any) -> Dict[str, str]:
    if isinstance(raw, dict):
        raw = raw.get("issues", raw)
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    if isinstance(raw, list):
        return {
            str(item["code"]): str(item.get("label") or item["code"])
            for item in raw
            if isinstance(item, dict) and item.get("code")
        }
    return {}


def build_dataset(
    firm_records: List[Dict[str, Any]],
    issue_committee_map: Any = None,
    issue_codes: Any = None,
    scenarios: Any = None,
) -> FirmDataset:
    """Build a FirmDataset from already-parsed JSON structures."""
    firms = tuple(normalize_firm(record, idx) for idx, record in enumerate(firm_records))
    if isinstance(scenarios, dict):
        scenarios = scenarios.get("scenarios", list(scenarios.values()))
    return FirmDataset(
        firms=firms,
        issue_committees=MappingProxyType(normalize_issue_committee_map(issue_committee_map or {})),
        issue_labels=MappingProxyType(normalize_issue_labels(issue_codes or {})),
        scenarios=tuple(MappingProxyType(s) for s in (scenarios or []) if isinstance(s, dict)),
    )


def _read_optional(path: str) -> Any:
    try:
        return _read_json(path)
    except DatasetLoadError as e:
        logger.warning(f"Optional dataset file not loaded: {e}")
        return None


def load_dataset(config: DataConfig) -> FirmDataset:
    """
    Load the firm dataset and its lookup tables from disk.

    The firm file is required; the committee map, issue codes and scenarios
    are optional and default to empty.
    """
    firms_path = config.resolve(config.firms_file)
    records = _firm_records(_read_json(firms_path))

    dataset = build_dataset(
        records,
        issue_committee_map=_read_optional(config.resolve(config.issue_committee_map_file)),
        issue_codes=_read_optional(config.resolve(config.issue_codes_file)),
        scenarios=_read_optional(config.resolve(config.scenarios_file)),
    )
    logger.info(
        f"Loaded {len(dataset.firms)} firms from {firms_path} "
        f"({len(dataset.issue_committees)} issue-committee mappings)"
    )
    return dataset
