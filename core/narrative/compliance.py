#!/usr/bin/env python3
"""
Compliance Gap Analysis - requirement lists, prompt and result normalization.
"""

from typing import Any, Dict, List, Optional, Tuple

FINDING_CATEGORIES = ("met", "gap", "critical")

REQUIREMENTS: Dict[str, Tuple[str, ...]] = {
    "BSA/AML": (
        "Customer Identification Program (CIP) - 31 CFR 1020.220",
        "Customer Due Diligence (CDD) - 31 CFR 1010.230",
        "Suspicious Activity Reporting (SAR) - 31 CFR 1020.320",
        "Currency Transaction Reporting (CTR) - 31 CFR 1010.311",
        "Transaction Monitoring Systems",
        "Risk-Based Approach to customer relationships",
        "Politically Exposed Persons (PEP) screening",
        "Enhanced Due Diligence for high-risk customers",
        "Training Requirements - annual AML training",
        "Independent Testing - annual audit requirement",
    ),
    "FCPA": (
        "Written anti-corruption policy",
        "Prohibitions on bribes to foreign officials",
        "Third-party due diligence procedures",
        "Gifts and entertainment limits and tracking",
        "Books and records accuracy requirements",
        "Internal controls for payments",
        "Training requirements for employees",
        "Reporting and whistleblower mechanisms",
        "Disciplinary procedures for violations",
        "Periodic risk assessments",
    ),
}


def supported_frameworks() -> List[str]:
    return list(REQUIREMENTS)


def build_compliance_prompt(policy_text: str, framework: str) -> str:
    requirements = "\n".join(
        f"{idx}. {req}" for idx, req in enumerate(REQUIREMENTS[framework], start=1)
    )
    return f"""You are analyzing a {framework} policy document.

REGULATORY REQUIREMENTS:
{requirements}

POLICY DOCUMENT:
{policy_text}

TASK:
Perform a gap analysis. For each requirement decide whether it is adequately
addressed ("met"), addressed with gaps or weaknesses ("gap"), or missing in a way
that poses compliance risk ("critical").

For each finding provide:
- category: "met", "gap" or "critical"
- requirement: which requirement this addresses
- finding: what you found
- citation: the relevant regulatory citation
- recommendation: a specific fix (gaps and critical only)
- evidence: a brief quote from the policy (met only)

Return ONLY valid JSON in this exact format:
{{
  "summary": {{"met": 0, "gaps": 0, "critical": 0}},
  "findings": [
    {{"category": "met|gap|critical", "requirement": "", "finding": "", "citation": "",
      "recommendation": "", "evidence": ""}}
  ]
}}"""


def summarize_findings(findings: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {"met": 0, "gaps": 0, "critical": 0}
    for finding in findings:
        category = finding.get("category")
        if category == "met":
            counts["met"] += 1
        elif category == "gap":
            counts["gaps"] += 1
        elif category == "critical":
            counts["critical"] += 1
    return counts


def normalize_gap_analysis(parsed: Optional[Any], raw_text: str) -> Dict[str, Any]:
    """
    Keep well-formed findings and recompute the summary from them.

    Counts the model reports are ignored. Unparseable output is returned as
    ``{"raw": text}``.
    """
    if not isinstance(parsed, dict):
        return {"raw": raw_text}

    findings = []
    for item in parsed.get("findings") or []:
        if not isinstance(item, dict):
            continue
        category = str(item.get("category") or "").strip().lower()
        if category not in FINDING_CATEGORIES:
            continue
        findings.append({**item, "category": category})

    return {"summary": summarize_findings(findings), "findings": findings}
