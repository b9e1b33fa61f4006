"""
GovDash — Risk Scoring Engine

Risk score:
    score = probability × impact / 100        (both inputs 0-100, output 0-100)

Derived bucket (display only, fixed thresholds):
    score ≥ 64 → critical
    score ≥ 36 → high
    score ≥ 16 → medium
    score ≥ 4  → low
    otherwise  → none

The bucket is independent of a risk's stored severity. Both are reported
side by side and never reconciled.

Portfolio heat map level (from stored severities):
    any critical                         → critical
    more than 2 high                     → high
    any high, or more than 3 medium      → medium
    otherwise                            → low
"""

from collections import defaultdict

import numpy as np

from .common import field, round_half_up, tally

SEVERITIES = ("low", "medium", "high", "critical")
RISK_STATUSES = ("identified", "monitored", "mitigated", "resolved")
HIGH_PRIORITY_SEVERITIES = ("high", "critical")

# (threshold, bucket), checked top-down
RISK_SCORE_THRESHOLDS = (
    (64, "critical"),
    (36, "high"),
    (16, "medium"),
    (4, "low"),
)


def calculate_risk_score(probability: float, impact: float) -> float:
    return probability * impact / 100


def risk_level_from_score(score: float) -> str:
    for threshold, level in RISK_SCORE_THRESHOLDS:
        if score >= threshold:
            return level
    return "none"


def risk_level_from_probability_and_impact(probability: float, impact: float) -> str:
    return risk_level_from_score(calculate_risk_score(probability, impact))


def is_high_priority(risk) -> bool:
    return field(risk, "severity") in HIGH_PRIORITY_SEVERITIES


def project_risk_statistics(risks) -> dict:
    """Tallies and mean score for the risks of one project."""
    risks = list(risks)
    total_score = sum(
        calculate_risk_score(field(r, "probability"), field(r, "impact")) for r in risks
    )
    average = total_score / len(risks) if risks else 0
    return {
        "total_risks": len(risks),
        "average_risk_score": round_half_up(average, 2),
        "severity_counts": tally(risks, "severity", SEVERITIES),
        "status_counts": tally(risks, "status", RISK_STATUSES),
        "high_priority_risks": sum(1 for r in risks if is_high_priority(r)),
    }


def overall_risk_level(severity_counts: dict[str, int]) -> str:
    if severity_counts.get("critical", 0) > 0:
        return "critical"
    if severity_counts.get("high", 0) > 2:
        return "high"
    if severity_counts.get("high", 0) > 0 or severity_counts.get("medium", 0) > 3:
        return "medium"
    return "low"


def portfolio_risk_heatmap(portfolios, projects, risks) -> list[dict]:
    """
    One row per portfolio with its project count, risk count, per-severity
    counts and overall level. Projects without a portfolio are ignored.
    """
    projects_by_portfolio = defaultdict(list)
    for project in projects:
        portfolio_id = field(project, "portfolio_id")
        if portfolio_id is not None:
            projects_by_portfolio[portfolio_id].append(field(project, "id"))

    risks_by_project = defaultdict(list)
    for risk in risks:
        risks_by_project[field(risk, "project_id")].append(risk)

    rows = []
    for portfolio in portfolios:
        project_ids = projects_by_portfolio.get(field(portfolio, "id"), [])
        portfolio_risks = [r for pid in project_ids for r in risks_by_project.get(pid, [])]
        counts = tally(portfolio_risks, "severity", SEVERITIES)
        rows.append({
            "portfolio_id": field(portfolio, "id"),
            "portfolio_name": field(portfolio, "name"),
            "project_count": len(project_ids),
            "risk_count": len(portfolio_risks),
            "critical_risks": counts["critical"],
            "high_risks": counts["high"],
            "medium_risks": counts["medium"],
            "low_risks": counts["low"],
            "overall_risk_level": overall_risk_level(counts),
        })
    return rows


def probability_impact_matrix(risks, bins: int = 5) -> dict:
    """
    Count risks on a bins × bins probability/impact grid over [0, 100].

    Returns:
        dict with "counts" (rows = probability band, cols = impact band)
        and the band edges for both axes
    """
    risks = list(risks)
    edges = np.linspace(0, 100, bins + 1)
    if not risks:
        counts = np.zeros((bins, bins), dtype=int)
    else:
        probability = np.array([field(r, "probability") for r in risks], dtype=float)
        impact = np.array([field(r, "impact") for r in risks], dtype=float)
        hist, _, _ = np.histogram2d(probability, impact, bins=[edges, edges])
        counts = hist.astype(int)
    return {
        "counts": counts.tolist(),
        "probability_edges": edges.tolist(),
        "impact_edges": edges.tolist(),
    }
