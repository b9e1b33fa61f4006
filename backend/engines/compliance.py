"""
GovDash — Compliance Aggregation Engine

Summaries over ComplianceEvaluation records (overall_score 0-100, evaluated_at).

Level (on the mean score):
    ≥ 90 excellent · ≥ 75 good · ≥ 60 fair · else poor

Trend (earliest vs latest by evaluated_at):
    latest > earliest + 5  → improving
    latest < earliest − 5  → declining
    otherwise, or fewer than 2 evaluations → stable

Dashboard rollups score each project by its latest evaluation:
    ≥ 80 Compliant · ≥ 60 Partial · else Non-Compliant

Risk index (analytics only, unrelated to probability × impact scoring):
    weights low 1 · medium 3 · high 6 · critical 10
    index = min(100, Σ weight / (n × 10) × 100)
    ≥ 80 critical · ≥ 60 high · ≥ 40 medium · else low
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from .common import field, round_half_up

COMPLIANT_THRESHOLD = 80
NON_COMPLIANT_THRESHOLD = 60
TREND_DELTA = 5
REPORT_TYPES = ("executive_summary", "detailed_breakdown", "audit_ready")


# ---------------------------------------------------------------------------
# PER-SCOPE SUMMARY
# ---------------------------------------------------------------------------

def compliance_level(score: float) -> str:
    if score >= 90:
        return "excellent"
    if score >= 75:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"


def compliance_status(score: float) -> str:
    if score >= COMPLIANT_THRESHOLD:
        return "Compliant"
    if score >= NON_COMPLIANT_THRESHOLD:
        return "Partial"
    return "Non-Compliant"


def improvement_trend(evaluations) -> str:
    evaluations = sorted(evaluations, key=lambda e: field(e, "evaluated_at"))
    if len(evaluations) < 2:
        return "stable"
    first = field(evaluations[0], "overall_score")
    last = field(evaluations[-1], "overall_score")
    if last > first + TREND_DELTA:
        return "improving"
    if last < first - TREND_DELTA:
        return "declining"
    return "stable"


def latest_evaluation(evaluations):
    """Most recent evaluation by evaluated_at, or None. Earlier rows win ties."""
    latest = None
    for evaluation in evaluations:
        if latest is None or field(evaluation, "evaluated_at") > field(latest, "evaluated_at"):
            latest = evaluation
    return latest


def compliance_summary(evaluations) -> dict:
    """
    Mean, level, trend and extremes for one scope (project, standard, portfolio).

    With no evaluations the level is "unknown", the trend "stable" and all
    scores 0.
    """
    evaluations = list(evaluations)
    if not evaluations:
        return {
            "total_evaluations": 0,
            "average_score": 0,
            "best_score": 0,
            "worst_score": 0,
            "compliance_level": "unknown",
            "trend": "stable",
            "latest_evaluation": None,
        }

    scores = [field(e, "overall_score") for e in evaluations]
    average = sum(scores) / len(scores)
    return {
        "total_evaluations": len(evaluations),
        "average_score": round_half_up(average, 1),
        "best_score": round_half_up(max(scores), 1),
        "worst_score": round_half_up(min(scores), 1),
        "compliance_level": compliance_level(average),
        "trend": improvement_trend(evaluations),
        "latest_evaluation": latest_evaluation(evaluations),
    }


# ---------------------------------------------------------------------------
# DASHBOARD ROLLUPS
# ---------------------------------------------------------------------------

def _latest_by_project(evaluations) -> dict:
    grouped = defaultdict(list)
    for evaluation in evaluations:
        grouped[field(evaluation, "project_id")].append(evaluation)
    return {pid: latest_evaluation(evs) for pid, evs in grouped.items()}


def _mean_rounded(scores: list[float]) -> int:
    return int(round_half_up(sum(scores) / len(scores), 0)) if scores else 0


def compliance_statistics(projects, evaluations, standards) -> dict:
    """Headline numbers for the compliance dashboard."""
    projects = list(projects)
    standards = list(standards)
    latest = _latest_by_project(evaluations)

    scores = []
    compliant = non_compliant = 0
    for project in projects:
        evaluation = latest.get(field(project, "id"))
        if evaluation is None:
            continue
        score = field(evaluation, "overall_score")
        scores.append(score)
        if score >= COMPLIANT_THRESHOLD:
            compliant += 1
        elif score < NON_COMPLIANT_THRESHOLD:
            non_compliant += 1

    overall = _mean_rounded(scores)
    active = sum(1 for s in standards if field(s, "is_active"))
    coverage = int(round_half_up(active / len(standards) * 100, 0)) if standards else 0

    if overall > 70:
        trend, trend_value = "improving", 5
    elif overall > 50:
        trend, trend_value = "stable", 0
    else:
        trend, trend_value = "declining", -5

    return {
        "overall_compliance": overall,
        "compliant_projects": compliant,
        "non_compliant_projects": non_compliant,
        "evaluated_projects": len(scores),
        "total_projects": len(projects),
        "standards_coverage": coverage,
        "trend": trend,
        "trend_value": trend_value,
    }


def portfolio_compliance(portfolios, projects, evaluations) -> list[dict]:
    """Per-portfolio mean of its projects' latest scores, with project detail."""
    projects = list(projects)
    latest = _latest_by_project(evaluations)

    rows = []
    for portfolio in portfolios:
        members = [p for p in projects if field(p, "portfolio_id") == field(portfolio, "id")]
        details = []
        for project in members:
            evaluation = latest.get(field(project, "id"))
            if evaluation is None:
                continue
            score = field(evaluation, "overall_score")
            details.append({
                "project_id": field(project, "id"),
                "name": field(project, "name"),
                "compliance_score": score,
                "last_evaluation": field(evaluation, "evaluated_at"),
                "status": compliance_status(score),
            })
        rows.append({
            "portfolio_id": field(portfolio, "id"),
            "portfolio_name": field(portfolio, "name"),
            "compliance_score": _mean_rounded([d["compliance_score"] for d in details]),
            "total_projects": len(members),
            "evaluated_projects": len(details),
            "projects": details,
        })
    return rows


def standards_adherence(standards, evaluations) -> list[dict]:
    """
    Mean score per active standard. Standards without evaluations report a
    compliance_rate of None.
    """
    by_standard = defaultdict(list)
    for evaluation in evaluations:
        by_standard[field(evaluation, "standard_id")].append(field(evaluation, "overall_score"))

    rows = []
    for standard in standards:
        if not field(standard, "is_active"):
            continue
        scores = by_standard.get(field(standard, "id"), [])
        rows.append({
            "standard_id": field(standard, "id"),
            "standard_name": field(standard, "name"),
            "category": field(standard, "category"),
            "compliance_rate": _mean_rounded(scores) if scores else None,
            "total_evaluations": len(scores),
        })
    return rows


def non_compliance_heatmap(standards, evaluations) -> list[dict]:
    """Share of sub-60 evaluations per active standard; intensity = min(2 × rate, 1)."""
    by_standard = defaultdict(list)
    for evaluation in evaluations:
        by_standard[field(evaluation, "standard_id")].append(field(evaluation, "overall_score"))

    rows = []
    for standard in standards:
        if not field(standard, "is_active"):
            continue
        scores = by_standard.get(field(standard, "id"), [])
        failing = sum(1 for s in scores if s < NON_COMPLIANT_THRESHOLD)
        rate = failing / len(scores) if scores else 0.0
        rows.append({
            "standard_id": field(standard, "id"),
            "standard_name": field(standard, "name"),
            "evaluated": len(scores),
            "non_compliant_projects": failing,
            "non_compliant_rate": rate,
            "intensity": min(rate * 2, 1.0),
        })
    return rows


def compliance_trends(evaluations, days: int = 30, now: Optional[datetime] = None) -> list[dict]:
    """Daily mean score over the last `days` days, oldest first."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=days)

    daily = defaultdict(list)
    for evaluation in evaluations:
        evaluated_at = field(evaluation, "evaluated_at")
        if evaluated_at >= cutoff:
            daily[evaluated_at.date()].append(field(evaluation, "overall_score"))

    return [
        {"date": day.isoformat(), "compliance_score": _mean_rounded(scores)}
        for day, scores in sorted(daily.items())
    ]


# ---------------------------------------------------------------------------
# RISK / COMPLIANCE ANALYTICS
# ---------------------------------------------------------------------------

# Severity weights for the project risk index; a project whose risks are all
# critical scores 100.
RISK_SEVERITY_WEIGHTS = {"low": 1, "medium": 3, "high": 6, "critical": 10}

COMPLIANCE_BENCHMARKS = {"excellent": 85, "good": 70}
EFFICIENCY_BENCHMARKS = {"excellent": 85, "good": 70}
RISK_BENCHMARKS = {"low": 30, "medium": 50}
BENCHMARK_POINTS = {"excellent": 3, "good": 2, "needs_improvement": 1, "low": 3, "medium": 2, "high": 1}


def project_risk_index(risks) -> int:
    """Severity-weighted 0-100 index of a project's risks; 0 with no risks."""
    risks = list(risks)
    if not risks:
        return 0
    total = sum(RISK_SEVERITY_WEIGHTS.get(field(r, "severity"), 0) for r in risks)
    return min(100, int(round_half_up(total / (len(risks) * 10) * 100, 0)))


def risk_index_level(index: float) -> str:
    if index >= 80:
        return "critical"
    if index >= 60:
        return "high"
    if index >= 40:
        return "medium"
    return "low"


def correlation(x, y) -> float:
    """
    Pearson coefficient rounded to 2 decimals.

    0 when the series differ in length, have fewer than 2 points, or either
    series is constant.
    """
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denominator = np.sqrt((dx ** 2).sum() * (dy ** 2).sum())
    if denominator == 0:
        return 0.0
    return round_half_up(float((dx * dy).sum() / denominator), 2)


def volatility(scores) -> float:
    """Population standard deviation to 1 decimal; 0 below two scores."""
    scores = list(scores)
    if len(scores) < 2:
        return 0.0
    return round_half_up(float(np.std(np.asarray(scores, dtype=float))), 1)


def _risk_compliance_insights(metrics: dict, rows: list[dict]) -> list[str]:
    insights = []
    if metrics["risk_score_correlation"] < -0.3:
        insights.append(
            "Strong negative correlation between risk and compliance: "
            "higher risk projects score noticeably lower"
        )
    elif metrics["risk_score_correlation"] > 0.3:
        insights.append(
            "Positive correlation between risk and compliance: "
            "higher risk projects score better, investigate further"
        )
    if metrics["high_risk_correlation"] < -0.5:
        insights.append("High-risk projects show significantly lower compliance")

    flagged = sum(
        1 for r in rows
        if r["risk_severity"] in ("high", "critical") and r["compliance_score"] < NON_COMPLIANT_THRESHOLD
    )
    if flagged:
        insights.append(
            f"{flagged} projects combine high risk with low compliance; prioritise them for intervention"
        )
    return insights


def risk_compliance_correlation(projects, risks, evaluations) -> dict:
    """
    Relate each project's latest compliance score to its risk profile.

    Only projects with at least one evaluation and at least one risk are
    included. Correlations are computed across those projects.
    """
    risks_by_project = defaultdict(list)
    for risk in risks:
        risks_by_project[field(risk, "project_id")].append(risk)
    latest = _latest_by_project(evaluations)

    rows = []
    for project in projects:
        project_id = field(project, "id")
        project_risks = risks_by_project.get(project_id, [])
        evaluation = latest.get(project_id)
        if evaluation is None or not project_risks:
            continue
        index = project_risk_index(project_risks)
        rows.append({
            "project_id": project_id,
            "project_name": field(project, "name"),
            "compliance_score": field(evaluation, "overall_score"),
            "risk_score": index,
            "risk_count": len(project_risks),
            "high_risk_count": sum(
                1 for r in project_risks if field(r, "severity") in ("high", "critical")
            ),
            "risk_severity": risk_index_level(index),
        })

    compliance_scores = [r["compliance_score"] for r in rows]
    metrics = {
        "risk_score_correlation": correlation(compliance_scores, [r["risk_score"] for r in rows]),
        "risk_count_correlation": correlation(compliance_scores, [r["risk_count"] for r in rows]),
        "high_risk_correlation": correlation(
            compliance_scores, [r["high_risk_count"] for r in rows]
        ),
        "total_data_points": len(rows),
    }
    return {
        "correlation_data": rows,
        "correlation_metrics": metrics,
        "insights": _risk_compliance_insights(metrics, rows),
    }


def _band(value: float, thresholds: dict) -> str:
    if value >= thresholds["excellent"]:
        return "excellent"
    if value >= thresholds["good"]:
        return "good"
    return "needs_improvement"


def _risk_band(value: float) -> str:
    if value <= RISK_BENCHMARKS["low"]:
        return "low"
    if value <= RISK_BENCHMARKS["medium"]:
        return "medium"
    return "high"


def portfolio_comparison(portfolios, projects, evaluations, risks) -> dict:
    """
    Rank portfolios by mean compliance and benchmark them.

    Every evaluation of a member project counts toward the portfolio mean.
    Portfolios with no evaluations are left out. Efficiency blends the share
    of evaluated projects (40%) with the mean score (60%).
    """
    projects = list(projects)
    evaluations = list(evaluations)
    risks_by_project = defaultdict(list)
    for risk in risks:
        risks_by_project[field(risk, "project_id")].append(risk)

    rows = []
    for portfolio in portfolios:
        members = [p for p in projects if field(p, "portfolio_id") == field(portfolio, "id")]
        member_ids = {field(p, "id") for p in members}
        member_evaluations = [e for e in evaluations if field(e, "project_id") in member_ids]
        if not member_evaluations:
            continue

        scores = [field(e, "overall_score") for e in member_evaluations]
        risk_indexes = [project_risk_index(risks_by_project.get(pid, [])) for pid in member_ids]
        evaluated = len({field(e, "project_id") for e in member_evaluations})
        mean_score = sum(scores) / len(scores)
        efficiency = int(round_half_up(
            (evaluated / len(members) * 0.4 + mean_score / 100 * 0.6) * 100, 0
        ))
        total_budget = sum(field(p, "budget") for p in members)
        spent = sum(field(p, "spent_budget") or 0 for p in members)

        rows.append({
            "portfolio_id": field(portfolio, "id"),
            "portfolio_name": field(portfolio, "name"),
            "project_count": len(members),
            "evaluated_projects": evaluated,
            "average_compliance": _mean_rounded(scores),
            "average_risk": _mean_rounded(risk_indexes),
            "compliance_volatility": volatility(scores),
            "risk_volatility": volatility(risk_indexes),
            "efficiency_score": efficiency,
            "health_score": field(portfolio, "health_score"),
            "budget_utilization": (
                int(round_half_up(spent / total_budget * 100, 0)) if total_budget > 0 else 0
            ),
        })

    # stable sort keeps input order among equal means
    rows.sort(key=lambda r: r["average_compliance"], reverse=True)
    for rank, row in enumerate(rows, start=1):
        row["performance_rank"] = rank

    if rows:
        comparison = {
            "average_compliance": _mean_rounded([r["average_compliance"] for r in rows]),
            "average_risk": _mean_rounded([r["average_risk"] for r in rows]),
            "average_efficiency": _mean_rounded([r["efficiency_score"] for r in rows]),
            "compliance_range": {
                "min": min(r["average_compliance"] for r in rows),
                "max": max(r["average_compliance"] for r in rows),
            },
            "top_performer": rows[0]["portfolio_name"],
            "needs_improvement": rows[-1]["portfolio_name"],
        }
    else:
        comparison = {
            "average_compliance": 0,
            "average_risk": 0,
            "average_efficiency": 0,
            "compliance_range": {"min": 0, "max": 0},
            "top_performer": None,
            "needs_improvement": None,
        }

    benchmarks = []
    for row in rows:
        compliance_band = _band(row["average_compliance"], COMPLIANCE_BENCHMARKS)
        efficiency_band = _band(row["efficiency_score"], EFFICIENCY_BENCHMARKS)
        risk_band = _risk_band(row["average_risk"])
        points = sum(BENCHMARK_POINTS[b] for b in (compliance_band, efficiency_band, risk_band))
        if points >= 8:
            overall = "excellent"
        elif points >= 6:
            overall = "good"
        else:
            overall = "needs_improvement"
        benchmarks.append({
            "portfolio_id": row["portfolio_id"],
            "portfolio_name": row["portfolio_name"],
            "compliance_benchmark": compliance_band,
            "efficiency_benchmark": efficiency_band,
            "risk_benchmark": risk_band,
            "overall_benchmark": overall,
        })

    return {
        "portfolio_analytics": rows,
        "comparison_metrics": comparison,
        "benchmarking": benchmarks,
    }


# ---------------------------------------------------------------------------
# REPORT
# ---------------------------------------------------------------------------

def compliance_report(
    projects,
    portfolios,
    evaluations,
    standards,
    evidence_records,
    users,
    report_type: str = "executive_summary",
    portfolio_id: Optional[int] = None,
    project_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Executive summary plus detailed breakdown for a scope.

    Scope: portfolio_id narrows to that portfolio's projects and project_id
    narrows to one project; with neither, every project is in scope.

    Raises:
        ValueError: unknown report_type, or project_id names a project
            outside the given portfolio
    """
    if report_type not in REPORT_TYPES:
        raise ValueError(f"Invalid report_type: {report_type}. Must be one of {list(REPORT_TYPES)}")

    projects = list(projects)
    evaluations = list(evaluations)
    standards = [s for s in standards if field(s, "is_active")]
    evidence_records = list(evidence_records)
    user_names = {field(u, "id"): field(u, "name") for u in users}
    generated_at = now or datetime.utcnow()

    scoped = projects
    if portfolio_id is not None:
        scoped = [p for p in scoped if field(p, "portfolio_id") == portfolio_id]
    if project_id is not None:
        scoped = [p for p in scoped if field(p, "id") == project_id]
        if not scoped and portfolio_id is not None:
            raise ValueError(f"Project {project_id} is not in portfolio {portfolio_id}")

    latest = _latest_by_project(evaluations)
    project_rows = []
    for project in scoped:
        evaluation = latest.get(field(project, "id"))
        if evaluation is None:
            continue
        score = field(evaluation, "overall_score")
        project_rows.append({
            "project_id": field(project, "id"),
            "project_name": field(project, "name"),
            "compliance_score": score,
            "status": compliance_status(score),
            "last_evaluation": field(evaluation, "evaluated_at"),
            "evaluator": user_names.get(field(evaluation, "evaluator_id"), "Unknown"),
        })

    evaluated = len(project_rows)
    compliant = sum(1 for r in project_rows if r["status"] == "Compliant")
    non_compliant = sum(1 for r in project_rows if r["status"] == "Non-Compliant")
    overall = _mean_rounded([r["compliance_score"] for r in project_rows])

    if overall >= COMPLIANT_THRESHOLD:
        overall_status = "good"
    elif overall >= NON_COMPLIANT_THRESHOLD:
        overall_status = "warning"
    else:
        overall_status = "critical"
    compliant_share = compliant / evaluated if evaluated else 0

    executive_summary = {
        "overall_compliance": overall,
        "total_projects": len(scoped),
        "compliant_projects": compliant,
        "non_compliant_projects": non_compliant,
        "evaluated_projects": evaluated,
        "standards_coverage": len(standards),
        "key_findings": [
            {
                "title": "Overall Compliance Status",
                "value": f"{overall}%",
                "status": overall_status,
            },
            {
                "title": "Compliant Projects",
                "value": f"{compliant} of {evaluated}",
                "status": "good" if compliant_share >= 0.8 else "warning",
            },
            {
                "title": "Standards Coverage",
                "value": f"{len(standards)} active standards",
                "status": "info",
            },
        ],
    }

    evidence_statistics = {
        "total_evidence": len(evidence_records),
        "approved_evidence": sum(1 for e in evidence_records if field(e, "status") == "approved"),
        "pending_review": sum(1 for e in evidence_records if field(e, "status") == "submitted"),
        "rejected_evidence": sum(1 for e in evidence_records if field(e, "status") == "rejected"),
    }

    portfolio_breakdown = []
    for portfolio in portfolios:
        member_ids = {
            field(p, "id") for p in projects if field(p, "portfolio_id") == field(portfolio, "id")
        }
        member_scores = [
            field(e, "overall_score") for e in evaluations if field(e, "project_id") in member_ids
        ]
        portfolio_breakdown.append({
            "portfolio_id": field(portfolio, "id"),
            "portfolio_name": field(portfolio, "name"),
            "compliance_score": _mean_rounded(member_scores),
            "total_projects": len(member_ids),
            "evaluated_projects": len(member_scores),
        })

    return {
        "report_type": report_type,
        "generated_at": generated_at,
        "scope": {
            "portfolio_id": portfolio_id,
            "project_id": project_id,
            "total_projects": len(scoped),
        },
        "executive_summary": executive_summary,
        "detailed_breakdown": {
            "project_compliance": project_rows,
            "standards_adherence": [
                row for row in standards_adherence(standards, evaluations)
                if row["total_evaluations"] > 0
            ],
            "evidence_statistics": evidence_statistics,
            "portfolio_breakdown": portfolio_breakdown,
        },
    }
