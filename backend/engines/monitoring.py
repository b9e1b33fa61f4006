"""
GovDash — Compliance Monitoring Engine

Scheduled evaluation timing and per-standard compliance checks with alerts.

Schedules advance by a fixed number of days from the time they are run:
    daily 1 · weekly 7 · monthly 30

Check status (latest evaluation for the project and standard, 0 if none):
    ≥ 80 compliant · ≥ 60 partial · else non_compliant

Alerts raised by a check:
    non_compliant       status non_compliant; critical below 40, else high
    declining_trend     trend over the last 5 evaluations is declining and score < 70; medium
    missing_evidence    mandatory criteria without a record; high above 3, else medium
    overdue_evaluation  last evaluation more than 30 days old, or never; low
"""

from datetime import datetime, timedelta
from typing import Optional

from .common import field, round_half_up
from .compliance import (
    COMPLIANT_THRESHOLD, NON_COMPLIANT_THRESHOLD, improvement_trend, latest_evaluation,
)

SCHEDULE_INTERVAL_DAYS = {"daily": 1, "weekly": 7, "monthly": 30}
TREND_WINDOW = 5
OVERDUE_DAYS = 30
SEVERITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}
TOP_ALERTS = 5


def next_run_time(frequency: str, now: datetime) -> datetime:
    if frequency not in SCHEDULE_INTERVAL_DAYS:
        raise ValueError(
            f"Invalid frequency: {frequency}. Must be one of {list(SCHEDULE_INTERVAL_DAYS)}"
        )
    return now + timedelta(days=SCHEDULE_INTERVAL_DAYS[frequency])


def is_due(schedule, now: datetime) -> bool:
    return bool(field(schedule, "is_active")) and field(schedule, "next_evaluation_at") <= now


def check_status(score: float) -> str:
    if score >= COMPLIANT_THRESHOLD:
        return "compliant"
    if score >= NON_COMPLIANT_THRESHOLD:
        return "partial"
    return "non_compliant"


def recent_trend(evaluations) -> str:
    """Trend over the most recent TREND_WINDOW evaluations only."""
    ordered = sorted(evaluations, key=lambda e: field(e, "evaluated_at"))
    return improvement_trend(ordered[-TREND_WINDOW:])


def missing_mandatory_criteria(criteria, records) -> list[str]:
    """Names of mandatory criteria that have no evidence record at all, in input order."""
    covered = {field(r, "criterion_id") for r in records}
    return [
        field(c, "name") for c in criteria
        if field(c, "is_mandatory") and field(c, "id") not in covered
    ]


def compliance_alerts(check: dict, now: datetime) -> list[dict]:
    alerts = []
    project, standard = check["project_name"], check["standard_name"]
    score = check["overall_score"]

    if check["status"] == "non_compliant":
        alerts.append({
            "type": "non_compliant",
            "severity": "critical" if score < 40 else "high",
            "message": f'Project "{project}" is non-compliant with standard "{standard}" (score {score}%)',
            "current_value": score,
        })

    if check["trend"] == "declining" and score < 70:
        alerts.append({
            "type": "declining_trend",
            "severity": "medium",
            "message": f'Project "{project}" shows a declining compliance trend for standard "{standard}"',
            "current_value": score,
        })

    missing = check["missing_criteria"]
    if missing:
        alerts.append({
            "type": "missing_evidence",
            "severity": "high" if len(missing) > 3 else "medium",
            "message": f'Project "{project}" is missing evidence for {len(missing)} mandatory criteria',
            "current_value": len(missing),
        })

    last = check["last_evaluated_at"]
    if last is None or last < now - timedelta(days=OVERDUE_DAYS):
        alerts.append({
            "type": "overdue_evaluation",
            "severity": "low",
            "message": f'Project "{project}" has an overdue compliance evaluation for standard "{standard}"',
            "current_value": None if last is None else (now - last).days,
        })

    return alerts


def compliance_check(
    project, standard, evaluations, criteria, records, now: Optional[datetime] = None
) -> dict:
    """
    Current compliance position of one project against one standard.

    evaluations, criteria and records must already be narrowed to this
    project and standard.
    """
    now = now or datetime.utcnow()
    evaluations = list(evaluations)
    latest = latest_evaluation(evaluations)
    score = field(latest, "overall_score") if latest is not None else 0

    check = {
        "project_id": field(project, "id"),
        "project_name": field(project, "name"),
        "standard_id": field(standard, "id"),
        "standard_name": field(standard, "name"),
        "overall_score": score,
        "status": check_status(score),
        "last_evaluated_at": field(latest, "evaluated_at") if latest is not None else None,
        "trend": recent_trend(evaluations),
        "missing_criteria": missing_mandatory_criteria(criteria, records),
    }
    check["alerts"] = compliance_alerts(check, now)
    return check


def portfolio_compliance_status(
    portfolio, projects, standards, evaluations, now: Optional[datetime] = None
) -> dict:
    """
    Latest score per (project, active standard) pair across a portfolio.

    Only pairs with an evaluation count. Alerts for the summary skip the
    trend and evidence checks; the five most severe are returned.
    """
    now = now or datetime.utcnow()
    projects = [p for p in projects if field(p, "portfolio_id") == field(portfolio, "id")]
    standards = [s for s in standards if field(s, "is_active")]
    evaluations = list(evaluations)

    distribution = {"compliant": 0, "partial": 0, "non_compliant": 0}
    scores = []
    evaluated_projects = set()
    alerts = []
    for project in projects:
        for standard in standards:
            latest = latest_evaluation(
                e for e in evaluations
                if field(e, "project_id") == field(project, "id")
                and field(e, "standard_id") == field(standard, "id")
            )
            if latest is None:
                continue
            score = field(latest, "overall_score")
            scores.append(score)
            evaluated_projects.add(field(project, "id"))
            status = check_status(score)
            distribution[status] += 1
            alerts.extend(compliance_alerts({
                "project_name": field(project, "name"),
                "standard_name": field(standard, "name"),
                "overall_score": score,
                "status": status,
                "last_evaluated_at": field(latest, "evaluated_at"),
                "trend": "stable",
                "missing_criteria": [],
            }, now))

    alerts.sort(key=lambda a: SEVERITY_ORDER.get(a["severity"], 0), reverse=True)
    return {
        "portfolio_id": field(portfolio, "id"),
        "portfolio_name": field(portfolio, "name"),
        "total_projects": len(projects),
        "evaluated_projects": len(evaluated_projects),
        "evaluated_checks": len(scores),
        "average_compliance_score": round_half_up(sum(scores) / len(scores), 1) if scores else 0,
        "compliance_distribution": distribution,
        "top_alerts": alerts[:TOP_ALERTS],
    }
