"""
GovDash — Health Score Engine

Portfolio health is the budget-weighted mean of its projects' health scores:

    health = Σ health_i × (budget_i / Σ budget)

Fallbacks:
    - no projects          → 100 (an empty portfolio is fully healthy)
    - total budget of zero → unweighted mean of health scores

The result is rounded half-up to 2 decimals. Nothing here touches the
database; persisting a recomputed score is crud.recompute_portfolio_health.
"""

from .common import field, round_half_up, tally

PROJECT_STATUSES = ("planned", "active", "at-risk", "delayed", "completed")
RISK_LEVELS = ("low", "medium", "high", "critical")


def calculate_portfolio_health_score(projects) -> float:
    """
    Budget-weighted health score for a collection of projects.

    Args:
        projects: iterable of records exposing budget and health_score

    Returns:
        Score in [min(health_i), max(health_i)], or 100 for an empty collection
    """
    projects = list(projects)
    if not projects:
        return 100.0

    total_budget = sum(field(p, "budget") for p in projects)
    if total_budget == 0:
        return sum(field(p, "health_score") for p in projects) / len(projects)

    weighted = sum(
        field(p, "health_score") * (field(p, "budget") / total_budget)
        for p in projects
    )
    return round_half_up(weighted, 2)


def project_statistics(projects) -> dict:
    """Totals and tallies over a set of projects, using a plain mean of health."""
    projects = list(projects)
    average = (
        sum(field(p, "health_score") for p in projects) / len(projects)
        if projects else 0
    )
    return {
        "total_projects": len(projects),
        "total_budget": sum(field(p, "budget") for p in projects),
        "average_health_score": average,
        "status_counts": tally(projects, "status", PROJECT_STATUSES),
        "risk_level_counts": tally(projects, "risk_level", RISK_LEVELS),
    }


def portfolio_statistics(portfolio, projects) -> dict:
    """Portfolio header plus project tallies; average is the weighted score."""
    projects = list(projects)
    return {
        "portfolio_id": field(portfolio, "id"),
        "name": field(portfolio, "name"),
        "description": field(portfolio, "description"),
        "health_score": field(portfolio, "health_score"),
        "total_projects": len(projects),
        "total_budget": sum(field(p, "budget") for p in projects),
        "average_health_score": calculate_portfolio_health_score(projects),
        "status_counts": tally(projects, "status", PROJECT_STATUSES),
        "risk_level_counts": tally(projects, "risk_level", RISK_LEVELS),
    }
