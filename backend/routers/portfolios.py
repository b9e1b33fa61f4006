"""
Portfolio Router — /api/portfolios

Endpoints:
    GET    /api/portfolios                       — List portfolios (?owner_id=)
    POST   /api/portfolios                       — Create portfolio (executive)
    GET    /api/portfolios/risk-heatmap          — Per-portfolio risk counts and level
    GET    /api/portfolios/{id}                  — Get portfolio
    PUT    /api/portfolios/{id}                  — Update portfolio (manager/executive)
    DELETE /api/portfolios/{id}                  — Delete portfolio (executive; 409 if it has projects)
    GET    /api/portfolios/{id}/projects         — Portfolio with its projects
    GET    /api/portfolios/{id}/statistics       — Counts, budget, weighted health
    POST   /api/portfolios/{id}/health-score     — Recompute and store health score

The stored health_score changes only through the health-score endpoint
(or a direct update); project edits do not touch it.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..deps import require_permission, to_http_error
from ..schemas import (
    PortfolioCreate, PortfolioUpdate, PortfolioResponse,
    PortfolioWithProjects, HealthScoreRecompute,
)

router = APIRouter(prefix="/api/portfolios", tags=["Portfolios"])


@router.get("", response_model=list[PortfolioResponse])
def list_portfolios(
    owner_id: Optional[int] = Query(None, description="Filter by owner"),
    db: Session = Depends(get_db),
):
    return crud.list_portfolios(db, owner_id=owner_id)


@router.post(
    "",
    response_model=PortfolioResponse,
    status_code=201,
    dependencies=[Depends(require_permission("portfolio", "create"))],
)
def create_portfolio(data: PortfolioCreate, db: Session = Depends(get_db)):
    """Create a portfolio. 400 if health_score is outside 0-100."""
    try:
        return crud.create_portfolio(db, data)
    except ValueError as e:
        raise to_http_error(e)


@router.get("/risk-heatmap")
def portfolio_risk_heatmap(db: Session = Depends(get_db)):
    return crud.portfolio_risk_heatmap(db)


@router.get("/{portfolio_id}", response_model=PortfolioResponse)
def get_portfolio(portfolio_id: int, db: Session = Depends(get_db)):
    portfolio = crud.get_portfolio(db, portfolio_id)
    if not portfolio:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return portfolio


@router.put(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def update_portfolio(portfolio_id: int, data: PortfolioUpdate, db: Session = Depends(get_db)):
    try:
        portfolio = crud.update_portfolio(db, portfolio_id, data)
    except ValueError as e:
        raise to_http_error(e)
    if not portfolio:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return portfolio


@router.delete(
    "/{portfolio_id}",
    status_code=200,
    dependencies=[Depends(require_permission("portfolio", "delete"))],
)
def delete_portfolio(portfolio_id: int, db: Session = Depends(get_db)):
    """Delete a portfolio. 409 while any project still references it."""
    try:
        deleted = crud.delete_portfolio(db, portfolio_id)
    except ValueError as e:
        raise to_http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return {"detail": f"Portfolio {portfolio_id} deleted successfully"}


@router.get("/{portfolio_id}/projects", response_model=PortfolioWithProjects)
def get_portfolio_with_projects(portfolio_id: int, db: Session = Depends(get_db)):
    portfolio = crud.get_portfolio(db, portfolio_id)
    if not portfolio:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return portfolio


@router.get("/{portfolio_id}/statistics")
def portfolio_statistics(portfolio_id: int, db: Session = Depends(get_db)):
    stats = crud.get_portfolio_statistics(db, portfolio_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return stats


@router.post(
    "/{portfolio_id}/health-score",
    response_model=HealthScoreRecompute,
    dependencies=[Depends(require_permission("portfolio", "edit"))],
)
def recompute_health_score(portfolio_id: int, db: Session = Depends(get_db)):
    """Recompute the budget-weighted health score from the portfolio's projects."""
    result = crud.recompute_portfolio_health(db, portfolio_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Portfolio {portfolio_id} not found")
    return result
