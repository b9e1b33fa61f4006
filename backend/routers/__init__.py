"""
GovDash API Routers

Each module in this package defines a FastAPI APIRouter for one area of
the application (users, portfolios, projects, risks, compliance, etc.).
Routers are included in the main FastAPI app in main.py.
"""
