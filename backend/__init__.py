"""
GovDash Backend Package

FastAPI-based backend for government portfolio and project oversight.
Provides REST API endpoints for users, portfolios, projects, risks,
PMI standards and compliance evaluation, plus the role-based access policy.
"""
