"""
Executive Dashboard — headline numbers across every portfolio.

Features:
- Portfolio / project / compliance KPIs
- Health score per portfolio
- Risks per portfolio by severity
- Compliance trend over the last 30 days
"""

import streamlit as st
from frontend.api_client import api
from frontend.components import (
    metric_card, health_bar_chart, portfolio_risk_chart, compliance_trend_chart,
)


def render():
    """Render the Executive Dashboard tab."""

    st.subheader("Executive Dashboard")

    try:
        portfolios = api.get_portfolios()
        project_stats = api.get_project_statistics()
        compliance_stats = api.get_compliance_statistics()
        heatmap = api.get_risk_heatmap()
        trends = api.get_compliance_trends(days=30)
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        metric_card("Portfolios", str(len(portfolios)))
    with col2:
        metric_card("Projects", str(project_stats["total_projects"]))
    with col3:
        metric_card("Avg Project Health", f"{project_stats['average_health_score']:.1f}")
    with col4:
        delta = compliance_stats["trend_value"]
        metric_card(
            "Overall Compliance",
            f"{compliance_stats['overall_compliance']}%",
            delta=f"{delta:+d} ({compliance_stats['trend']})",
        )

    at_risk = project_stats["status_counts"].get("at-risk", 0)
    delayed = project_stats["status_counts"].get("delayed", 0)
    if at_risk or delayed:
        st.warning(f"{at_risk} project(s) at risk and {delayed} delayed.")

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(
            health_bar_chart(portfolios, title="Portfolio Health"),
            use_container_width=True,
        )
    with col2:
        st.plotly_chart(portfolio_risk_chart(heatmap), use_container_width=True)

    if trends:
        st.plotly_chart(compliance_trend_chart(trends), use_container_width=True)
    else:
        st.info("No compliance evaluations in the last 30 days.")
