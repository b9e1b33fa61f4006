"""
Risk Management — risk register, probability × impact matrix and
per-portfolio severity breakdown.
"""

import streamlit as st
import pandas as pd
from frontend.api_client import api
from frontend.components import risk_matrix_heatmap, portfolio_risk_chart

_SEVERITIES = ["All", "low", "medium", "high", "critical"]
_RISK_STATUSES = ["identified", "monitored", "mitigated", "resolved"]


def render():
    """Render the Risk Management tab."""

    st.subheader("Risk Management")

    col1, col2 = st.columns([2, 8])
    with col1:
        severity = st.selectbox("Severity", _SEVERITIES, key="rk_severity_filter")

    try:
        risks = api.get_risks(severity=None if severity == "All" else severity)
        matrix = api.get_risk_matrix()
        heatmap = api.get_risk_heatmap()
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(risk_matrix_heatmap(matrix), use_container_width=True)
    with col2:
        st.plotly_chart(portfolio_risk_chart(heatmap), use_container_width=True)

    if not risks:
        st.info("No risks recorded.")
        return

    df = pd.DataFrame(risks)
    df_display = df[[
        "id", "project_id", "title", "severity", "status",
        "probability", "impact", "risk_score", "derived_level",
    ]].rename(columns={
        "id": "ID",
        "project_id": "Project",
        "title": "Risk",
        "severity": "Severity",
        "status": "Status",
        "probability": "Probability",
        "impact": "Impact",
        "risk_score": "Score",
        "derived_level": "Score Level",
    })
    st.dataframe(df_display, use_container_width=True, hide_index=True)

    st.divider()

    options = {f"{r['title']} (ID {r['id']})": r for r in risks}
    selected = options[st.selectbox("Risk", list(options.keys()), key="rk_select")]
    col1, col2 = st.columns([3, 1])
    with col1:
        new_status = st.selectbox(
            "Status", _RISK_STATUSES, index=_RISK_STATUSES.index(selected["status"]),
            key="rk_status",
        )
    with col2:
        st.write("")
        if st.button("Update Status", use_container_width=True):
            try:
                api.update_risk_status(selected["id"], new_status)
                st.success("Status updated.")
            except Exception as e:
                st.error(f"Update failed: {e}")
