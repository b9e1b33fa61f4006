"""
Project Management — filterable project table and per-project detail.
"""

import streamlit as st
import pandas as pd
from frontend.api_client import api
from frontend.components import metric_card

_STATUSES = ["All", "planned", "active", "at-risk", "delayed", "completed"]


def render():
    """Render the Project Management tab."""

    st.subheader("Project Management")

    col1, col2 = st.columns([2, 8])
    with col1:
        status = st.selectbox("Status", _STATUSES, key="pj_status_filter")

    try:
        projects = api.get_projects(status=None if status == "All" else status)
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return

    if not projects:
        st.info("No projects match this filter.")
        return

    df = pd.DataFrame(projects)
    df["budget_used"] = (df["spent_budget"] / df["budget"] * 100).round(1)
    df_display = df[[
        "id", "name", "status", "health_score", "risk_level", "budget", "budget_used",
    ]].rename(columns={
        "id": "ID",
        "name": "Project",
        "status": "Status",
        "health_score": "Health",
        "risk_level": "Risk",
        "budget": "Budget",
        "budget_used": "Spent (%)",
    })
    st.dataframe(df_display, use_container_width=True, hide_index=True)

    st.divider()

    options = {f"{p['name']} (ID {p['id']})": p for p in projects}
    selected = options[st.selectbox("Project", list(options.keys()), key="pj_select")]

    col1, col2, col3 = st.columns(3)
    with col1:
        metric_card("Health", f"{selected['health_score']:.0f}")
    with col2:
        metric_card("Budget", f"{selected['budget']:,.0f}")
    with col3:
        metric_card("Spent", f"{selected['spent_budget']:,.0f}")

    st.caption(
        f"{selected['start_date'][:10]} → {selected['end_date'][:10]}"
        + (f" · tags: {', '.join(selected['tags'])}" if selected["tags"] else "")
    )
    if selected["milestones"]:
        st.dataframe(pd.DataFrame(selected["milestones"]), use_container_width=True, hide_index=True)

    with st.form("pj_status_form"):
        new_status = st.selectbox("Change status", _STATUSES[1:],
                                  index=_STATUSES[1:].index(selected["status"]))
        new_health = st.slider("Health score", 0, 100, int(selected["health_score"]))
        submitted = st.form_submit_button("Save", type="primary")

    if submitted:
        try:
            api.update_project(selected["id"], {"status": new_status, "health_score": new_health})
            st.success("Project updated.")
        except Exception as e:
            st.error(f"Update failed: {e}")
