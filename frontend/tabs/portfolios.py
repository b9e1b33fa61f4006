"""
Portfolio Management — list portfolios, drill into one, recompute health.
"""

import streamlit as st
import pandas as pd
from frontend.api_client import api
from frontend.components import metric_card, health_bar_chart


def render():
    """Render the Portfolio Management tab."""

    st.subheader("Portfolio Management")

    try:
        portfolios = api.get_portfolios()
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return

    if not portfolios:
        st.info("No portfolios yet.")
        _render_new_portfolio_form()
        return

    df = pd.DataFrame(portfolios)
    df_display = df[["id", "name", "health_score", "total_budget", "allocated_budget"]].copy()
    df_display.rename(columns={
        "id": "ID",
        "name": "Portfolio",
        "health_score": "Health",
        "total_budget": "Budget",
        "allocated_budget": "Allocated",
    }, inplace=True)
    for col in ["Budget", "Allocated"]:
        df_display[col] = df_display[col].apply(lambda x: f"{x:,.0f}")
    st.dataframe(df_display, use_container_width=True, hide_index=True)

    st.divider()

    options = {p["name"]: p["id"] for p in portfolios}
    selected = st.selectbox("Portfolio", list(options.keys()), key="pm_portfolio_select")
    portfolio_id = options[selected]

    try:
        stats = api.get_portfolio_statistics(portfolio_id)
        detail = api.get_portfolio_projects(portfolio_id)
    except Exception as e:
        st.error(f"Failed to load portfolio: {e}")
        return

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        metric_card("Stored Health", f"{stats['health_score']:.1f}")
    with col2:
        metric_card("Weighted Project Health", f"{stats['average_health_score']:.1f}")
    with col3:
        metric_card("Projects", str(stats["total_projects"]))
    with col4:
        metric_card("Project Budget", f"{stats['total_budget']:,.0f}")

    if st.button("Recompute Health Score", type="primary"):
        try:
            result = api.recompute_health_score(portfolio_id)
            st.success(f"Health score updated to {result['health_score']:.2f}")
        except Exception as e:
            st.error(f"Recompute failed: {e}")

    if detail["projects"]:
        st.plotly_chart(
            health_bar_chart(detail["projects"], title="Project Health"),
            use_container_width=True,
        )

    st.divider()
    _render_new_portfolio_form()


def _render_new_portfolio_form():
    with st.expander("➕ Create New Portfolio", expanded=False):
        with st.form("new_portfolio_form", clear_on_submit=True):
            name = st.text_input("Name *")
            description = st.text_area("Description")
            col1, col2 = st.columns(2)
            with col1:
                total_budget = st.number_input("Total Budget", min_value=0.0, step=100000.0)
            with col2:
                allocated_budget = st.number_input("Allocated Budget", min_value=0.0, step=100000.0)
            submitted = st.form_submit_button("Create Portfolio", type="primary")

        if submitted:
            if not name:
                st.error("Name is required.")
                return
            try:
                portfolio = api.create_portfolio({
                    "name": name,
                    "description": description,
                    "owner_id": api.user_id,
                    "total_budget": total_budget,
                    "allocated_budget": allocated_budget,
                })
                st.success(f"Created portfolio '{portfolio['name']}' (ID {portfolio['id']})")
            except Exception as e:
                st.error(f"Create failed: {e}")
