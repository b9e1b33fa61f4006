"""GovDash — Streamlit Frontend Entry Point."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import streamlit as st

st.set_page_config(
    page_title="GovDash",
    page_icon="🏛️",
    layout="wide",
    initial_sidebar_state="expanded",
)

from frontend.api_client import api, API_BASE
from frontend.tabs import executive_dashboard, portfolios, projects, risks, compliance, profile

# Navigation keys this frontend renders, in sidebar order
RENDERED_ROUTES = ("dashboard", "executive", "portfolios", "projects", "risks", "compliance")


def _select_user():
    """Sidebar user picker; the chosen user is sent as X-User-Id."""
    try:
        users = api.get_users()
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return None
    if not users:
        st.info("No users yet. Seed the database with `python backend/seed_data.py`.")
        return None

    options = {f"{u['name']} ({u['role']})": u for u in users}
    label = st.sidebar.selectbox("Acting as", list(options.keys()), key="acting_user")
    user = options[label]
    api.set_user(user["id"])
    return user


def main():
    st.sidebar.title("GovDash")
    st.sidebar.caption("Government Portfolio Dashboard")

    user = _select_user()
    if user is None:
        return

    try:
        routes = api.get_navigation(user["role"])
    except Exception as e:
        st.error(f"Failed to load navigation: {e}")
        return

    tabs = {r["title"]: r["key"] for r in routes if r["key"] in RENDERED_ROUTES}
    tabs["User Profile"] = "profile"

    selected = st.sidebar.radio("Navigation", list(tabs.keys()), key="nav_radio")
    key = tabs[selected]

    st.sidebar.divider()
    st.sidebar.caption(f"Backend: {API_BASE}")
    st.sidebar.caption(f"API Docs: {API_BASE}/docs")

    # Render selected tab
    if key in ("dashboard", "executive"):
        executive_dashboard.render()
    elif key == "portfolios":
        portfolios.render()
    elif key == "projects":
        projects.render()
    elif key == "risks":
        risks.render()
    elif key == "compliance":
        compliance.render()
    elif key == "profile":
        profile.render()


if __name__ == "__main__":
    main()
