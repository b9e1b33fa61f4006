"""
User Profile — dashboard preferences for the acting user.
"""

import streamlit as st
from frontend.api_client import api

_THEMES = ["light", "dark", "auto"]
_FONT_SIZES = ["small", "medium", "large"]


def render():
    """Render the User Profile tab."""

    st.subheader("User Profile")

    if api.user_id is None:
        st.info("Select a user in the sidebar first.")
        return

    try:
        user = api.get_user(api.user_id)
        stored = api.get_preferences(api.user_id)
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return

    st.write(f"**{user['name']}** · {user['role']} · {user['department']}")
    if stored["is_default"]:
        st.caption("Using the default preferences for this role.")

    prefs = stored["preferences"]
    notifications = prefs["notifications"]
    accessibility = prefs["accessibility"]
    with st.form("pf_preferences_form"):
        theme = st.selectbox("Theme", _THEMES, index=_THEMES.index(prefs["theme"]))
        col1, col2 = st.columns(2)
        with col1:
            email = st.checkbox("Email notifications", value=notifications["email"])
            risk_alerts = st.checkbox("Risk alerts", value=notifications["risk_alerts"])
            project_updates = st.checkbox("Project updates", value=notifications["project_updates"])
        with col2:
            font_size = st.selectbox(
                "Font size", _FONT_SIZES, index=_FONT_SIZES.index(accessibility["font_size"])
            )
            high_contrast = st.checkbox("High contrast", value=accessibility["high_contrast"])
            reduced_motion = st.checkbox("Reduced motion", value=accessibility["reduced_motion"])
        submitted = st.form_submit_button("Save Preferences", type="primary")

    if submitted:
        try:
            api.update_preferences(api.user_id, {
                "theme": theme,
                "notifications": {
                    "email": email,
                    "risk_alerts": risk_alerts,
                    "project_updates": project_updates,
                },
                "accessibility": {
                    "font_size": font_size,
                    "high_contrast": high_contrast,
                    "reduced_motion": reduced_motion,
                },
            })
            st.success("Preferences saved.")
        except Exception as e:
            st.error(f"Save failed: {e}")

    if st.button("Reset to Role Defaults"):
        try:
            api.reset_preferences(api.user_id)
            st.success("Preferences reset.")
        except Exception as e:
            st.error(f"Reset failed: {e}")
