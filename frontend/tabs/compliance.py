"""
Compliance Reports — PMI compliance dashboard, project evaluation and
report download.

Features:
- Headline compliance numbers and trend
- Standards adherence and non-compliance heatmap
- Evaluate a project against a standard
- Executive summary report with Excel export
"""

import streamlit as st
import pandas as pd
from frontend.api_client import api
from frontend.components import metric_card, compliance_trend_chart, compliance_status_pie

_REPORT_TYPES = ["executive_summary", "detailed_breakdown", "audit_ready"]


def render():
    """Render the Compliance Reports tab."""

    st.subheader("Compliance Reports")

    try:
        stats = api.get_compliance_statistics()
        trends = api.get_compliance_trends(days=90)
        adherence = api.get_standards_adherence()
        heatmap = api.get_non_compliance_heatmap()
    except Exception as e:
        st.error(f"Cannot connect to backend API: {e}")
        st.info("Make sure the backend is running: `uvicorn backend.main:app --port 8050`")
        return

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        metric_card("Overall Compliance", f"{stats['overall_compliance']}%")
    with col2:
        metric_card("Compliant Projects", str(stats["compliant_projects"]))
    with col3:
        metric_card("Non-Compliant Projects", str(stats["non_compliant_projects"]))
    with col4:
        metric_card("Evaluated", f"{stats['evaluated_projects']} / {stats['total_projects']}")

    if trends:
        st.plotly_chart(compliance_trend_chart(trends), use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Standards Adherence**")
        if adherence:
            st.dataframe(pd.DataFrame(adherence), use_container_width=True, hide_index=True)
    with col2:
        st.markdown("**Non-Compliance by Standard**")
        if heatmap:
            st.dataframe(pd.DataFrame(heatmap), use_container_width=True, hide_index=True)

    st.divider()
    _render_evaluation_form()

    st.divider()
    _render_report()


def _render_evaluation_form():
    st.markdown("**Evaluate Project**")
    try:
        projects = api.get_projects()
        standards = api.get_standards(active_only=True)
    except Exception as e:
        st.error(f"Failed to load projects or standards: {e}")
        return
    if not projects or not standards:
        st.info("Projects and active standards are needed before evaluating.")
        return

    project_options = {p["name"]: p["id"] for p in projects}
    standard_options = {s["name"]: s["id"] for s in standards}
    with st.form("cm_evaluate_form"):
        col1, col2 = st.columns(2)
        with col1:
            project = st.selectbox("Project", list(project_options.keys()))
        with col2:
            standard = st.selectbox("Standard", list(standard_options.keys()))
        notes = st.text_input("Notes")
        submitted = st.form_submit_button("Run Evaluation", type="primary")

    if submitted:
        try:
            result = api.evaluate_project(
                project_options[project], standard_options[standard], api.user_id, notes or None
            )
        except Exception as e:
            st.error(f"Evaluation failed: {e}")
            return
        st.success(f"Score {result['overall_score']:.2f} ({result['status']})")
        st.dataframe(pd.DataFrame(result["criteria_results"]), use_container_width=True,
                     hide_index=True)


def _render_report():
    st.markdown("**Compliance Report**")
    report_type = st.selectbox("Report type", _REPORT_TYPES, key="cm_report_type")
    try:
        report = api.get_compliance_report(report_type=report_type)
    except Exception as e:
        st.error(f"Failed to build report: {e}")
        return

    for finding in report["executive_summary"]["key_findings"]:
        st.write(f"- **{finding['title']}**: {finding['value']} ({finding['status']})")

    rows = report["detailed_breakdown"]["project_compliance"]
    if rows:
        col1, col2 = st.columns([1, 2])
        with col1:
            st.plotly_chart(compliance_status_pie(rows), use_container_width=True)
        with col2:
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    try:
        content = api.download_compliance_report(report_type=report_type)
        st.download_button(
            "Download Excel",
            data=content,
            file_name=f"compliance_report_{report_type}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    except Exception as e:
        st.error(f"Export failed: {e}")
