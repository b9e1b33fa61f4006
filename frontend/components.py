"""Reusable UI components for GovDash frontend."""

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
import plotly.express as px

HEALTH_COLORS = [(80, "#22C55E"), (60, "#F59E0B"), (0, "#EF4444")]
RISK_LEVEL_COLORS = {
    "low": "#22C55E",
    "medium": "#F59E0B",
    "high": "#F97316",
    "critical": "#EF4444",
}
STATUS_COLORS = {
    "Compliant": "#22C55E",
    "Partial": "#F59E0B",
    "Non-Compliant": "#EF4444",
}


def metric_card(label: str, value: str, delta: str = None):
    """Display a metric in a styled card."""
    st.metric(label=label, value=value, delta=delta)


def health_color(score: float) -> str:
    for threshold, color in HEALTH_COLORS:
        if score >= threshold:
            return color
    return HEALTH_COLORS[-1][1]


def health_bar_chart(items: list[dict], name_key: str = "name",
                     title: str = "Health Score") -> go.Figure:
    """Horizontal bars of health_score (0-100), coloured by band."""
    if not items:
        return go.Figure()

    df = pd.DataFrame(items).sort_values("health_score")
    fig = go.Figure(go.Bar(
        x=df["health_score"], y=df[name_key], orientation="h",
        marker_color=[health_color(s) for s in df["health_score"]],
        hovertemplate="%{y}<br>Health: %{x:.1f}<extra></extra>",
    ))
    fig.update_layout(
        title=title, xaxis_title="Health Score", xaxis_range=[0, 100],
        template="plotly_white", height=max(250, 40 * len(df) + 120),
    )
    return fig


def risk_matrix_heatmap(matrix: dict) -> go.Figure:
    """Probability × impact count grid."""
    edges_p = matrix.get("probability_edges", [])
    edges_i = matrix.get("impact_edges", [])
    if not matrix.get("counts"):
        return go.Figure()

    p_labels = [f"{lo:.0f}-{hi:.0f}" for lo, hi in zip(edges_p[:-1], edges_p[1:])]
    i_labels = [f"{lo:.0f}-{hi:.0f}" for lo, hi in zip(edges_i[:-1], edges_i[1:])]
    fig = go.Figure(go.Heatmap(
        z=matrix["counts"], x=i_labels, y=p_labels,
        colorscale="YlOrRd", text=matrix["counts"], texttemplate="%{text}",
        hovertemplate="Probability %{y}<br>Impact %{x}<br>Risks: %{z}<extra></extra>",
    ))
    fig.update_layout(
        title="Risk Matrix", xaxis_title="Impact (%)", yaxis_title="Probability (%)",
        template="plotly_white", height=420,
    )
    return fig


def portfolio_risk_chart(rows: list[dict]) -> go.Figure:
    """Stacked per-severity risk counts per portfolio."""
    if not rows:
        return go.Figure()

    df = pd.DataFrame(rows)
    fig = go.Figure()
    for level in ("critical", "high", "medium", "low"):
        fig.add_trace(go.Bar(
            x=df["portfolio_name"], y=df[f"{level}_risks"],
            name=level.title(), marker_color=RISK_LEVEL_COLORS[level],
        ))
    fig.update_layout(
        title="Risks by Portfolio", yaxis_title="Risks",
        barmode="stack", template="plotly_white", height=400,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def compliance_trend_chart(trends: list[dict]) -> go.Figure:
    """Daily mean compliance score with the 80/60 bands marked."""
    if not trends:
        return go.Figure()

    df = pd.DataFrame(trends)
    fig = go.Figure(go.Scatter(
        x=df["date"], y=df["compliance_score"],
        mode="lines+markers", line=dict(color="#3B82F6", width=3),
        hovertemplate="%{x}<br>Score: %{y}<extra></extra>",
    ))
    fig.add_hline(y=80, line_dash="dash", line_color="#22C55E", annotation_text="Compliant")
    fig.add_hline(y=60, line_dash="dot", line_color="#EF4444", annotation_text="Non-Compliant")
    fig.update_layout(
        title="Compliance Trend", xaxis_title="Date", yaxis_title="Score",
        yaxis_range=[0, 100], template="plotly_white", height=400,
    )
    return fig


def compliance_status_pie(project_rows: list[dict]) -> go.Figure:
    """Share of evaluated projects per compliance status."""
    if not project_rows:
        return go.Figure()

    df = pd.DataFrame(project_rows)
    counts = df["status"].value_counts().reset_index()
    counts.columns = ["status", "projects"]
    fig = px.pie(
        counts, names="status", values="projects",
        color="status", color_discrete_map=STATUS_COLORS,
    )
    fig.update_layout(title="Project Compliance Status", template="plotly_white", height=380)
    return fig
