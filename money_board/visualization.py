"""Plotly visualisation helpers for the money board.

Each function takes a planner result or a bucket list and returns a
`plotly.graph_objects.Figure` that Streamlit renders via
``st.plotly_chart``. Empty inputs produce an empty figure with a
"No data to display" title rather than raising.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .models import Bucket
from .planner import CarryoverForecast, WeeklyNeed


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_carryover_chart(forecast: CarryoverForecast, title: str | None = None) -> go.Figure:
    """Stacked need per week (bills, baseline, carry-in) against logged income.

    Parameters
    ----------
    forecast : CarryoverForecast
        Result of :func:`money_board.planner.carryover_forecast`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Stacked bar chart with an income line and a still-needed line.
    """
    frame = forecast.to_frame()
    if frame.empty:
        return _empty_figure()
    fig = go.Figure()
    for column in ['Bills Due', 'Baseline', 'Carry In']:
        fig.add_trace(go.Bar(name=column, x=frame['Start'], y=frame[column]))
    fig.add_trace(go.Scatter(name='Income', x=frame['Start'], y=frame['Income'], mode='lines+markers'))
    fig.add_trace(go.Scatter(name='Still Need', x=frame['Start'], y=frame['Still Need'], mode='lines+markers'))
    fig.update_layout(
        barmode='stack',
        title=title or f"{len(frame)}-week carryover forecast",
        xaxis_title="Week starting",
        yaxis_title="Amount ($)",
    )
    return fig


def create_weekly_need_chart(weekly: WeeklyNeed, title: str | None = None) -> go.Figure:
    """Bar chart of remaining amounts due in each week."""
    frame = weekly.to_frame()
    if frame.empty:
        return _empty_figure()
    fig = px.bar(frame, x='Start', y='Due (remaining)', hover_data=['Buckets', 'Daily Pace'])
    fig.update_layout(
        title=title or "Income needed each week",
        xaxis_title="Week starting",
        yaxis_title="Due ($)",
    )
    return fig


def create_bucket_progress_chart(buckets: Sequence[Bucket], title: str | None = None) -> go.Figure:
    """Horizontal saved-vs-remaining bars for buckets with a target."""
    rows = [
        {'Bucket': b.name, 'Saved': min(b.saved, b.target), 'Remaining': b.remaining}
        for b in buckets
        if b.target > 0
    ]
    if not rows:
        return _empty_figure()
    df = pd.DataFrame(rows)
    long_df = df.melt(id_vars='Bucket', value_vars=['Saved', 'Remaining'], var_name='Status', value_name='Amount')
    fig = px.bar(long_df, x='Amount', y='Bucket', color='Status', orientation='h')
    fig.update_layout(
        barmode='stack',
        title=title or "Bucket funding",
        xaxis_title="Amount ($)",
        yaxis_title="",
    )
    return fig
