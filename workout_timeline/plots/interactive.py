"""Interactive (HTML) versions of the gap and transition charts."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from ..aggregation import queries

logger = logging.getLogger(__name__)


def gap_ecdf_figure(
    table: pd.DataFrame,
    after_disciplines: Iterable[str],
    max_minutes: float = 120.0,
    stack_window_minutes: Optional[float] = None,
) -> go.Figure:
    fig = go.Figure()
    for discipline in after_disciplines:
        curve = queries.gap_ecdf(table, after_discipline=discipline, max_minutes=max_minutes)
        if curve.empty:
            continue
        fig.add_trace(
            go.Scatter(
                x=curve["gap_minutes"],
                y=curve["ecdf"],
                mode="lines",
                line_shape="hv",
                name=f"after {discipline}",
                hovertemplate="%{x:.1f} min<br>%{y:.1%}<extra></extra>",
            )
        )
    if stack_window_minutes is not None:
        fig.add_vline(x=stack_window_minutes, line_dash="dash", line_color="gray",
                      annotation_text=f"{stack_window_minutes:g} min")
    fig.update_layout(
        title="Time to Next Workout After a Finished Class",
        xaxis_title="Minutes from end of finished workout to next start",
        yaxis_title="Cumulative share",
        xaxis_range=[0, max_minutes],
        yaxis_range=[0, 1],
        template="plotly_white",
    )
    return fig


def transition_heatmap_figure(table: pd.DataFrame, within_minutes: Optional[float] = None) -> go.Figure:
    matrix = queries.transition_matrix(table, within_minutes=within_minutes, normalize=True)
    if matrix.empty:
        return go.Figure(layout={"title": "Discipline Transitions (no consecutive workouts)"})
    fig = px.imshow(
        matrix,
        text_auto=".0%",
        color_continuous_scale="Blues",
        zmin=0,
        zmax=1,
        labels={"x": "Workout", "y": "Previous workout", "color": "Row share"},
        aspect="auto",
    )
    fig.update_layout(title="Discipline Transitions (row share)", template="plotly_white")
    return fig


def write_html(fig: go.Figure, path: Union[str, Path]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(str(p), include_plotlyjs="cdn")
    logger.info(f"Interactive chart saved to: {p}")
    return p
