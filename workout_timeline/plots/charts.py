"""
Static report charts
====================

matplotlib/seaborn renderings of the query results. Every function returns the
Figure; when save_path is given the figure is written and closed.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from ..aggregation import queries
from ..aggregation.sessions import session_size_distribution
from ..models.types import DAY_ORDER

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

sns.set_palette("husl")


def _finish(fig: plt.Figure, save_path: Optional[PathLike], dpi: int) -> plt.Figure:
    fig.tight_layout()
    if save_path:
        p = Path(save_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(p, dpi=dpi, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"Chart saved to: {p}")
    return fig


def plot_discipline_mix(table: pd.DataFrame, save_path: Optional[PathLike] = None, dpi: int = 150) -> plt.Figure:
    mix = queries.discipline_mix(table)
    fig, ax = plt.subplots(figsize=(10, 6))
    if not mix.empty:
        mix["fitness_discipline"] = mix["fitness_discipline"].astype(str)
        sns.barplot(data=mix, x="workouts", y="fitness_discipline", ax=ax, color="steelblue")
    ax.set_xlabel("Workouts")
    ax.set_ylabel("")
    ax.set_title("Workouts by Discipline", fontsize=14, fontweight="bold")
    for i, row in mix.iterrows():
        ax.text(row["workouts"], i, f" {row['share']:.1%}", va="center", fontsize=9)
    ax.grid(True, axis="x", alpha=0.3)
    return _finish(fig, save_path, dpi)


def plot_completion_rates(table: pd.DataFrame, save_path: Optional[PathLike] = None, dpi: int = 150) -> plt.Figure:
    rates = queries.completion_rate_by_discipline(table)
    fig, ax = plt.subplots(figsize=(10, 6))
    if not rates.empty:
        rates["fitness_discipline"] = rates["fitness_discipline"].astype(str)
        sns.barplot(data=rates, x="completion_rate", y="fitness_discipline", ax=ax, color="seagreen")
    ax.set_xlim(0, 1)
    ax.set_xlabel("Share of rateable workouts finished")
    ax.set_ylabel("")
    ax.set_title("Class Completion Rate by Discipline", fontsize=14, fontweight="bold")
    ax.grid(True, axis="x", alpha=0.3)
    return _finish(fig, save_path, dpi)


def plot_day_hour_heatmap(table: pd.DataFrame, save_path: Optional[PathLike] = None, dpi: int = 150) -> plt.Figure:
    pivot = queries.workouts_by_day_and_hour(table)
    fig, ax = plt.subplots(figsize=(14, 5))
    sns.heatmap(pivot.reindex(DAY_ORDER), cmap="viridis", ax=ax, cbar_kws={"label": "Workouts"})
    ax.set_xlabel("Hour of day")
    ax.set_ylabel("")
    ax.set_title("When Workouts Start", fontsize=14, fontweight="bold")
    return _finish(fig, save_path, dpi)


def plot_gap_ecdf(
    table: pd.DataFrame,
    after_disciplines: Iterable[str],
    max_minutes: float = 120.0,
    stack_window_minutes: Optional[float] = None,
    save_path: Optional[PathLike] = None,
    dpi: int = 150,
) -> plt.Figure:
    """ECDF of the gap after a finished workout, one curve per previous discipline."""
    fig, ax = plt.subplots(figsize=(12, 7))
    for discipline in after_disciplines:
        curve = queries.gap_ecdf(table, after_discipline=discipline, max_minutes=max_minutes)
        if curve.empty:
            continue
        ax.step(curve["gap_minutes"], curve["ecdf"], where="post", linewidth=2, label=f"after {discipline}")
    if stack_window_minutes is not None:
        ax.axvline(x=stack_window_minutes, color="gray", linestyle="--", alpha=0.7,
                   label=f"{stack_window_minutes:g} min window")
    ax.set_xlim(0, max_minutes)
    ax.set_ylim(0, 1)
    ax.set_xlabel("Minutes from end of finished workout to next start")
    ax.set_ylabel("Cumulative share of next workouts")
    ax.set_title("Time to Next Workout", fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.3)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(fontsize=10)
    return _finish(fig, save_path, dpi)


def plot_next_discipline_after(
    table: pd.DataFrame,
    discipline: str,
    within_minutes: Optional[float] = None,
    save_path: Optional[PathLike] = None,
    dpi: int = 150,
) -> plt.Figure:
    nxt = queries.next_discipline_after(table, discipline, within_minutes=within_minutes)
    fig, ax = plt.subplots(figsize=(10, 6))
    if not nxt.empty:
        nxt["next_fitness_discipline"] = nxt["next_fitness_discipline"].astype(str)
        sns.barplot(data=nxt, x="share", y="next_fitness_discipline", ax=ax, color="darkorange")
    window = f" within {within_minutes:g} min" if within_minutes is not None else ""
    ax.set_xlabel("Share of finished workouts")
    ax.set_ylabel("Next workout")
    ax.set_title(f"Next Workout After a Finished {discipline} Class{window}", fontsize=14, fontweight="bold")
    ax.grid(True, axis="x", alpha=0.3)
    return _finish(fig, save_path, dpi)


def plot_transition_heatmap(
    table: pd.DataFrame,
    within_minutes: Optional[float] = None,
    save_path: Optional[PathLike] = None,
    dpi: int = 150,
) -> plt.Figure:
    matrix = queries.transition_matrix(table, within_minutes=within_minutes, normalize=True)
    fig, ax = plt.subplots(figsize=(10, 8))
    if not matrix.empty:
        sns.heatmap(matrix, annot=True, fmt=".0%", cmap="Blues", vmin=0, vmax=1, ax=ax, cbar=False)
    ax.set_xlabel("Workout")
    ax.set_ylabel("Previous workout")
    ax.set_title("Discipline Transitions (row share)", fontsize=14, fontweight="bold")
    return _finish(fig, save_path, dpi)


def plot_session_sizes(sessions: pd.DataFrame, save_path: Optional[PathLike] = None, dpi: int = 150) -> plt.Figure:
    dist = session_size_distribution(sessions)
    fig, ax = plt.subplots(figsize=(10, 6))
    if not dist.empty:
        ax.bar(dist["session_size"].astype(str), dist["sessions"], color="slateblue", alpha=0.8)
    ax.set_xlabel("Workouts in session")
    ax.set_ylabel("Sessions")
    ax.set_title("Session Sizes", fontsize=14, fontweight="bold")
    ax.grid(True, axis="y", alpha=0.3)
    return _finish(fig, save_path, dpi)
