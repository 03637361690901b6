from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import pandas as pd

from ..models.types import DAY_ORDER

NO_NEXT_WORKOUT = "None"


def _finished_after(table: pd.DataFrame, discipline: Optional[str]) -> pd.Series:
    """Previous workout was finished (and of `discipline` when given)."""
    mask = table["previous_workout_finished"].astype("boolean").fillna(False).astype(bool)
    if discipline is not None:
        prev = table["previous_fitness_discipline"].astype("string").str.lower()
        mask &= (prev == discipline.lower()).fillna(False).astype(bool)
    return mask


def _gap_within(gaps: pd.Series, minutes: Optional[float], exclude_negative: bool) -> pd.Series:
    values = gaps.astype("Float64")
    mask = values.notna()
    if exclude_negative:
        mask &= (values >= 0).fillna(False)
    if minutes is not None:
        mask &= (values <= minutes).fillna(False)
    return mask.astype(bool)


def discipline_mix(table: pd.DataFrame) -> pd.DataFrame:
    counts = table.groupby("fitness_discipline", observed=True)["workout_id"].nunique().sort_values(ascending=False)
    out = counts.rename("workouts").to_frame()
    out["share"] = out["workouts"] / out["workouts"].sum() if len(out) else 0.0
    return out.reset_index()


def completion_rate_by_discipline(table: pd.DataFrame) -> pd.DataFrame:
    """Completion among rateable workouts (non-null pct_of_class_completed) per discipline."""
    rateable = table[table["pct_of_class_completed"].notna()]
    if rateable.empty:
        return pd.DataFrame(columns=["fitness_discipline", "rateable_workouts", "finished_workouts", "completion_rate", "median_pct_completed"])
    grouped = rateable.groupby("fitness_discipline", observed=True)
    out = pd.DataFrame(
        {
            "rateable_workouts": grouped["workout_id"].nunique(),
            "finished_workouts": grouped["workout_finished"].sum().astype("int64"),
            "median_pct_completed": grouped["pct_of_class_completed"].median().astype(float),
        }
    )
    out["completion_rate"] = out["finished_workouts"] / out["rateable_workouts"]
    out = out.sort_values("rateable_workouts", ascending=False).reset_index()
    return out[["fitness_discipline", "rateable_workouts", "finished_workouts", "completion_rate", "median_pct_completed"]]


def workouts_by_day_and_hour(table: pd.DataFrame) -> pd.DataFrame:
    """Workout counts per day_of_week (rows, Monday first) and hour_of_day (columns 0-23)."""
    pivot = pd.crosstab(table["day_of_week"].astype(str), table["hour_of_day"])
    return pivot.reindex(index=DAY_ORDER, columns=range(24), fill_value=0)


def weekend_share_by_discipline(table: pd.DataFrame) -> pd.DataFrame:
    grouped = table.groupby("fitness_discipline", observed=True)
    out = pd.DataFrame({"workouts": grouped["workout_id"].nunique(), "weekend_share": grouped["is_weekend"].mean()})
    return out.sort_values("workouts", ascending=False).reset_index()


def started_within(
    table: pd.DataFrame,
    after_discipline: str,
    minutes: float,
    exclude_negative: bool = True,
) -> pd.Series:
    """Workout followed a finished `after_discipline` workout within `minutes` of its end."""
    if minutes < 0:
        raise ValueError("minutes must not be negative")
    mask = _finished_after(table, after_discipline) & _gap_within(table["gap_minutes_from_previous"], minutes, exclude_negative)
    return mask.rename("started_within")


def share_started_within(
    table: pd.DataFrame,
    after_discipline: str,
    minutes: float,
    exclude_same_discipline: bool = True,
    exclude_negative: bool = True,
) -> Dict[str, float]:
    """Share of workouts that started within `minutes` of a finished `after_discipline` workout.

    With exclude_same_discipline the population is every workout of another
    discipline, e.g. "what fraction of non-cycling workouts started within 10
    minutes of a finished cycling workout".
    """
    population = table
    if exclude_same_discipline:
        population = table[table["fitness_discipline"].astype("string").str.lower() != after_discipline.lower()]
    hits = population[started_within(population, after_discipline, minutes, exclude_negative)]
    denominator = int(population["workout_id"].nunique())
    numerator = int(hits["workout_id"].nunique())
    return {
        "after_discipline": after_discipline,
        "minutes": float(minutes),
        "workouts": numerator,
        "population": denominator,
        "share": numerator / denominator if denominator else None,
    }


def next_discipline_after(
    table: pd.DataFrame,
    discipline: str,
    within_minutes: Optional[float] = None,
    finished_only: bool = True,
    exclude_negative: bool = True,
) -> pd.DataFrame:
    """What users did next after a workout of `discipline`.

    Rows whose next workout is missing, or falls outside the window, count as
    "None". Shares are over all qualifying `discipline` workouts.
    """
    base = table[table["fitness_discipline"].astype("string").str.lower() == discipline.lower()]
    if finished_only:
        base = base[base["workout_finished"]]
    if base.empty:
        return pd.DataFrame(columns=["next_fitness_discipline", "workouts", "share"])
    has_next = _gap_within(base["gap_minutes_to_next"], within_minutes, exclude_negative)
    nxt = base["next_fitness_discipline"].astype("string").where(has_next).fillna(NO_NEXT_WORKOUT)
    counts = base.groupby(nxt.to_numpy())["workout_id"].nunique().sort_values(ascending=False)
    out = counts.rename("workouts").rename_axis("next_fitness_discipline").to_frame()
    out["share"] = out["workouts"] / out["workouts"].sum()
    return out.reset_index()


def transition_matrix(
    table: pd.DataFrame,
    within_minutes: Optional[float] = None,
    normalize: bool = False,
    exclude_negative: bool = True,
) -> pd.DataFrame:
    """Previous discipline (rows) by discipline (columns) for consecutive workouts.

    With normalize each row sums to 1.
    """
    pairs = table[_gap_within(table["gap_minutes_from_previous"], within_minutes, exclude_negative)]
    if pairs.empty:
        return pd.DataFrame()
    matrix = pd.crosstab(
        pairs["previous_fitness_discipline"].astype(str),
        pairs["fitness_discipline"].astype(str),
        normalize="index" if normalize else False,
    )
    matrix.index.name = "previous_fitness_discipline"
    matrix.columns.name = "fitness_discipline"
    return matrix


def top_class_type_pairs(
    table: pd.DataFrame,
    after_discipline: str,
    within_minutes: float,
    top_n: int = 10,
) -> pd.DataFrame:
    """Most common (previous class type, class type) pairs after a finished `after_discipline` workout."""
    stacked = table[started_within(table, after_discipline, within_minutes)]
    stacked = stacked[stacked["previous_class_type"].notna() & stacked["class_type"].notna()]
    columns = ["previous_class_type", "fitness_discipline", "class_type", "workouts", "share"]
    if stacked.empty:
        return pd.DataFrame(columns=columns)
    counts = (
        stacked.groupby(["previous_class_type", "fitness_discipline", "class_type"], observed=True)["workout_id"]
        .nunique()
        .rename("workouts")
        .reset_index()
    )
    counts["share"] = counts["workouts"] / counts["workouts"].sum()
    counts = counts.sort_values(["workouts", "previous_class_type", "class_type"], ascending=[False, True, True])
    return counts.head(top_n).reset_index(drop=True)[columns]


def gap_ecdf(
    table: pd.DataFrame,
    after_discipline: Optional[str] = None,
    finished_only: bool = True,
    exclude_negative: bool = True,
    max_minutes: Optional[float] = None,
) -> pd.DataFrame:
    """Empirical CDF of gap_minutes_from_previous.

    Null gaps never enter the distribution. max_minutes truncates the returned
    points but the cumulative share is computed over all gaps, so the curve can
    end below 1.
    """
    mask = table["gap_minutes_from_previous"].notna()
    if finished_only:
        mask &= _finished_after(table, after_discipline)
    elif after_discipline is not None:
        prev = table["previous_fitness_discipline"].astype("string").str.lower()
        mask &= (prev == after_discipline.lower()).fillna(False).astype(bool)
    gaps = table.loc[mask, "gap_minutes_from_previous"].astype(float)
    if exclude_negative:
        gaps = gaps[gaps >= 0]
    if gaps.empty:
        return pd.DataFrame(columns=["gap_minutes", "ecdf"])
    values = np.sort(gaps.to_numpy())
    ecdf = np.arange(1, len(values) + 1) / len(values)
    out = pd.DataFrame({"gap_minutes": values, "ecdf": ecdf})
    if max_minutes is not None:
        out = out[out["gap_minutes"] <= max_minutes]
    return out.reset_index(drop=True)


def gap_summary_by_discipline(table: pd.DataFrame, exclude_negative: bool = True) -> pd.DataFrame:
    """Gap after each previous discipline: count, median and quartiles in minutes."""
    rows = table[_gap_within(table["gap_minutes_from_previous"], None, exclude_negative)]
    if rows.empty:
        return pd.DataFrame(columns=["previous_fitness_discipline", "gaps", "median_minutes", "p25_minutes", "p75_minutes"])
    gaps = rows["gap_minutes_from_previous"].astype(float)
    grouped = gaps.groupby(rows["previous_fitness_discipline"].astype(str))
    out = pd.DataFrame(
        {
            "gaps": grouped.count(),
            "median_minutes": grouped.median(),
            "p25_minutes": grouped.quantile(0.25),
            "p75_minutes": grouped.quantile(0.75),
        }
    )
    out.index.name = "previous_fitness_discipline"
    return out.sort_values("gaps", ascending=False).reset_index()


def negative_gap_summary(table: pd.DataFrame) -> Dict[str, float]:
    """How often a workout starts before the previous one ended (shared accounts, multiple devices)."""
    gaps = table["gap_minutes_from_previous"].astype("Float64")
    with_previous = int(gaps.notna().sum())
    negative = (gaps < 0).fillna(False).astype(bool)
    return {
        "negative_gaps": int(negative.sum()),
        "workouts_with_previous": with_previous,
        "share": int(negative.sum()) / with_previous if with_previous else None,
        "users_affected": int(table.loc[negative, "user_id"].nunique()),
    }


def stacking_summary(table: pd.DataFrame, after_discipline: str, minutes: float) -> Dict[str, object]:
    """Headline numbers for the queue-next vs recommend decision."""
    share = share_started_within(table, after_discipline, minutes)
    nxt = next_discipline_after(table, after_discipline, within_minutes=minutes)
    followed = nxt[nxt["next_fitness_discipline"] != NO_NEXT_WORKOUT]
    window = table[started_within(table, after_discipline, minutes)]
    median_gap = float(window["gap_minutes_from_previous"].astype(float).median()) if not window.empty else None
    return {
        "after_discipline": after_discipline,
        "window_minutes": float(minutes),
        "share_of_other_workouts_stacked": share["share"],
        "stacked_workouts": share["workouts"],
        "finished_workouts": int(nxt["workouts"].sum()) if not nxt.empty else 0,
        "share_followed_within_window": float(followed["share"].sum()) if not followed.empty else 0.0,
        "top_next_discipline": followed.iloc[0]["next_fitness_discipline"] if not followed.empty else None,
        "median_gap_minutes": median_gap,
    }
