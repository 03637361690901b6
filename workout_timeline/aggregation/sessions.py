from __future__ import annotations

import pandas as pd


def assign_sessions(table: pd.DataFrame, max_gap_minutes: float) -> pd.DataFrame:
    """Group back-to-back workouts into sessions.

    A workout continues the previous workout's session when its gap from the
    previous workout is known and at most `max_gap_minutes`. Overlapping
    workouts (negative gaps) stay in the same session. Returns a copy with
    session_id ("<user_id>-<n>"), session_position (1-based) and session_size.
    """
    if max_gap_minutes < 0:
        raise ValueError("max_gap_minutes must not be negative")
    out = table.sort_values(["user_id", "workout_start_time"], kind="mergesort").copy()
    gaps = out["gap_minutes_from_previous"].astype("Float64")
    continues = (gaps <= max_gap_minutes).fillna(False).astype(bool)
    starts_session = ~continues

    session_number = starts_session.astype("int64").groupby(out["user_id"], sort=False).cumsum()
    out["session_id"] = out["user_id"].astype(str) + "-" + session_number.astype(str)
    out["session_position"] = out.groupby("session_id", sort=False).cumcount() + 1
    out["session_size"] = out.groupby("session_id", sort=False)["workout_id"].transform("size")
    return out.reindex(table.index)


def session_size_distribution(sessions: pd.DataFrame) -> pd.DataFrame:
    """Number of sessions per session size."""
    sizes = sessions.drop_duplicates("session_id")["session_size"]
    counts = sizes.value_counts().sort_index()
    out = counts.rename("sessions").rename_axis("session_size").to_frame()
    out["share"] = out["sessions"] / out["sessions"].sum() if len(out) else 0.0
    return out.reset_index()


def multi_discipline_session_share(sessions: pd.DataFrame) -> float:
    """Share of multi-workout sessions that mix more than one discipline."""
    multi = sessions[sessions["session_size"] > 1]
    if multi.empty:
        return 0.0
    disciplines = multi.groupby("session_id")["fitness_discipline"].nunique()
    return float((disciplines > 1).mean())
