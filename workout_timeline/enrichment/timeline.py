"""Per-user workout timeline enrichment.

Orders each user's workouts chronologically and attaches the neighbouring
workouts' attributes, the gaps between consecutive workouts and the
"followed a completed <discipline> workout" flags.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import EnrichmentSettings
from ..models.types import (
    DAY_ORDER,
    NEIGHBOR_COLUMNS,
    EnrichmentResult,
    RecordRejection,
    after_completed_column,
    neighbor_column,
)

logger = logging.getLogger(__name__)

_ORDER_COL = "_input_order"


def _is_blank(values: pd.Series) -> pd.Series:
    return (values.astype("string").str.strip().fillna("") == "").astype(bool)


def parse_start_times(values: pd.Series) -> pd.Series:
    """Parse ISO-8601 start times into naive UTC timestamps; bad values become NaT."""
    parsed = pd.to_datetime(values.astype("object"), errors="coerce", utc=True, format="ISO8601")
    return parsed.dt.tz_localize(None)


def _validate(raw: pd.DataFrame) -> Tuple[pd.Series, pd.Series, List[RecordRejection]]:
    """Return (valid mask, parsed start times, rejections) for the raw table."""
    starts = parse_start_times(raw["workout_start_time"])
    missing_user = _is_blank(raw["user_id"])
    missing_workout = _is_blank(raw["workout_id"])
    missing_start = _is_blank(raw["workout_start_time"])
    bad_start = starts.isna() & ~missing_start

    rejections: List[RecordRejection] = []
    seen = set()
    # First failing check wins, so each rejected row is reported once
    checks = [
        (missing_user, "missing user_id", None),
        (missing_workout, "missing workout_id", None),
        (missing_start, "missing workout_start_time", None),
        (bad_start, "unparseable workout_start_time", "workout_start_time"),
    ]
    for mask, reason, value_col in checks:
        for pos in np.flatnonzero(mask.to_numpy(dtype=bool)):
            if pos in seen:
                continue
            seen.add(pos)
            row = raw.iloc[pos]
            rejections.append(
                RecordRejection(
                    row_number=int(pos),
                    reason=reason,
                    workout_id=None if pd.isna(row["workout_id"]) else str(row["workout_id"]),
                    user_id=None if pd.isna(row["user_id"]) else str(row["user_id"]),
                    value=None if value_col is None else row[value_col],
                )
            )
    rejections.sort(key=lambda r: r.row_number)
    valid = ~(missing_user | missing_workout | missing_start | bad_start)
    return valid, starts, rejections


def add_completion_fields(df: pd.DataFrame, completion_threshold: float = 1.0) -> pd.DataFrame:
    """End time, pct_of_class_completed and workout_finished; no neighbours involved.

    A null (or zero) class_length leaves pct_of_class_completed null and sets
    workout_finished to False: a free session cannot be rated as finished.
    """
    out = df.copy()
    seconds = (out["workout_length_minutes"] * 60).round()
    out["workout_end_time"] = out["workout_start_time"] + pd.to_timedelta(seconds, unit="s")

    rateable = out["class_length"].notna() & (out["class_length"] > 0)
    pct = (out["workout_length_minutes"] / out["class_length"]).where(rateable)
    out["pct_of_class_completed"] = pct.astype("Float64")
    out["workout_finished"] = (out["pct_of_class_completed"] >= completion_threshold).fillna(False).astype(bool)
    return out


def add_neighbor_fields(df: pd.DataFrame) -> pd.DataFrame:
    """previous_* / next_* columns and gaps; df must already be in per-user chronological order."""
    out = df.copy()
    for col in NEIGHBOR_COLUMNS:
        # nullable boolean so a missing neighbour is <NA>, not False
        source = out[col].astype("boolean") if col == "workout_finished" else out[col]
        grouped = source.groupby(out["user_id"], sort=False)
        out[neighbor_column("previous", col)] = grouped.shift(1)
        out[neighbor_column("next", col)] = grouped.shift(-1)

    from_prev = (out["workout_start_time"] - out["previous_workout_end_time"]).dt.total_seconds() / 60.0
    to_next = (out["next_workout_start_time"] - out["workout_end_time"]).dt.total_seconds() / 60.0
    out["gap_minutes_from_previous"] = from_prev.astype("Float64")
    out["gap_minutes_to_next"] = to_next.astype("Float64")
    return out


def occurred_after_completed(table: pd.DataFrame, discipline: str) -> pd.Series:
    """True where the user's previous workout was a finished workout of `discipline`."""
    same = table["previous_fitness_discipline"].astype("string").str.lower() == str(discipline).strip().lower()
    finished = table["previous_workout_finished"].astype("boolean")
    return (same & finished).fillna(False).astype(bool).rename(after_completed_column(discipline))


def add_calendar_fields(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    starts = out["workout_start_time"]
    out["day_of_week"] = pd.Categorical(starts.dt.day_name(), categories=DAY_ORDER, ordered=True)
    out["is_weekend"] = starts.dt.dayofweek >= 5
    out["hour_of_day"] = starts.dt.hour.astype("int64")
    return out


def enrich_workouts(raw: pd.DataFrame, settings: Optional[EnrichmentSettings] = None) -> EnrichmentResult:
    """Enrich a raw workout table with per-user adjacency fields.

    Invalid records (missing ids, missing or unparseable start time) are collected
    as RecordRejection entries and left out of the table; the remaining records
    are enriched. The input frame is not modified.

    Output rows are ordered by user_id, then workout_start_time, then input
    order, so ties on start time keep the order they had in the input.
    """
    settings = settings or EnrichmentSettings()

    valid, starts, rejections = _validate(raw)
    if rejections:
        logger.warning(f"Rejected {len(rejections)} of {len(raw)} workout records during enrichment")

    work = raw.loc[valid.to_numpy()].copy()
    work[_ORDER_COL] = np.flatnonzero(valid.to_numpy())
    work["workout_start_time"] = starts[valid.to_numpy()].to_numpy()
    work["user_id"] = work["user_id"].astype("string")
    work["workout_id"] = work["workout_id"].astype("string")

    dupes = work["workout_id"].duplicated(keep=False)
    if dupes.any():
        logger.warning(f"{int(dupes.sum())} records share a workout_id with another record; keeping all of them")

    # Stable on input order for identical start times
    work = work.sort_values(["user_id", "workout_start_time", _ORDER_COL], kind="mergesort").reset_index(drop=True)

    work = add_completion_fields(work, settings.completion_threshold)
    work = add_neighbor_fields(work)
    for discipline in settings.adjacency_disciplines:
        flag = occurred_after_completed(work, discipline)
        work[flag.name] = flag
    work = add_calendar_fields(work)

    table = work.drop(columns=[_ORDER_COL])
    logger.info(f"Enriched {len(table)} workouts across {table['user_id'].nunique()} users")
    return EnrichmentResult(table=table, rejections=rejections)
