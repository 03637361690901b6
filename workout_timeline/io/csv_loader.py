from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

import pandas as pd

from ..enrichment.categorize import normalize_class_types, normalize_disciplines
from ..models.types import ID_COLUMNS, NUMERIC_COLUMNS, RAW_COLUMNS

logger = logging.getLogger(__name__)

_INDEX_COLUMN_NAMES = {"", "index", "unnamed: 0"}


class WorkoutLoadError(ValueError):
    """The workout file cannot be loaded; the whole run must stop."""


def _index_columns(columns: List[str]) -> List[str]:
    return [c for c in columns if str(c).strip().lower() in _INDEX_COLUMN_NAMES or str(c).startswith("Unnamed:")]


def normalize_workouts(frame: pd.DataFrame) -> pd.DataFrame:
    """Type cleanup for a raw workout table.

    Drops the row-index column, checks that every required column exists, coerces
    ids and labels to pandas string dtype and the duration columns to float.
    workout_start_time is left as raw text; parsing it is a per-record concern of
    the enricher.
    """
    df = frame.drop(columns=_index_columns(list(frame.columns)))

    missing = [c for c in RAW_COLUMNS if c not in df.columns]
    if missing:
        raise WorkoutLoadError(f"Missing required columns: {', '.join(missing)}")

    df = df[RAW_COLUMNS].copy()

    for col in ID_COLUMNS:
        df[col] = df[col].map(lambda v: None if pd.isna(v) or str(v).strip() == "" else str(v).strip()).astype("string")

    for col in NUMERIC_COLUMNS:
        converted = pd.to_numeric(df[col], errors="coerce")
        bad = converted.isna() & df[col].notna() & (df[col].astype(str).str.strip() != "")
        if bad.any():
            examples = df.loc[bad, col].astype(str).unique()[:5].tolist()
            raise WorkoutLoadError(f"Column {col} has non-numeric values, e.g. {examples}")
        df[col] = converted.astype("float64")

    df["fitness_discipline"], _unknown = normalize_disciplines(df["fitness_discipline"])
    df["class_type"] = normalize_class_types(df["class_type"])
    df["workout_start_time"] = df["workout_start_time"].astype("string").str.strip()
    return df.reset_index(drop=True)


def load_workouts_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Load the workout log CSV into a cleaned raw workout table.

    Raises WorkoutLoadError for a missing file, an unreadable CSV, missing columns
    or non-numeric duration columns. There is no partial-load recovery here.
    """
    p = Path(path)
    if not p.is_file():
        raise WorkoutLoadError(f"Workout file not found: {p}")

    try:
        raw = pd.read_csv(p, dtype={"user_id": str, "workout_id": str, "workout_start_time": str}, keep_default_na=True)
    except pd.errors.EmptyDataError as e:
        raise WorkoutLoadError(f"Workout file is empty: {p}") from e
    except pd.errors.ParserError as e:
        raise WorkoutLoadError(f"Could not parse workout file {p}: {e}") from e
    except UnicodeDecodeError as e:
        raise WorkoutLoadError(f"Workout file is not valid text: {p}") from e

    df = normalize_workouts(raw)
    logger.info(f"Loaded {len(df)} workouts for {df['user_id'].nunique()} users from {p}")
    return df
