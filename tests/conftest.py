import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from workout_timeline.config import reset_config
from workout_timeline.enrichment.timeline import enrich_workouts
from workout_timeline.io.csv_loader import normalize_workouts
from workout_timeline.models.types import RAW_COLUMNS


def workout(user_id, workout_id, discipline, start, length, class_length, class_type=None):
    return {
        "user_id": user_id,
        "workout_id": workout_id,
        "fitness_discipline": discipline,
        "class_type": class_type,
        "workout_start_time": start,
        "workout_length_minutes": length,
        "class_length": class_length,
    }


def make_raw(rows):
    return normalize_workouts(pd.DataFrame(rows, columns=RAW_COLUMNS))


def by_id(table, workout_id):
    return table.set_index("workout_id").loc[workout_id]


# Four users; 2024-01-01 is a Monday and 2024-01-06 a Saturday.
#   u1: finished ride, strength 5 min later, stretching 15 min after that
#   u2: unfinished ride, yoga 5 min later
#   u3: Saturday finished ride, strength 5 min later, meditation overlapping the strength class
#   u4: finished ride, strength the next day, then a free ride
ANALYSIS_ROWS = [
    workout("u1", "w1", "Cycling", "2024-01-01T09:00:00", 30, 30, "Climb"),
    workout("u1", "w2", "Strength", "2024-01-01T09:35:00", 10, 10, "Core"),
    workout("u1", "w3", "Stretching", "2024-01-01T10:00:00", 5, 5, "Full Body"),
    workout("u2", "w4", "Cycling", "2024-01-01T18:00:00", 20, 30, "Intervals"),
    workout("u2", "w5", "Yoga", "2024-01-01T18:25:00", 10, 10, "Flow"),
    workout("u3", "w6", "Cycling", "2024-01-06T07:00:00", 45, 45, "Endurance"),
    workout("u3", "w7", "Strength", "2024-01-06T07:50:00", 20, 20, "Core"),
    workout("u3", "w8", "Meditation", "2024-01-06T08:00:00", 10, 10, "Sleep"),
    workout("u4", "w9", "Cycling", "2024-01-01T12:00:00", 30, 30, "Climb"),
    workout("u4", "w10", "Strength", "2024-01-02T12:00:00", 10, 10, "Core"),
    workout("u4", "w11", "Cycling", "2024-01-03T07:00:00", 25, None, None),
]


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def analysis_raw():
    return make_raw(ANALYSIS_ROWS)


@pytest.fixture
def analysis_table(analysis_raw):
    return enrich_workouts(analysis_raw).table


@pytest.fixture
def analysis_csv(tmp_path):
    """The analysis rows written the way the export looks: leading index column, one bad timestamp."""
    rows = ANALYSIS_ROWS + [workout("u5", "w12", "Yoga", "not a timestamp", 10, 10, "Flow")]
    path = tmp_path / "workouts.csv"
    pd.DataFrame(rows, columns=RAW_COLUMNS).to_csv(path, index=True)
    return path
