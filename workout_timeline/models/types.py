from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

import pandas as pd


class Discipline(str, Enum):
    CYCLING = "Cycling"
    STRENGTH = "Strength"
    YOGA = "Yoga"
    STRETCHING = "Stretching"
    MEDITATION = "Meditation"
    CARDIO = "Cardio"
    RUNNING = "Running"
    WALKING = "Walking"
    BOOTCAMP = "Bootcamp"
    ROWING = "Rowing"
    OTHER = "Other"

    @classmethod
    def parse(cls, label: Optional[str]) -> "Discipline":
        """Map a raw label onto a known discipline, falling back to OTHER."""
        if label is None or (not isinstance(label, str) and pd.isna(label)):
            return cls.OTHER
        key = str(label).strip().lower().replace("_", " ")
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.OTHER


# Raw input columns, in file order after the index column
RAW_COLUMNS: List[str] = [
    "user_id",
    "workout_id",
    "fitness_discipline",
    "class_type",
    "workout_start_time",
    "workout_length_minutes",
    "class_length",
]

ID_COLUMNS: List[str] = ["user_id", "workout_id"]
NUMERIC_COLUMNS: List[str] = ["workout_length_minutes", "class_length"]

# Per-workout attributes carried onto neighbours as previous_* / next_*
NEIGHBOR_COLUMNS: List[str] = [
    "workout_id",
    "fitness_discipline",
    "class_type",
    "workout_finished",
    "workout_start_time",
    "workout_end_time",
]

DAY_ORDER: List[str] = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def neighbor_column(prefix: str, column: str) -> str:
    """previous_/next_ column name, e.g. previous_workout_finished."""
    return f"{prefix}_{column}"


def after_completed_column(discipline: str) -> str:
    """Column name for the after-completed flag of a discipline."""
    slug = str(discipline).strip().lower().replace(" ", "_")
    return f"after_completed_{slug}"


@dataclass
class WorkoutRecord:
    workout_id: str
    user_id: str
    fitness_discipline: Discipline
    workout_start_time: datetime
    workout_length_minutes: float
    class_type: Optional[str] = None
    class_length: Optional[float] = None  # None for free/unstructured sessions

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "workout_id": self.workout_id,
            "fitness_discipline": self.fitness_discipline.value,
            "class_type": self.class_type,
            "workout_start_time": self.workout_start_time.isoformat(),
            "workout_length_minutes": self.workout_length_minutes,
            "class_length": self.class_length,
        }


def records_to_frame(records: List[WorkoutRecord]) -> pd.DataFrame:
    """Build a raw workout table (same shape as the CSV loader output) from records."""
    frame = pd.DataFrame([r.to_dict() for r in records], columns=RAW_COLUMNS)
    return frame


@dataclass
class RecordRejection:
    """A raw row excluded from enrichment, with the reason it was excluded."""
    row_number: int  # 0-based position in the input table
    reason: str
    workout_id: Optional[str] = None
    user_id: Optional[str] = None
    value: Any = None  # offending raw value, when there is one


@dataclass
class EnrichmentResult:
    table: pd.DataFrame
    rejections: List[RecordRejection] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.table)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def rejections_frame(self) -> pd.DataFrame:
        columns = ["row_number", "reason", "workout_id", "user_id", "value"]
        if not self.rejections:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([asdict(r) for r in self.rejections], columns=columns)

    def rejection_counts(self) -> pd.Series:
        """Number of rejected rows per reason."""
        frame = self.rejections_frame()
        if frame.empty:
            return pd.Series(dtype="int64", name="count")
        return frame["reason"].value_counts().rename("count")
