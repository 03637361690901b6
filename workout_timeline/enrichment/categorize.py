from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

import pandas as pd

from ..models.types import Discipline

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def _clean_label(label: Optional[str]) -> Optional[str]:
    if label is None or (not isinstance(label, str) and pd.isna(label)):
        return None
    cleaned = _WHITESPACE_RE.sub(" ", str(label)).strip()
    return cleaned or None


def normalize_disciplines(labels: pd.Series) -> Tuple[pd.Series, List[str]]:
    """Return (canonical discipline labels, sorted unknown raw labels).

    Unknown labels fall back to "Other" so that typos surface as a distinct bucket
    rather than as new disciplines.
    """
    cleaned = labels.map(_clean_label)
    unique = cleaned.dropna().unique()
    mapping = {raw: Discipline.parse(raw).value for raw in unique}
    unknown = sorted(raw for raw, canon in mapping.items() if canon == Discipline.OTHER.value and raw.lower() != "other")
    canonical = cleaned.map(lambda raw: mapping.get(raw, Discipline.OTHER.value) if raw is not None else Discipline.OTHER.value)
    if unknown:
        logger.warning(f"Unknown fitness_discipline labels mapped to Other: {unknown}")
    return canonical.astype("string"), unknown


def normalize_class_types(labels: pd.Series) -> pd.Series:
    """Collapse whitespace; blank class types become null (free sessions)."""
    return labels.map(_clean_label).astype("string")
