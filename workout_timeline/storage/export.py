from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from ..models.types import EnrichmentResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_SHEET_RE = re.compile(r"[\[\]\*\?/\\:]")


def _prepare(path: PathLike) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def export_enriched_csv(table: pd.DataFrame, path: PathLike) -> Path:
    p = _prepare(path)
    table.to_csv(p, index=False)
    logger.info(f"Wrote enriched table: {p} ({len(table)} rows)")
    return p


def export_enriched_parquet(table: pd.DataFrame, path: PathLike) -> Path:
    p = _prepare(path)
    table.to_parquet(p, engine="pyarrow", index=False)
    logger.info(f"Wrote enriched table: {p} ({len(table)} rows)")
    return p


def export_rejections_csv(result: EnrichmentResult, path: PathLike) -> Path:
    p = _prepare(path)
    result.rejections_frame().to_csv(p, index=False)
    logger.info(f"Wrote {result.rejected_count} rejected records: {p}")
    return p


def _table_frame(table: Union[pd.DataFrame, pd.Series, Dict]) -> pd.DataFrame:
    if isinstance(table, pd.DataFrame):
        return table
    if isinstance(table, pd.Series):
        return table.to_frame()
    return pd.DataFrame([table])


def export_summary_tables(tables: Dict[str, Union[pd.DataFrame, pd.Series, Dict]], output_dir: PathLike) -> List[Path]:
    """Write one CSV per summary table, named <key>.csv."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, table in tables.items():
        frame = _table_frame(table)
        # Keep meaningful indexes (pivots, matrices); drop plain RangeIndex
        keep_index = not isinstance(frame.index, pd.RangeIndex)
        p = out_dir / f"{name}.csv"
        frame.to_csv(p, index=keep_index)
        written.append(p)
    logger.info(f"Wrote {len(written)} summary tables to {out_dir}")
    return written


def _sheet_name(name: str, used: set) -> str:
    base = _SHEET_RE.sub("_", name)[:31] or "sheet"
    candidate = base
    n = 1
    while candidate in used:
        suffix = f"_{n}"
        candidate = base[: 31 - len(suffix)] + suffix
        n += 1
    used.add(candidate)
    return candidate


def export_summary_workbook(tables: Dict[str, Union[pd.DataFrame, pd.Series, Dict]], path: PathLike) -> Path:
    """Write every summary table to one Excel workbook, one sheet per table."""
    p = _prepare(path)
    used: set = set()
    with pd.ExcelWriter(p, engine="openpyxl") as writer:
        for name, table in tables.items():
            frame = _table_frame(table)
            keep_index = not isinstance(frame.index, pd.RangeIndex)
            frame.to_excel(writer, sheet_name=_sheet_name(name, used), index=keep_index)
    logger.info(f"Wrote summary workbook: {p} ({len(tables)} sheets)")
    return p
