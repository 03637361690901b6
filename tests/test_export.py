import pandas as pd
from openpyxl import load_workbook

from conftest import make_raw, workout
from workout_timeline.aggregation import queries
from workout_timeline.enrichment.timeline import enrich_workouts
from workout_timeline.storage.export import (
    export_enriched_csv,
    export_enriched_parquet,
    export_rejections_csv,
    export_summary_tables,
    export_summary_workbook,
)


def test_enriched_csv_and_parquet(tmp_path, analysis_table):
    csv_path = export_enriched_csv(analysis_table, tmp_path / "out" / "enriched.csv")
    parquet_path = export_enriched_parquet(analysis_table, tmp_path / "out" / "enriched.parquet")

    from_csv = pd.read_csv(csv_path)
    assert len(from_csv) == len(analysis_table)
    assert "gap_minutes_from_previous" in from_csv.columns

    from_parquet = pd.read_parquet(parquet_path)
    assert list(from_parquet.columns) == list(analysis_table.columns)
    assert from_parquet["workout_id"].tolist() == analysis_table["workout_id"].tolist()
    assert from_parquet["gap_minutes_from_previous"].isna().sum() == 4


def test_rejections_csv(tmp_path):
    result = enrich_workouts(
        make_raw(
            [
                workout("u1", "w1", "Yoga", "2024-01-01T09:00:00", 10, 10),
                workout("u1", "w2", "Yoga", "garbage", 10, 10),
            ]
        )
    )
    path = export_rejections_csv(result, tmp_path / "rejected.csv")
    rejected = pd.read_csv(path)
    assert rejected["workout_id"].tolist() == ["w2"]
    assert rejected["reason"].tolist() == ["unparseable workout_start_time"]


def test_rejections_csv_without_rejections(tmp_path, analysis_raw):
    result = enrich_workouts(analysis_raw)
    rejected = pd.read_csv(export_rejections_csv(result, tmp_path / "rejected.csv"))
    assert rejected.empty
    assert "reason" in rejected.columns


def test_summary_tables_and_workbook(tmp_path, analysis_table):
    tables = {
        "discipline_mix": queries.discipline_mix(analysis_table),
        "transition_matrix": queries.transition_matrix(analysis_table),
        "negative_gaps": queries.negative_gap_summary(analysis_table),
    }
    written = export_summary_tables(tables, tmp_path / "tables")
    assert sorted(p.name for p in written) == ["discipline_mix.csv", "negative_gaps.csv", "transition_matrix.csv"]

    matrix = pd.read_csv(tmp_path / "tables" / "transition_matrix.csv", index_col=0)
    assert matrix.loc["Cycling", "Strength"] == 3
    negative = pd.read_csv(tmp_path / "tables" / "negative_gaps.csv")
    assert negative.loc[0, "negative_gaps"] == 1

    book_path = export_summary_workbook(tables, tmp_path / "summary.xlsx")
    book = load_workbook(book_path)
    assert book.sheetnames == ["discipline_mix", "transition_matrix", "negative_gaps"]


def test_workbook_sheet_names_are_valid(tmp_path, analysis_table):
    mix = queries.discipline_mix(analysis_table)
    tables = {"a/b": mix, "x" * 40: mix, "x" * 41: mix}
    book = load_workbook(export_summary_workbook(tables, tmp_path / "summary.xlsx"))
    assert book.sheetnames[0] == "a_b"
    assert all(len(name) <= 31 for name in book.sheetnames)
    assert len(set(book.sheetnames)) == 3
