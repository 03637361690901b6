from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib

matplotlib.use("Agg")

import pandas as pd

from .aggregation import queries
from .aggregation.sessions import assign_sessions, multi_discipline_session_share, session_size_distribution
from .config import AnalysisConfig, load_config_file, reset_config
from .enrichment.timeline import enrich_workouts
from .io.csv_loader import WorkoutLoadError, load_workouts_csv
from .plots import charts, interactive
from .storage.export import (
    export_enriched_csv,
    export_enriched_parquet,
    export_rejections_csv,
    export_summary_tables,
    export_summary_workbook,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Workout timeline analysis: what users do after finishing a class")
    parser.add_argument("--input", required=True, help="Workout log CSV")
    parser.add_argument("--output", help="Output directory for tables and charts (default from config)")
    parser.add_argument("--config", help="JSON file with enrichment/queries/output setting overrides")
    parser.add_argument("--discipline", action="append", help="Discipline to track after-completion for (repeatable)")
    parser.add_argument("--stack-window", type=float, help="Minutes after a finished class that count as stacking")
    parser.add_argument("--session-gap", type=float, help="Max minutes between workouts in one session")
    parser.add_argument("--no-charts", action="store_true", help="Skip chart rendering")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _apply_args(cfg: AnalysisConfig, args: argparse.Namespace) -> AnalysisConfig:
    if args.config:
        load_config_file(args.config, cfg)
    if args.discipline:
        disciplines: List[str] = []
        for v in args.discipline:
            disciplines.extend([d.strip() for d in v.split(",") if d.strip()])
        cfg.update_enrichment_settings(adjacency_disciplines=disciplines)
    if args.stack_window is not None:
        cfg.update_query_settings(stack_window_minutes=args.stack_window)
    if args.session_gap is not None:
        cfg.update_query_settings(session_gap_minutes=args.session_gap)
    if args.output:
        cfg.update_output_settings(output_dir=args.output)
    if args.no_charts:
        cfg.update_output_settings(write_charts=False)
    cfg.validate_configuration()
    return cfg


def build_summary_tables(table: pd.DataFrame, sessions: pd.DataFrame, cfg: AnalysisConfig) -> Dict[str, object]:
    """Every report table keyed by output name."""
    q = cfg.queries
    tables: Dict[str, object] = {
        "discipline_mix": queries.discipline_mix(table),
        "completion_by_discipline": queries.completion_rate_by_discipline(table),
        "workouts_by_day_hour": queries.workouts_by_day_and_hour(table),
        "weekend_share_by_discipline": queries.weekend_share_by_discipline(table),
        "transition_matrix": queries.transition_matrix(table, within_minutes=q.stack_window_minutes),
        "gap_summary_by_discipline": queries.gap_summary_by_discipline(table),
        "negative_gaps": queries.negative_gap_summary(table),
        "session_sizes": session_size_distribution(sessions),
    }
    for discipline in cfg.enrichment.adjacency_disciplines:
        slug = discipline.strip().lower().replace(" ", "_")
        tables[f"stacking_{slug}"] = queries.stacking_summary(table, discipline, q.stack_window_minutes)
        tables[f"next_after_{slug}"] = queries.next_discipline_after(table, discipline, within_minutes=q.stack_window_minutes)
        tables[f"class_pairs_after_{slug}"] = queries.top_class_type_pairs(
            table, discipline, q.stack_window_minutes, top_n=q.top_n_pairs
        )
    return tables


def _write_charts(table: pd.DataFrame, sessions: pd.DataFrame, cfg: AnalysisConfig, charts_dir: Path) -> None:
    q = cfg.queries
    dpi = cfg.output.chart_dpi
    disciplines = list(cfg.enrichment.adjacency_disciplines)
    charts.plot_discipline_mix(table, charts_dir / "discipline_mix.png", dpi)
    charts.plot_completion_rates(table, charts_dir / "completion_rates.png", dpi)
    charts.plot_day_hour_heatmap(table, charts_dir / "day_hour_heatmap.png", dpi)
    charts.plot_gap_ecdf(table, disciplines, q.ecdf_max_minutes, q.stack_window_minutes,
                         save_path=charts_dir / "gap_ecdf.png", dpi=dpi)
    charts.plot_transition_heatmap(table, q.stack_window_minutes, save_path=charts_dir / "transitions.png", dpi=dpi)
    charts.plot_session_sizes(sessions, charts_dir / "session_sizes.png", dpi)
    for discipline in disciplines:
        slug = discipline.strip().lower().replace(" ", "_")
        charts.plot_next_discipline_after(table, discipline, q.stack_window_minutes,
                                          save_path=charts_dir / f"next_after_{slug}.png", dpi=dpi)
    interactive.write_html(
        interactive.gap_ecdf_figure(table, disciplines, q.ecdf_max_minutes, q.stack_window_minutes),
        charts_dir / "gap_ecdf.html",
    )
    interactive.write_html(interactive.transition_heatmap_figure(table, q.stack_window_minutes), charts_dir / "transitions.html")


def _print_headline(tables: Dict[str, object], cfg: AnalysisConfig, sessions: pd.DataFrame) -> None:
    print("\nHEADLINE")
    print("=" * 40)
    for discipline in cfg.enrichment.adjacency_disciplines:
        slug = discipline.strip().lower().replace(" ", "_")
        s = tables[f"stacking_{slug}"]
        share = s["share_of_other_workouts_stacked"]
        followed = s["share_followed_within_window"]
        share_txt = f"{share:.1%}" if share is not None else "n/a"
        print(f"After a finished {discipline} class (window {s['window_minutes']:g} min):")
        print(f"  Other workouts started in the window: {s['stacked_workouts']} ({share_txt})")
        print(f"  Finished {discipline} classes followed in the window: {followed:.1%}")
        if s["top_next_discipline"]:
            print(f"  Most common next discipline: {s['top_next_discipline']}")
        if s["median_gap_minutes"] is not None:
            print(f"  Median gap: {s['median_gap_minutes']:.1f} min")
    neg = tables["negative_gaps"]
    if neg["share"] is not None:
        print(f"Negative gaps: {neg['negative_gaps']} ({neg['share']:.1%} of workouts with a previous workout), "
              f"{neg['users_affected']} users")
    print(f"Sessions mixing disciplines: {multi_discipline_session_share(sessions):.1%} of multi-workout sessions")
    print("=" * 40)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        cfg = _apply_args(reset_config(), args)
    except (ValueError, OSError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    output_dir = Path(cfg.output.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    print(f"Loading workouts: {args.input}")
    try:
        raw = load_workouts_csv(args.input)
    except WorkoutLoadError as e:
        print(f"Load failed: {e}", file=sys.stderr)
        return 1

    result = enrich_workouts(raw, cfg.enrichment)
    print(f"Enriched {result.accepted_count} workouts ({result.rejected_count} rejected)")
    if result.rejected_count:
        for reason, count in result.rejection_counts().items():
            print(f"  {reason}: {count}")
        export_rejections_csv(result, output_dir / "rejected_records.csv")

    table = result.table
    export_enriched_csv(table, output_dir / "enriched_workouts.csv")
    if cfg.output.write_parquet:
        export_enriched_parquet(table, output_dir / "enriched_workouts.parquet")

    sessions = assign_sessions(table, cfg.queries.session_gap_minutes)
    tables = build_summary_tables(table, sessions, cfg)
    written = export_summary_tables(tables, output_dir / "tables")
    print(f"Wrote {len(written)} summary tables to {output_dir / 'tables'}")
    if cfg.output.write_workbook:
        export_summary_workbook(tables, output_dir / "summary.xlsx")

    if cfg.output.write_charts:
        _write_charts(table, sessions, cfg, output_dir / "charts")
        print(f"Wrote charts to {output_dir / 'charts'}")

    _print_headline(tables, cfg, sessions)
    logger.info(f"Analysis complete: {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
