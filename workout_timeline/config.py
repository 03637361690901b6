"""
Configuration for the workout timeline analysis.
Holds the analysis constants and the settings groups used by the enricher,
the query layer and the report writer.
"""
import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Tuple, Union

# Analysis constants
DEFAULT_ADJACENCY_DISCIPLINES: Tuple[str, ...] = ("Cycling",)
COMPLETION_THRESHOLD: float = 1.0
DEFAULT_STACK_WINDOW_MINUTES: float = 10.0
DEFAULT_SESSION_GAP_MINUTES: float = 30.0
DEFAULT_ECDF_MAX_MINUTES: float = 120.0
DEFAULT_OUTPUT_DIR: str = "analysis_output"


@dataclass
class EnrichmentSettings:
    """Per-record and adjacency enrichment configuration."""
    adjacency_disciplines: Tuple[str, ...] = DEFAULT_ADJACENCY_DISCIPLINES  # after_completed_<x> columns
    completion_threshold: float = COMPLETION_THRESHOLD  # pct_of_class_completed needed to count as finished


@dataclass
class QuerySettings:
    """Thresholds for the report queries."""
    stack_window_minutes: float = DEFAULT_STACK_WINDOW_MINUTES  # "started within N minutes" window
    session_gap_minutes: float = DEFAULT_SESSION_GAP_MINUTES  # max gap that keeps a session open
    ecdf_max_minutes: float = DEFAULT_ECDF_MAX_MINUTES  # x-axis cap for gap distributions
    top_n_pairs: int = 10


@dataclass
class OutputSettings:
    """Report artifact configuration."""
    output_dir: str = DEFAULT_OUTPUT_DIR
    chart_dpi: int = 150
    write_parquet: bool = True
    write_workbook: bool = True
    write_charts: bool = True


class AnalysisConfig:
    """Main configuration object for a workout timeline analysis run."""

    def __init__(self):
        self.enrichment = EnrichmentSettings()
        self.queries = QuerySettings()
        self.output = OutputSettings()
        self._user_inputs: Dict[str, Any] = {}

    def _update(self, group_name: str, **kwargs) -> None:
        group = getattr(self, group_name)
        for key, value in kwargs.items():
            if not hasattr(group, key):
                raise ValueError(f"Unknown {group_name} setting: {key}")
            if key == "adjacency_disciplines":
                value = tuple(value)
            setattr(group, key, value)
            self._user_inputs[f"{group_name}_{key}"] = value

    def update_enrichment_settings(self, **kwargs):
        """Update enrichment settings dynamically."""
        self._update("enrichment", **kwargs)

    def update_query_settings(self, **kwargs):
        """Update query settings dynamically."""
        self._update("queries", **kwargs)

    def update_output_settings(self, **kwargs):
        """Update output settings dynamically."""
        self._update("output", **kwargs)

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration summary."""
        return {
            "enrichment": asdict(self.enrichment),
            "queries": asdict(self.queries),
            "output": asdict(self.output),
            "user_inputs": dict(self._user_inputs),
        }

    def validate_configuration(self) -> bool:
        """Validate settings, raising ValueError with every problem found."""
        errors = []

        if not self.enrichment.adjacency_disciplines:
            errors.append("At least one adjacency discipline is required")
        if self.enrichment.completion_threshold <= 0:
            errors.append("Completion threshold must be greater than 0")
        if self.queries.stack_window_minutes < 0:
            errors.append("Stack window must not be negative")
        if self.queries.session_gap_minutes < 0:
            errors.append("Session gap must not be negative")
        if self.queries.ecdf_max_minutes <= 0:
            errors.append("ECDF max minutes must be greater than 0")
        if self.queries.top_n_pairs <= 0:
            errors.append("top_n_pairs must be greater than 0")
        if self.output.chart_dpi <= 0:
            errors.append("Chart dpi must be greater than 0")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

        return True


def load_config_file(path: Union[str, Path], cfg: "AnalysisConfig" = None) -> "AnalysisConfig":
    """Apply JSON overrides of the form {"enrichment": {...}, "queries": {...}, "output": {...}}."""
    cfg = cfg if cfg is not None else get_config()
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    updaters = {
        "enrichment": cfg.update_enrichment_settings,
        "queries": cfg.update_query_settings,
        "output": cfg.update_output_settings,
    }
    for section, values in data.items():
        if section not in updaters:
            raise ValueError(f"Unknown config section: {section}")
        updaters[section](**values)
    return cfg


# Global configuration instance
config = AnalysisConfig()


def get_config() -> AnalysisConfig:
    """Get the global configuration instance."""
    return config


def reset_config() -> AnalysisConfig:
    """Reset configuration to defaults."""
    global config
    config = AnalysisConfig()
    return config
