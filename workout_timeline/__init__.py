"""Workout timeline analysis: what users do after they finish a class.

Modules:
- io: Loading the workout log CSV into a pandas DataFrame
- models: Typed domain objects and column names
- enrichment: Per-user previous/next workout enrichment
- aggregation: Report queries and workout sessions
- storage: Export helpers
- plots: Static and interactive charts
- cli: Command line interface
"""

__version__ = "1.0.0"

__all__ = [
    "io",
    "models",
    "enrichment",
    "aggregation",
    "storage",
    "plots",
    "cli",
]
