"""Workout timeline enrichment."""

from .timeline import enrich_workouts, occurred_after_completed

__all__ = ["enrich_workouts", "occurred_after_completed"]
