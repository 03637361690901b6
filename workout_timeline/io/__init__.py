from .csv_loader import WorkoutLoadError, load_workouts_csv, normalize_workouts

__all__ = ["WorkoutLoadError", "load_workouts_csv", "normalize_workouts"]
