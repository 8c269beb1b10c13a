"""
Celery Task Modules

Background tasks for the pipeline:
- pipeline.py: profile processing and match refresh
"""

from app.tasks.pipeline import (
    process_profile_task,
    process_all_profiles_task,
    refresh_matches_task,
)

__all__ = [
    "process_profile_task",
    "process_all_profiles_task",
    "refresh_matches_task",
]
