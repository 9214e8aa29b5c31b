"""Task utilities."""

from jobs.utils.database import create_task_engine, create_task_session_maker
from jobs.utils.stage import run_locked_stage

__all__ = [
    "create_task_engine",
    "create_task_session_maker",
    "run_locked_stage",
]
