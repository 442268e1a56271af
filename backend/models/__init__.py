# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.task import Task
from models.project import Project
from models.target import Target
from models.goal import Goal
from models.commitment import Commitment
from models.pomodoro_history import PomodoroHistory
from models.project_update import ProjectUpdate
from models.settings import Settings
from models.daily_log import DailyLog

__all__ = [
    "Task",
    "Project",
    "Target",
    "Goal",
    "Commitment",
    "PomodoroHistory",
    "ProjectUpdate",
    "Settings",
    "DailyLog",
]
