"""Core configuration, errors and time helpers."""

from study_planner.core.config import Config, get_config
from study_planner.core.errors import StorageFault, StudyPlannerError, ValidationError

__all__ = ["Config", "get_config", "StorageFault", "StudyPlannerError", "ValidationError"]
