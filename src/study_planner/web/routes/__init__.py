"""Web routes for Study Planner."""

from study_planner.web.routes import api

__all__ = ["api"]
