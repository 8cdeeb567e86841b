"""Web API for Study Planner."""

from study_planner.web.app import create_app, run_server

__all__ = ["create_app", "run_server"]
