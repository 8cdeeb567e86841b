"""Study Planner - tasks, habits and a Pomodoro timer over local state."""

__version__ = "0.1.0"
