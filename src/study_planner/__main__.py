"""Allow ``python -m study_planner``."""

from study_planner.cli.main import app

if __name__ == "__main__":
    app()
