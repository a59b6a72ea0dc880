"""leadrouter: priority-ordered lead distribution and assignment workflow."""

__version__ = "0.1.0"
