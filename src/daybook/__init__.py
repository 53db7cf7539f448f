# src/daybook/__init__.py

"""Daybook: tasks, habits, an Eisenhower matrix and a Pomodoro timer for one person."""

__version__ = "0.1.0"
