# src/daybook/habits/__init__.py
"""Habits: models, check-in state machine, statistics and reminders."""
