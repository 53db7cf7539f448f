# src/daybook/tasks/__init__.py

"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskList, priorities, filters)
- task_store.py: in-memory collection with validation, filters and the quadrant view
"""
