# src/daybook/pomodoro/__init__.py
