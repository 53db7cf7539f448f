# src/daybook/cli/__init__.py
