# src/daybook/core/__init__.py
