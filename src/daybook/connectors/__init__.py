# src/daybook/connectors/__init__.py
