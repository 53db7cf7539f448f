# src/daybook/storage/__init__.py
"""Persistence gateways (JSON files, SQLite) and the shared record codec."""
