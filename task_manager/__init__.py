"""Schema, migrations and persistence operations for a personal task manager."""

__version__ = "0.1.0"
