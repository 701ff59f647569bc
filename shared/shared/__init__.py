"""Shared library: settings, database, models and schemas."""
