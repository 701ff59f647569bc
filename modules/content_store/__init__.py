"""Ephemeral content store service."""
