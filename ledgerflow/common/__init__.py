"""Shared models, configuration and logging."""
