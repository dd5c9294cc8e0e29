"""Core models, settings, errors and schema migration."""
