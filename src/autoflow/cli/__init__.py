"""
autoflow CLI - inspect automation runs and manage the database.

Entry point: ``autoflow`` (see ``autoflow.cli.app``).
"""
