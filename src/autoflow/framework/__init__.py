"""Autoflow framework utilities (structured logging)."""
