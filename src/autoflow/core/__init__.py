"""
Autoflow core primitives.

- ``errors``     — typed error hierarchy with retry semantics
- ``settings``   — ``AUTOFLOW_*`` environment configuration
- ``timestamps`` — UTC clock and id helpers
- ``orm``        — SQLAlchemy tables, engine and session factory
"""
