"""
Timestamp and identifier helpers.

STDLIB ONLY - NO PYDANTIC.
"""

import uuid
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a row identifier (uuid4 hex string, dashed form)."""
    return str(uuid.uuid4())

