"""HTTP read API (FastAPI) over automation runs."""

from autoflow.api.runs import create_automation_router

__all__ = ["create_automation_router"]
