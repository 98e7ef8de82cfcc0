"""Routers package for workspace task management."""

from .recurrences import router as recurrences_router
from .tasks import router as tasks_router

__all__ = ["recurrences_router", "tasks_router"]
