"""Business logic services."""

from .hierarchy_service import HierarchyService

__all__ = ["HierarchyService"]
