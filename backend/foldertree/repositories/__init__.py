"""Data access repositories."""

from .tree_store import TreeStore

__all__ = ["TreeStore"]
