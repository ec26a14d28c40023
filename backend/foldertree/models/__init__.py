"""Database models."""

from .folder import Folder, FOLDER_NAME_MAX_LENGTH

__all__ = ["Folder", "FOLDER_NAME_MAX_LENGTH"]
