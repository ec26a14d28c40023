"""Typed error taxonomy for the folder tree.

Every core operation either returns its result or raises exactly one of
the exceptions below. The HTTP layer maps them to responses through
``status_code`` / ``error_code``; nothing ever inspects message text.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Folder errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    INVALID_PARENT = "INVALID_PARENT"
    INVALID_DESTINATION = "INVALID_DESTINATION"
    ILLEGAL_MOVE = "ILLEGAL_MOVE"
    CORRUPT_TREE = "CORRUPT_TREE"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"


class FolderTreeError(Exception):
    """
    Base exception for all folder tree errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class ValidationError(FolderTreeError):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class FolderNotFoundError(FolderTreeError):
    """Folder is absent, owned by someone else, or soft-deleted."""

    def __init__(self, folder_id: str):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id}
        )


class DuplicateNameError(FolderTreeError):
    """A live sibling already uses this name."""

    def __init__(self, name: str, parent_id: Optional[str]):
        super().__init__(
            f"A folder named '{name}' already exists in this location",
            ErrorCode.DUPLICATE_NAME,
            status_code=409,
            details={"name": name, "parent_id": parent_id}
        )


class InvalidParentError(FolderTreeError):
    """Parent for a new folder does not exist or is not owned by the caller."""

    def __init__(self, parent_id: str):
        super().__init__(
            f"Parent folder does not exist or is not accessible: {parent_id}",
            ErrorCode.INVALID_PARENT,
            status_code=400,
            details={"parent_id": parent_id}
        )


class InvalidDestinationError(FolderTreeError):
    """Move destination does not exist or is not owned by the caller."""

    def __init__(self, parent_id: str):
        super().__init__(
            f"Destination folder does not exist or is not accessible: {parent_id}",
            ErrorCode.INVALID_DESTINATION,
            status_code=400,
            details={"parent_id": parent_id}
        )


class IllegalMoveError(FolderTreeError):
    """Moving a folder into itself or its own subtree would create a cycle."""

    def __init__(self, folder_id: str, parent_id: str):
        if folder_id == parent_id:
            message = f"Cannot move folder into itself: {folder_id}"
        else:
            message = f"Cannot move folder {folder_id} into its own descendant {parent_id}"
        super().__init__(
            message,
            ErrorCode.ILLEGAL_MOVE,
            status_code=409,
            details={"folder_id": folder_id, "parent_id": parent_id}
        )


class CorruptTreeError(FolderTreeError):
    """A traversal hit its safety cap or revisited a node.

    Means an invariant violation already made it into storage.
    """

    def __init__(self, folder_id: str, reason: str):
        super().__init__(
            f"Folder tree is corrupt near {folder_id}: {reason}",
            ErrorCode.CORRUPT_TREE,
            status_code=500,
            details={"folder_id": folder_id, "reason": reason}
        )


class AuthenticationError(FolderTreeError):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class DatabaseError(FolderTreeError):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = type(original_error).__name__

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )
