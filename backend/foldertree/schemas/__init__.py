"""Pydantic schemas for API requests and responses."""

from .folder import (
    Breadcrumb,
    FileEntry,
    FolderContents,
    FolderCreate,
    FolderDataResponse,
    FolderListResponse,
    FolderMove,
    FolderRename,
    FolderResponse,
    FolderTreeNode,
)

__all__ = [
    "Breadcrumb",
    "FileEntry",
    "FolderContents",
    "FolderCreate",
    "FolderDataResponse",
    "FolderListResponse",
    "FolderMove",
    "FolderRename",
    "FolderResponse",
    "FolderTreeNode",
]
