"""Schemas for the folder API and the composite read models."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


# --- Request bodies ---

class FolderCreate(BaseModel):
    """Create a folder. Name length is validated by the service."""
    name: str
    parent_id: Optional[str] = None  # None = Dashboard root


class FolderRename(BaseModel):
    name: str


class FolderMove(BaseModel):
    """Move a folder to a new parent."""
    parent_id: Optional[str] = None  # None = Dashboard root


# --- Responses ---

class FolderResponse(BaseModel):
    """Folder in API responses."""
    id: str
    name: str
    parent_id: Optional[str] = None
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FolderListResponse(BaseModel):
    folders: List[FolderResponse]


class Breadcrumb(BaseModel):
    """One navigation step; ``id`` is None for the Dashboard root."""
    id: Optional[str] = None
    name: str
    href: str


class FileEntry(BaseModel):
    """Placeholder for files stored in a folder. Never populated yet."""
    id: str
    name: str
    folder_id: Optional[str] = None


class FolderContents(BaseModel):
    folders: List[FolderResponse] = []
    files: List[FileEntry] = []


class FolderDataResponse(BaseModel):
    """Everything a folder page needs: the folder, its path, and what is inside it."""
    folder: Optional[FolderResponse] = None  # None = Dashboard root
    breadcrumbs: List[Breadcrumb]
    contents: FolderContents
    total_folders: int
    total_files: int


class FolderTreeNode(BaseModel):
    """A node in the nested folder tree."""
    id: str
    name: str
    parent_id: Optional[str] = None
    children: List['FolderTreeNode'] = []
