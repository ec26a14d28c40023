"""Folder API: folder view, flat/nested listings, create, rename, move, delete.

Every endpoint is scoped to the authenticated user. The user id comes from
``require_user`` and is handed to the service explicitly, never read from
the request body. Typed service errors are rendered by the exception
handler registered in main.py.
"""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..core.auth import require_user
from ..database import get_db
from ..schemas.folder import (
    FolderCreate,
    FolderDataResponse,
    FolderListResponse,
    FolderMove,
    FolderRename,
    FolderResponse,
    FolderTreeNode,
)
from ..services.hierarchy_service import HierarchyService

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.get("", response_model=FolderDataResponse)
def get_root_folder_data(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    """Dashboard view: top-level folders with the root breadcrumb."""
    return HierarchyService(db).get_folder_view(user_id, None)


# Static paths are registered before /{folder_id} so they are not captured by it.

@router.get("/all", response_model=FolderListResponse)
def get_all_folders(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    """Flat list of every live folder, for client-side tree building."""
    folders = HierarchyService(db).get_all_folders(user_id)
    return FolderListResponse(folders=[FolderResponse.model_validate(f) for f in folders])


@router.get("/tree", response_model=List[FolderTreeNode])
def get_folder_tree(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    """Nested folder tree rooted at the Dashboard."""
    return HierarchyService(db).get_folder_tree(user_id)


@router.get("/{folder_id}", response_model=FolderDataResponse)
def get_folder_data(
    folder_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    return HierarchyService(db).get_folder_view(user_id, folder_id)


@router.post("", response_model=FolderResponse, status_code=201)
def create_folder(
    data: FolderCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    return HierarchyService(db).create_folder(user_id, data.name, data.parent_id)


@router.patch("/{folder_id}", response_model=FolderResponse)
def rename_folder(
    folder_id: str,
    data: FolderRename,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    return HierarchyService(db).rename_folder(user_id, folder_id, data.name)


@router.put("/{folder_id}/move", response_model=FolderResponse)
def move_folder(
    folder_id: str,
    data: FolderMove,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    """Move a folder under another folder, or to the root when parent_id is null."""
    return HierarchyService(db).move_folder(user_id, folder_id, data.parent_id)


@router.delete("/{folder_id}", status_code=204)
def delete_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
):
    """Soft-delete a folder (and, by default, everything below it)."""
    HierarchyService(db).delete_folder(user_id, folder_id)
    return Response(status_code=204)
