"""Use-case layer for a user's folder hierarchy.

Validates input, enforces ownership and move legality, and assembles the
composite folder view. Structural work is delegated to ``TreeStore``.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..exceptions import (
    DatabaseError,
    FolderNotFoundError,
    FolderTreeError,
    IllegalMoveError,
    InvalidDestinationError,
    InvalidParentError,
    ValidationError,
)
from ..models.folder import Folder, FOLDER_NAME_MAX_LENGTH
from ..repositories.tree_store import TreeStore
from ..schemas.folder import (
    Breadcrumb,
    FolderContents,
    FolderDataResponse,
    FolderResponse,
    FolderTreeNode,
)

logger = logging.getLogger(__name__)


def normalize_folder_name(name: Optional[str]) -> str:
    """Trim *name* and check its length. Raises ValidationError."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Folder name cannot be empty", field="name")
    if len(cleaned) > FOLDER_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Folder name must be at most {FOLDER_NAME_MAX_LENGTH} characters",
            field="name",
        )
    return cleaned


class HierarchyService:
    """Business logic for the personal folder tree.

    Every method takes the resolved ``user_id`` explicitly.

    Public methods:
        create_folder   -- new folder under a parent or the Dashboard root
        rename_folder   -- change a folder's name
        move_folder     -- reparent a folder, refusing moves into its own subtree
        delete_folder   -- soft delete (cascades to the subtree by default)
        get_folder_view -- folder + breadcrumbs + contents + counts
        get_all_folders -- flat list of live folders
        get_folder_tree -- nested tree built from the flat list
    """

    def __init__(self, db: Session, config: Optional[Settings] = None):
        self.db = db
        self.settings = config or default_settings
        self.store = TreeStore(
            db,
            max_depth=self.settings.tree_max_depth,
            max_nodes=self.settings.tree_max_nodes,
        )

    @contextmanager
    def _unit_of_work(self, commit: bool = True) -> Iterator[None]:
        """Commit on success, roll back on any failure.

        Raw SQLAlchemy failures are surfaced as DatabaseError so callers
        only ever see the typed taxonomy.
        """
        try:
            yield
            if commit:
                self.db.commit()
        except FolderTreeError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Folder store operation failed: %s", type(e).__name__, exc_info=True)
            raise DatabaseError("Folder store operation failed", original_error=e) from e

    # --- Mutations ---

    def create_folder(self, user_id: str, name: str, parent_id: Optional[str] = None) -> Folder:
        """Create a folder. Raises ValidationError, InvalidParentError, DuplicateNameError."""
        name = normalize_folder_name(name)
        with self._unit_of_work():
            if parent_id is not None and self.store.get(parent_id, user_id) is None:
                raise InvalidParentError(parent_id)
            folder = self.store.insert(name, parent_id, user_id)

        logger.info(
            "Folder created",
            extra={"user_id": user_id, "folder_id": folder.id, "parent_id": parent_id},
        )
        return folder

    def rename_folder(self, user_id: str, folder_id: str, new_name: str) -> Folder:
        new_name = normalize_folder_name(new_name)
        with self._unit_of_work():
            if self.store.get(folder_id, user_id) is None:
                raise FolderNotFoundError(folder_id)
            folder = self.store.rename(folder_id, new_name, user_id)

        logger.info("Folder renamed", extra={"user_id": user_id, "folder_id": folder_id})
        return folder

    def move_folder(self, user_id: str, folder_id: str, new_parent_id: Optional[str] = None) -> Folder:
        """Move *folder_id* under *new_parent_id* (None = Dashboard root).

        The cycle check and the write happen in one transaction while the
        user's tree lock is held, so a concurrent move cannot slip a cycle
        in between them.
        """
        with self._unit_of_work():
            self.store.lock_user_tree(user_id)

            if self.store.get(folder_id, user_id) is None:
                raise FolderNotFoundError(folder_id)

            if new_parent_id is not None:
                if self.store.get(new_parent_id, user_id) is None:
                    raise InvalidDestinationError(new_parent_id)
                if new_parent_id == folder_id or self.store.is_descendant(new_parent_id, folder_id, user_id):
                    raise IllegalMoveError(folder_id, new_parent_id)

            folder = self.store.reparent(folder_id, new_parent_id, user_id)

        logger.info(
            "Folder moved",
            extra={"user_id": user_id, "folder_id": folder_id, "parent_id": new_parent_id},
        )
        return folder

    def delete_folder(self, user_id: str, folder_id: str) -> int:
        """Soft-delete a folder. Returns how many folders were marked deleted."""
        cascade = self.settings.cascade_soft_delete
        with self._unit_of_work():
            self.store.lock_user_tree(user_id)
            if self.store.get(folder_id, user_id) is None:
                raise FolderNotFoundError(folder_id)
            affected = self.store.soft_delete(folder_id, user_id, cascade=cascade)

        logger.info(
            "Folder deleted",
            extra={"user_id": user_id, "folder_id": folder_id, "affected": affected, "cascade": cascade},
        )
        return affected

    # --- Reads ---

    def get_folder_view(self, user_id: str, folder_id: Optional[str] = None) -> FolderDataResponse:
        """Folder page model. ``folder_id=None`` is the user's Dashboard root.

        See ``_breadcrumbs`` for the trail shown under a deleted parent.
        """
        with self._unit_of_work(commit=False):
            folder = None
            if folder_id is not None:
                folder = self.store.get(folder_id, user_id)
                if folder is None:
                    raise FolderNotFoundError(folder_id)

            breadcrumbs = self._breadcrumbs(folder_id, user_id)
            children = self.store.children(folder_id, user_id)

            contents = FolderContents(
                folders=[FolderResponse.model_validate(child) for child in children],
                files=[],
            )
            return FolderDataResponse(
                folder=FolderResponse.model_validate(folder) if folder is not None else None,
                breadcrumbs=breadcrumbs,
                contents=contents,
                total_folders=len(contents.folders),
                total_files=len(contents.files),
            )

    def get_all_folders(self, user_id: str) -> List[Folder]:
        """Every live folder of the user, ordered by name. No structural validation."""
        with self._unit_of_work(commit=False):
            return self.store.all_live(user_id)

    def get_folder_tree(self, user_id: str) -> List[FolderTreeNode]:
        """Nest the flat folder list under the Dashboard root.

        Folders whose parent is not live are unreachable and left out.
        """
        folders = self.get_all_folders(user_id)

        children_by_parent: Dict[Optional[str], List[Folder]] = {}
        for folder in folders:
            children_by_parent.setdefault(folder.parent_id, []).append(folder)

        # Explicit stack instead of recursion; each folder is emitted once,
        # so a corrupt parent chain cannot loop here.
        roots: List[FolderTreeNode] = []
        emitted: set[str] = set()
        stack = [(folder, roots) for folder in reversed(children_by_parent.get(None, []))]
        while stack:
            folder, siblings = stack.pop()
            if folder.id in emitted:
                continue
            emitted.add(folder.id)
            node = FolderTreeNode(id=folder.id, name=folder.name, parent_id=folder.parent_id)
            siblings.append(node)
            for child in reversed(children_by_parent.get(folder.id, [])):
                stack.append((child, node.children))
        return roots

    # --- Helpers ---

    def _breadcrumbs(self, folder_id: Optional[str], user_id: str) -> List[Breadcrumb]:
        """Root crumb followed by the folder's live ancestor chain.

        With ``cascade_soft_delete`` off, a folder under a deleted parent
        keeps its own ancestors only up to that parent, so its trail reads
        ``Dashboard > child`` even though ``parent_id`` is still set. The
        tree view omits such folders entirely.
        """
        crumbs = [Breadcrumb(id=None, name=self.settings.root_label, href=self.settings.root_href)]
        if folder_id is None:
            return crumbs

        for ancestor_id, name in self.store.ancestor_path(folder_id, user_id):
            crumbs.append(Breadcrumb(
                id=ancestor_id,
                name=name,
                href=f"{self.settings.root_href}/folder/{ancestor_id}",
            ))
        return crumbs
