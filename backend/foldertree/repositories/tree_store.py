"""Tree store: persisted folder records and every structural query over them.

All reads and writes are scoped to one ``user_id``; a folder owned by
someone else is indistinguishable from a missing one. Traversals are
iterative and capped (depth and node count) so a corrupt, cyclic
parent chain surfaces as ``CorruptTreeError`` instead of looping.

Writes run inside the caller's session transaction and are flushed,
not committed. ``HierarchyService`` owns commit/rollback.
"""

import hashlib
import logging
from typing import Iterator, List, Optional, Sequence, Tuple, Type

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from ..core.config import settings
from ..exceptions import (
    CorruptTreeError,
    DatabaseError,
    DuplicateNameError,
    FolderNotFoundError,
    FolderTreeError,
    InvalidDestinationError,
    InvalidParentError,
)
from ..models.folder import Folder, new_folder_id, utcnow

logger = logging.getLogger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit.
_IN_CLAUSE_CHUNK = 500


def _chunks(ids: Sequence[str], size: int = _IN_CLAUSE_CHUNK) -> Iterator[Sequence[str]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class TreeStore:
    """Folder persistence plus ancestor/subtree traversal for a single owner at a time.

    Public methods:
        get / get_including_deleted -- single folder lookup (None when absent)
        children        -- live children of a folder or of the Dashboard root
        all_live        -- flat scan of a user's live folders
        ancestor_path   -- root-first (id, name) chain, capped
        is_descendant   -- subtree membership, capped
        subtree_ids     -- folder plus every live descendant, capped
        insert / rename / reparent / soft_delete -- structural writes
        lock_user_tree  -- per-user write lock for check-then-write sequences
    """

    def __init__(
        self,
        db: Session,
        max_depth: Optional[int] = None,
        max_nodes: Optional[int] = None,
    ):
        self.db = db
        self.max_depth = max_depth or settings.tree_max_depth
        self.max_nodes = max_nodes or settings.tree_max_nodes

    # --- Reads ---

    def _live_query(self, user_id: str) -> Query:
        return self.db.query(Folder).filter(
            Folder.user_id == user_id,
            Folder.deleted_at.is_(None),
        )

    def get(self, folder_id: str, user_id: str) -> Optional[Folder]:
        return self._live_query(user_id).filter(Folder.id == folder_id).first()

    def get_including_deleted(self, folder_id: str, user_id: str) -> Optional[Folder]:
        """Audit lookup that ignores ``deleted_at``. Not reachable from the API."""
        return (
            self.db.query(Folder)
            .filter(Folder.id == folder_id, Folder.user_id == user_id)
            .first()
        )

    def children(self, parent_id: Optional[str], user_id: str) -> List[Folder]:
        """Live children ordered by name (database default collation)."""
        query = self._live_query(user_id)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        return query.order_by(Folder.name).all()

    def all_live(self, user_id: str) -> List[Folder]:
        return self._live_query(user_id).order_by(Folder.name, Folder.id).all()

    def ancestor_path(self, folder_id: str, user_id: str) -> List[Tuple[str, str]]:
        """Return ``[(id, name), ...]`` from the top-most ancestor down to *folder_id*.

        Walks parent links one row at a time. A chain longer than
        ``max_depth`` or one that revisits a folder raises CorruptTreeError.
        A parent that is no longer live ends the walk early; that only
        happens when soft deletes are configured not to cascade.
        """
        current = self.get(folder_id, user_id)
        if current is None:
            raise FolderNotFoundError(folder_id)

        path: List[Tuple[str, str]] = []
        seen: set[str] = set()
        while True:
            if current.id in seen:
                raise self._corrupt(folder_id, f"parent chain revisits {current.id}")
            if len(path) >= self.max_depth:
                raise self._corrupt(folder_id, f"parent chain deeper than {self.max_depth}")
            seen.add(current.id)
            path.append((current.id, current.name))

            if current.parent_id is None:
                break
            parent = self.get(current.parent_id, user_id)
            if parent is None:
                logger.warning(
                    "Ancestor walk stopped at a parent that is not live",
                    extra={"folder_id": folder_id, "parent_id": current.parent_id, "user_id": user_id},
                )
                break
            current = parent

        path.reverse()
        return path

    def is_descendant(self, candidate_id: str, ancestor_id: str, user_id: str) -> bool:
        """True if *candidate_id* is *ancestor_id* or lies anywhere below it."""
        if candidate_id == ancestor_id:
            return True
        return any(fid == candidate_id for fid in self._walk_subtree(ancestor_id, user_id))

    def subtree_ids(self, folder_id: str, user_id: str) -> List[str]:
        """*folder_id* followed by all its live descendants, level by level."""
        return list(self._walk_subtree(folder_id, user_id))

    def _walk_subtree(self, root_id: str, user_id: str) -> Iterator[str]:
        """Breadth-first over live children, one query per level (per chunk).

        Yields lazily so membership checks can stop early.
        """
        visited = {root_id}
        yield root_id

        frontier = [root_id]
        depth = 1
        while frontier:
            if depth >= self.max_depth:
                # Only reached when the level below max_depth still has children.
                if self._has_live_children(frontier, user_id):
                    raise self._corrupt(root_id, f"subtree deeper than {self.max_depth}")
                return

            next_frontier: List[str] = []
            for chunk in _chunks(frontier):
                rows = (
                    self.db.query(Folder.id)
                    .filter(
                        Folder.user_id == user_id,
                        Folder.deleted_at.is_(None),
                        Folder.parent_id.in_(chunk),
                    )
                    .all()
                )
                for (child_id,) in rows:
                    if child_id in visited:
                        raise self._corrupt(root_id, f"subtree revisits {child_id}")
                    visited.add(child_id)
                    if len(visited) > self.max_nodes:
                        raise self._corrupt(root_id, f"subtree larger than {self.max_nodes} folders")
                    next_frontier.append(child_id)
                    yield child_id

            frontier = next_frontier
            depth += 1

    def _has_live_children(self, parent_ids: Sequence[str], user_id: str) -> bool:
        for chunk in _chunks(parent_ids):
            hit = (
                self.db.query(Folder.id)
                .filter(
                    Folder.user_id == user_id,
                    Folder.deleted_at.is_(None),
                    Folder.parent_id.in_(chunk),
                )
                .first()
            )
            if hit is not None:
                return True
        return False

    def _sibling_name_taken(
        self,
        user_id: str,
        parent_id: Optional[str],
        name: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        query = self._live_query(user_id).filter(Folder.name == name)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        if exclude_id is not None:
            query = query.filter(Folder.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _corrupt(folder_id: str, reason: str) -> CorruptTreeError:
        logger.critical(
            "Folder tree invariant violated",
            extra={"folder_id": folder_id, "reason": reason},
        )
        return CorruptTreeError(folder_id, reason)

    # --- Writes ---

    def insert(self, name: str, parent_id: Optional[str], user_id: str) -> Folder:
        if parent_id is not None and self.get(parent_id, user_id) is None:
            raise InvalidParentError(parent_id)
        if self._sibling_name_taken(user_id, parent_id, name):
            raise DuplicateNameError(name, parent_id)

        now = utcnow()
        folder = Folder(
            id=new_folder_id(),
            user_id=user_id,
            name=name,
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(folder)
        self._flush(user_id, name, parent_id, None, InvalidParentError)
        self.db.refresh(folder)
        return folder

    def rename(self, folder_id: str, new_name: str, user_id: str) -> Folder:
        folder = self.get(folder_id, user_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)
        if self._sibling_name_taken(user_id, folder.parent_id, new_name, exclude_id=folder.id):
            raise DuplicateNameError(new_name, folder.parent_id)

        parent_id = folder.parent_id
        folder.name = new_name
        folder.updated_at = utcnow()
        self._flush(user_id, new_name, parent_id, folder_id, InvalidParentError)
        self.db.refresh(folder)
        return folder

    def reparent(self, folder_id: str, new_parent_id: Optional[str], user_id: str) -> Folder:
        """Point *folder_id* at a new parent (None = Dashboard root).

        Checks existence and ownership of both ends plus name uniqueness at
        the destination. Cycle checks are the caller's responsibility.
        """
        folder = self.get(folder_id, user_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)
        if new_parent_id is not None and self.get(new_parent_id, user_id) is None:
            raise InvalidDestinationError(new_parent_id)
        if self._sibling_name_taken(user_id, new_parent_id, folder.name, exclude_id=folder.id):
            raise DuplicateNameError(folder.name, new_parent_id)

        name = folder.name
        folder.parent_id = new_parent_id
        folder.updated_at = utcnow()
        self._flush(user_id, name, new_parent_id, folder_id, InvalidDestinationError)
        self.db.refresh(folder)
        return folder

    def soft_delete(self, folder_id: str, user_id: str, cascade: bool = True) -> int:
        """Mark *folder_id* (and, when cascading, its live subtree) deleted.

        Returns the number of folders that were deleted. All of them share
        one ``deleted_at`` timestamp.
        """
        folder = self.get(folder_id, user_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)

        ids = self.subtree_ids(folder_id, user_id) if cascade else [folder.id]
        now = utcnow()
        affected = 0
        for chunk in _chunks(ids):
            affected += (
                self.db.query(Folder)
                .filter(
                    Folder.user_id == user_id,
                    Folder.id.in_(chunk),
                    Folder.deleted_at.is_(None),
                )
                .update(
                    {Folder.deleted_at: now, Folder.updated_at: now},
                    synchronize_session=False,
                )
            )
        self.db.expire_all()
        return affected

    def lock_user_tree(self, user_id: str) -> None:
        """Serialize structural check-then-write sequences for one user.

        Must be the first statement of the transaction it guards. Held until
        commit or rollback.

        PostgreSQL: advisory lock keyed on the user id.

        SQLite: pysqlite only opens a transaction in front of a write, so the
        reads that follow would otherwise run outside any transaction. A
        write that matches no rows opens it and takes the database's
        RESERVED lock, which coarsens the lock to every user; other writers
        wait out the busy timeout behind it.
        """
        if self.db.get_bind().dialect.name != "postgresql":
            self.db.execute(text("UPDATE folders SET updated_at = updated_at WHERE 1 = 0"))
            return
        digest = hashlib.sha256(user_id.encode()).digest()
        key = int.from_bytes(digest[:8], "big", signed=True)
        self.db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})

    def _flush(
        self,
        user_id: str,
        name: str,
        parent_id: Optional[str],
        exclude_id: Optional[str],
        parent_error: Type[FolderTreeError],
    ) -> None:
        """Flush pending writes; reclassify constraint violations from concurrent writers.

        The session is rolled back first, then the conflict is identified by
        re-reading current state.
        """
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            if self._sibling_name_taken(user_id, parent_id, name, exclude_id=exclude_id):
                raise DuplicateNameError(name, parent_id) from e
            if parent_id is not None and self.get(parent_id, user_id) is None:
                raise parent_error(parent_id) from e
            raise DatabaseError("Folder write violated a storage constraint", original_error=e) from e
