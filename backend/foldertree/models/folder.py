"""Folder model: one node in a user's personal tree."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func, literal
from ..database import Base

FOLDER_NAME_MAX_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_folder_id() -> str:
    return uuid.uuid4().hex


class Folder(Base):
    """A folder owned by exactly one user.

    ``parent_id`` of None places the folder directly under the user's
    implicit Dashboard root. Rows are never hard-deleted: ``deleted_at``
    marks a folder as gone and its id stays reserved.
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_user_parent", "user_id", "parent_id"),
    )

    id = Column(String(32), primary_key=True, default=new_folder_id)
    user_id = Column(String(255), nullable=False)
    name = Column(String(FOLDER_NAME_MAX_LENGTH), nullable=False)
    parent_id = Column(String(32), ForeignKey("folders.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Folder {self.id} name={self.name!r} parent={self.parent_id}>"


# Sibling names are unique per (owner, parent) among live rows. NULL parents
# are folded to '' so root-level siblings collide too.
Index(
    "uq_folders_live_sibling_name",
    Folder.user_id,
    func.coalesce(Folder.parent_id, literal("")),
    Folder.name,
    unique=True,
    postgresql_where=Folder.deleted_at.is_(None),
    sqlite_where=Folder.deleted_at.is_(None),
)
