"""Concurrent writers: opposing moves and racing inserts.

Each racing thread gets its own session (and so its own connection), the
way two API requests would.
"""

import threading

import pytest

from foldertree.database import SessionLocal
from foldertree.exceptions import DuplicateNameError, FolderTreeError
from foldertree.repositories.tree_store import TreeStore
from foldertree.services.hierarchy_service import HierarchyService
from tests.conftest import USER


class TestMoveRace:

    def test_opposing_moves_cannot_create_a_cycle(self, service, monkeypatch):
        a = service.create_folder(USER, "A")
        b = service.create_folder(USER, "B")

        # Hold each mover between its cycle check and its write until the
        # other has checked too, or for a second if the other cannot get in.
        both_checked = threading.Barrier(2)
        original = TreeStore.is_descendant

        def _check_then_wait(self, candidate_id, ancestor_id, user_id):
            result = original(self, candidate_id, ancestor_id, user_id)
            try:
                both_checked.wait(timeout=1)
            except threading.BrokenBarrierError:
                pass
            return result

        monkeypatch.setattr(TreeStore, "is_descendant", _check_then_wait)

        outcomes = []

        def _move(folder_id, parent_id):
            session = SessionLocal()
            try:
                HierarchyService(session).move_folder(USER, folder_id, parent_id)
                outcomes.append("moved")
            except FolderTreeError as e:
                outcomes.append(type(e).__name__)
            finally:
                session.close()

        threads = [
            threading.Thread(target=_move, args=(a.id, b.id)),
            threading.Thread(target=_move, args=(b.id, a.id)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert sorted(outcomes) == ["IllegalMoveError", "moved"]

        service.db.expire_all()
        parents = {f.id: f.parent_id for f in service.get_all_folders(USER)}
        assert list(parents.values()).count(None) == 1
        for folder_id in (a.id, b.id):
            assert len(service.store.ancestor_path(folder_id, USER)) in (1, 2)
        assert len(service.get_folder_tree(USER)) == 1


class TestInsertRace:
    """The sibling check passes, then a concurrent writer commits the same name."""

    @pytest.fixture()
    def stale_name_check(self, monkeypatch):
        original = TreeStore._sibling_name_taken
        calls = []

        def _stale_first_check(self, *args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return False
            return original(self, *args, **kwargs)

        monkeypatch.setattr(TreeStore, "_sibling_name_taken", _stale_first_check)
        return calls

    def test_unique_index_violation_at_root_is_duplicate_name(self, service, stale_name_check):
        service.create_folder(USER, "Reports")
        stale_name_check.clear()

        with pytest.raises(DuplicateNameError):
            service.create_folder(USER, "Reports")

        assert len(stale_name_check) == 2
        assert [f.name for f in service.get_all_folders(USER)] == ["Reports"]

    def test_unique_index_violation_under_parent_is_duplicate_name(self, service, stale_name_check):
        parent = service.create_folder(USER, "Projects")
        service.create_folder(USER, "Q3", parent.id)
        stale_name_check.clear()

        with pytest.raises(DuplicateNameError):
            service.create_folder(USER, "Q3", parent.id)

        assert [f.name for f in service.get_folder_view(USER, parent.id).contents.folders] == ["Q3"]

    def test_session_usable_after_index_violation(self, service, stale_name_check):
        service.create_folder(USER, "Reports")
        stale_name_check.clear()

        with pytest.raises(DuplicateNameError):
            service.create_folder(USER, "Reports")

        assert service.create_folder(USER, "Archive").name == "Archive"
