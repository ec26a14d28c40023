"""Tests for the folder endpoints: status mapping and per-user scoping."""

from tests.conftest import auth_headers, OTHER_USER


def _create(client, name, parent_id=None, headers=None):
    return client.post("/api/folders", json={"name": name, "parent_id": parent_id}, headers=headers or {})


class TestFolderView:

    def test_root_view_empty(self, client):
        resp = client.get("/api/folders")
        assert resp.status_code == 200
        data = resp.json()
        assert data["folder"] is None
        assert data["breadcrumbs"] == [{"id": None, "name": "Dashboard", "href": "/dashboard"}]
        assert data["contents"] == {"folders": [], "files": []}
        assert data["total_folders"] == 0
        assert data["total_files"] == 0

    def test_folder_view_with_breadcrumbs(self, client):
        a = _create(client, "A").json()
        b = _create(client, "B", a["id"]).json()
        resp = client.get(f"/api/folders/{b['id']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["folder"]["id"] == b["id"]
        assert [c["name"] for c in data["breadcrumbs"]] == ["Dashboard", "A", "B"]

    def test_unknown_folder_returns_404(self, client):
        resp = client.get("/api/folders/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"] == "FOLDER_NOT_FOUND"


class TestCreate:

    def test_create_returns_201(self, client):
        resp = _create(client, "Inbox")
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Inbox"
        assert body["parent_id"] is None
        assert body["user_id"] == "anonymous"

    def test_empty_name_returns_400(self, client):
        resp = _create(client, "  ")
        assert resp.status_code == 400
        assert resp.json()["error"] == "VALIDATION_ERROR"

    def test_duplicate_returns_409(self, client):
        _create(client, "Dup")
        resp = _create(client, "Dup")
        assert resp.status_code == 409
        assert resp.json()["error"] == "DUPLICATE_NAME"

    def test_invalid_parent_returns_400(self, client):
        resp = _create(client, "Child", "missing")
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_PARENT"


class TestRenameMoveDelete:

    def test_rename(self, client):
        folder = _create(client, "Old").json()
        resp = client.patch(f"/api/folders/{folder['id']}", json={"name": "New"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "New"

    def test_move_into_descendant_returns_409(self, client):
        a = _create(client, "A").json()
        b = _create(client, "B", a["id"]).json()
        resp = client.put(f"/api/folders/{a['id']}/move", json={"parent_id": b["id"]})
        assert resp.status_code == 409
        assert resp.json()["error"] == "ILLEGAL_MOVE"

    def test_move_to_missing_destination_returns_400(self, client):
        a = _create(client, "A").json()
        resp = client.put(f"/api/folders/{a['id']}/move", json={"parent_id": "missing"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_DESTINATION"

    def test_move_to_root(self, client):
        a = _create(client, "A").json()
        b = _create(client, "B", a["id"]).json()
        resp = client.put(f"/api/folders/{b['id']}/move", json={"parent_id": None})
        assert resp.status_code == 200
        assert resp.json()["parent_id"] is None

    def test_delete_returns_204_and_hides(self, client):
        folder = _create(client, "Gone").json()
        resp = client.delete(f"/api/folders/{folder['id']}")
        assert resp.status_code == 204
        assert client.get(f"/api/folders/{folder['id']}").status_code == 404
        assert client.get("/api/folders/all").json() == {"folders": []}


class TestListings:

    def test_all_folders(self, client):
        _create(client, "b")
        _create(client, "a")
        resp = client.get("/api/folders/all")
        assert resp.status_code == 200
        assert [f["name"] for f in resp.json()["folders"]] == ["a", "b"]

    def test_tree(self, client):
        a = _create(client, "A").json()
        _create(client, "B", a["id"])
        resp = client.get("/api/folders/tree")
        assert resp.status_code == 200
        tree = resp.json()
        assert tree[0]["name"] == "A"
        assert tree[0]["children"][0]["name"] == "B"


class TestAuthentication:

    def test_missing_token_returns_401(self, client, auth_enabled):
        resp = client.get("/api/folders")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_bad_token_returns_401(self, client, auth_enabled):
        resp = client.get("/api/folders", headers={"Authorization": "Bearer not.a.token"})
        assert resp.status_code == 401

    def test_folders_scoped_to_token_subject(self, client, auth_enabled):
        mine = _create(client, "Mine", headers=auth_headers()).json()
        assert mine["user_id"] == "user-alice"

        other = auth_headers(OTHER_USER)
        assert client.get("/api/folders/all", headers=other).json() == {"folders": []}
        assert client.get(f"/api/folders/{mine['id']}", headers=other).status_code == 404
        assert client.delete(f"/api/folders/{mine['id']}", headers=other).status_code == 404
        resp = _create(client, "Child", mine["id"], headers=other)
        assert resp.json()["error"] == "INVALID_PARENT"
