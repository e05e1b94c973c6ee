import io
import os

import pytest


@pytest.fixture()
def root(app):
    root = app.extensions["storage_guard"].root
    os.makedirs(os.path.join(root, "docs"))
    with open(os.path.join(root, "docs", "a.txt"), "w") as fh:
        fh.write("alpha")
    return root


@pytest.fixture()
def admin(client, login, root):
    login("editor")
    return client


def _paths(resp):
    return [f["path"] for f in resp.get_json()["files"]]


def test_index(admin):
    resp = admin.get("/api/storage/browse?q=index&adapter=PUBLIC&path=PUBLIC://")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["adapter"] == "PUBLIC"
    assert body["storages"] == ["PUBLIC"]
    assert body["dirname"] == "PUBLIC://"
    assert _paths(resp) == ["PUBLIC://docs"]

    resp = admin.get("/api/storage/browse?q=index&path=PUBLIC://docs")
    assert resp.get_json()["dirname"] == "PUBLIC://docs"
    assert _paths(resp) == ["PUBLIC://docs/a.txt"]


@pytest.mark.parametrize("adapter", ["", "null", "undefined"])
def test_adapter_falls_back_to_default(admin, adapter):
    resp = admin.get(f"/api/storage/browse?q=index&adapter={adapter}")
    assert resp.get_json()["adapter"] == "PUBLIC"


def test_browse_is_admin_only(client, login, root):
    assert client.get("/api/storage/browse?q=index").status_code == 403
    login("reader")
    assert client.get("/api/storage/browse?q=index").status_code == 403
    assert client.post("/api/storage/browse?q=newfolder", json={"name": "x"}).status_code == 403
    assert not os.path.exists(os.path.join(root, "x"))


def test_unknown_action(admin):
    assert admin.get("/api/storage/browse").status_code == 400
    assert admin.get("/api/storage/browse?q=format").status_code == 400
    # actions are bound to their method
    assert admin.post("/api/storage/browse?q=index", json={}).status_code == 400
    assert admin.get("/api/storage/browse?q=delete").status_code == 400


def test_preview_and_download(admin):
    resp = admin.get("/api/storage/browse?q=preview&path=PUBLIC://docs/a.txt")
    assert resp.status_code == 200
    assert resp.data == b"alpha"
    assert resp.mimetype == "text/plain"

    resp = admin.get("/api/storage/browse?q=download&path=PUBLIC://docs/a.txt")
    assert resp.data == b"alpha"
    assert resp.headers["Content-Disposition"] == 'attachment; filename="a.txt"'

    assert admin.get("/api/storage/browse?q=preview").status_code == 400
    assert admin.get("/api/storage/browse?q=preview&path=PUBLIC://missing.txt").status_code == 404
    assert admin.get("/api/storage/browse?q=preview&path=PUBLIC://../../etc/passwd").status_code == 403


def test_subfolders(admin, root):
    os.makedirs(os.path.join(root, "docs", "sub"))
    resp = admin.get("/api/storage/browse?q=subfolders&path=PUBLIC://docs")
    assert [f["path"] for f in resp.get_json()["folders"]] == ["PUBLIC://docs/sub"]


def test_newfolder(admin, root):
    resp = admin.post("/api/storage/browse?q=newfolder&path=PUBLIC://docs", json={"name": "new"})
    assert resp.status_code == 200
    assert "PUBLIC://docs/new" in _paths(resp)
    assert os.path.isdir(os.path.join(root, "docs", "new"))

    resp = admin.post("/api/storage/browse?q=newfolder&path=PUBLIC://docs", json={"name": "new"})
    assert resp.status_code == 409


def test_newfolder_escape_is_forbidden(admin, root):
    resp = admin.post("/api/storage/browse?q=newfolder&path=../../etc", json={"name": "pwned"})
    assert resp.status_code == 403
    target = os.path.realpath(os.path.join(root, "..", "..", "etc", "pwned"))
    assert not os.path.exists(target)

    resp = admin.post("/api/storage/browse?q=newfolder&path=PUBLIC://docs", json={"name": "../../pwned"})
    assert resp.status_code == 403
    assert not os.path.exists(os.path.realpath(os.path.join(root, "..", "pwned")))


def test_rename(admin, root):
    resp = admin.post("/api/storage/browse?q=rename&path=PUBLIC://docs",
                      json={"item": "PUBLIC://docs/a.txt", "name": "b.txt"})
    assert resp.status_code == 200
    assert _paths(resp) == ["PUBLIC://docs/b.txt"]

    resp = admin.post("/api/storage/browse?q=rename&path=PUBLIC://docs",
                      json={"item": "PUBLIC://docs/b.txt", "name": "../b.txt"})
    assert resp.status_code == 403
    assert os.path.exists(os.path.join(root, "docs", "b.txt"))


def test_move(admin, root):
    os.makedirs(os.path.join(root, "archive"))
    resp = admin.post("/api/storage/browse?q=move&path=PUBLIC://archive", json={
        "item": "PUBLIC://archive",
        "items": [{"path": "PUBLIC://docs/a.txt", "type": "file"}],
    })
    assert resp.status_code == 200
    assert _paths(resp) == ["PUBLIC://archive/a.txt"]


def test_move_with_escape_moves_nothing(admin, root):
    os.makedirs(os.path.join(root, "archive"))
    resp = admin.post("/api/storage/browse?q=move&path=PUBLIC://archive", json={
        "item": "PUBLIC://archive",
        "items": [{"path": "PUBLIC://docs/a.txt"}, {"path": "PUBLIC://../../etc/passwd"}],
    })
    assert resp.status_code == 403
    assert os.path.exists(os.path.join(root, "docs", "a.txt"))
    assert os.listdir(os.path.join(root, "archive")) == []


def test_delete(admin, root):
    resp = admin.post("/api/storage/browse?q=delete&path=PUBLIC://", json={
        "items": [{"path": "PUBLIC://docs", "type": "dir"}],
    })
    assert resp.status_code == 200
    assert _paths(resp) == []
    assert os.listdir(root) == []


def test_delete_requests(admin, root):
    resp = admin.post("/api/storage/browse?q=delete&path=PUBLIC://", json={
        "items": [{"path": "PUBLIC://docs/a.txt"}, {"path": "PUBLIC://"}],
    })
    assert resp.status_code == 403
    assert os.path.exists(os.path.join(root, "docs", "a.txt"))

    resp = admin.post("/api/storage/browse?q=delete", json={"items": [{"path": "PUBLIC://nope"}]})
    assert resp.status_code == 404
    assert admin.post("/api/storage/browse?q=delete", json={"items": "docs"}).status_code == 400


def test_upload(admin, root):
    resp = admin.post("/api/storage/upload?path=PUBLIC://docs",
                      data={"file": (io.BytesIO(b"image"), "pic.png")},
                      content_type="multipart/form-data")
    assert resp.status_code == 200
    assert "PUBLIC://docs/pic.png" in _paths(resp)
    with open(os.path.join(root, "docs", "pic.png"), "rb") as fh:
        assert fh.read() == b"image"


def test_upload_with_explicit_name(admin, root):
    resp = admin.post("/api/storage/upload?path=PUBLIC://docs",
                      data={"file": (io.BytesIO(b"x"), "original.bin"), "name": "renamed.bin"},
                      content_type="multipart/form-data")
    assert resp.status_code == 200
    assert os.path.exists(os.path.join(root, "docs", "renamed.bin"))


def test_upload_escape_writes_nothing(admin, root):
    resp = admin.post("/api/storage/upload?path=PUBLIC://docs",
                      data={"file": (io.BytesIO(b"evil"), "x.txt"), "name": "../../evil.txt"},
                      content_type="multipart/form-data")
    assert resp.status_code == 403
    assert not os.path.exists(os.path.realpath(os.path.join(root, "..", "evil.txt")))

    resp = admin.post("/api/storage/upload?path=../",
                      data={"file": (io.BytesIO(b"evil"), "evil.txt")},
                      content_type="multipart/form-data")
    assert resp.status_code == 403
    assert not os.path.exists(os.path.realpath(os.path.join(root, "..", "evil.txt")))


def test_upload_without_file(admin):
    assert admin.post("/api/storage/upload", data={}, content_type="multipart/form-data").status_code == 400


def test_public_file(client, login, root):
    login("reader")
    assert client.get("/api/storage/public/docs/a.txt").status_code == 403

    login("admin")
    resp = client.get("/api/storage/public/docs/a.txt")
    assert resp.status_code == 200
    assert resp.data == b"alpha"
    assert client.get("/api/storage/public/docs/missing.txt").status_code == 404


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
def test_index_with_dangling_symlink(admin, root):
    os.symlink(os.path.join(root, "gone"), os.path.join(root, "dangling"))
    resp = admin.get("/api/storage/browse?q=index&path=PUBLIC://")
    assert resp.status_code == 200
    assert _paths(resp) == ["PUBLIC://docs", "PUBLIC://dangling"]
