import base64
import json

from session_codec import COOKIE_NAME


def _session_cookie_header(resp):
    return [h for h in resp.headers.getlist("Set-Cookie") if h.startswith(f"{COOKIE_NAME}=")]


def test_welcome_without_cookie(client):
    resp = client.get("/api/welcome")
    assert resp.status_code == 200
    assert resp.get_json() == {"logged_in": False}


def test_login_sets_cookie(client, users, login):
    resp = login("admin")
    assert resp.status_code == 200
    assert resp.get_json() == {"uid": users["admin"], "name": "admin", "admin": True, "logged_in": True}

    (header,) = _session_cookie_header(resp)
    assert "HttpOnly" in header
    assert "SameSite=Strict" in header
    assert "Max-Age=3600" in header


def test_welcome_after_login(client, users, login):
    login("reader")
    resp = client.get("/api/welcome")
    assert resp.get_json() == {"uid": users["reader"], "name": "reader", "admin": False, "logged_in": True}


def test_login_wrong_password(client, login):
    resp = login("admin", "wrong")
    assert resp.status_code == 401
    assert not _session_cookie_header(resp)


def test_login_unknown_user(client, login):
    resp = login("nobody")
    assert resp.status_code == 401
    assert not _session_cookie_header(resp)


def test_login_malformed_body(client, users):
    assert client.post("/api/login", json={"user": "admin"}).status_code == 400
    assert client.post("/api/login", data="not json", content_type="text/plain").status_code == 400


def test_logout_clears_cookie(client, login):
    login("admin")
    resp = client.get("/api/logout")
    assert resp.status_code == 200
    assert resp.get_json() == {"uid": 0, "name": "", "admin": False, "logged_in": False}

    (header,) = _session_cookie_header(resp)
    assert "Max-Age=0" in header or "Expires=Thu, 01 Jan 1970" in header

    assert client.get("/api/users").status_code == 403
    assert client.get("/api/welcome").get_json() == {"logged_in": False}


def test_protected_routes_need_a_session(client, users):
    assert client.get("/api/users").status_code == 403
    assert client.get("/api/posts?pid=1").status_code == 403
    assert client.get("/api/comments").status_code == 403
    assert client.get("/api/storage/browse?q=index").status_code == 403


def _forged_cookie(uid, name="admin", admin=True, token="x.y.z"):
    forged = json.dumps({"uid": uid, "name": name, "admin": admin, "token": token})
    return base64.urlsafe_b64encode(forged.encode()).decode()


def test_unreadable_cookie_is_ignored(client, users):
    client.set_cookie(COOKIE_NAME, "garbage")
    assert client.get("/api/users").status_code == 403
    assert client.get("/api/welcome").get_json() == {"logged_in": False}


def test_cookie_fields_grant_nothing_without_a_valid_token(client, users):
    client.set_cookie(COOKIE_NAME, _forged_cookie(users["admin"]))
    assert client.get("/api/users").status_code == 403

    # welcome drops the useless cookie
    resp = client.get("/api/welcome")
    assert resp.get_json() == {"logged_in": False}
    assert _session_cookie_header(resp)


def test_token_of_deleted_user_is_rejected(client, users, login):
    login("reader")
    reader_cookie = client.get_cookie(COOKIE_NAME).value

    login("admin")
    assert client.delete(f"/api/user?uid={users['reader']}").status_code == 200

    client.set_cookie(COOKIE_NAME, reader_cookie)
    assert client.get("/api/comments?pid=1").status_code == 403
    assert client.get("/api/welcome").get_json() == {"logged_in": False}


def test_unknown_user_still_checks_a_password_hash(client, users, monkeypatch):
    from modules.accounts import routes as account_routes

    checked = []
    real_check = account_routes.check_password_hash

    def recording_check(pwhash, password):
        checked.append(pwhash)
        return real_check(pwhash, password)

    monkeypatch.setattr(account_routes, "check_password_hash", recording_check)

    assert client.post("/api/login", json={"user": "nobody", "password": "correct"}).status_code == 401
    assert checked == [account_routes.UNKNOWN_USER_HASH]
