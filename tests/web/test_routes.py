from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from sqlalchemy import text

from campus_attendance.core.exceptions import StorageFailure

CHECKIN = {"latitude": 25.0174, "longitude": 121.5398, "accuracy": 50}


def _location(resp) -> str:
    return urlparse(resp.headers["Location"]).path


def _bind(client):
    return client.post("/bind-student", json={"studentId": "123456", "confirmName": "王小明"})


def test_unauthenticated_pages_redirect_to_login(client):
    for path in ("/", "/dashboard", "/profile", "/attendance", "/bind-student"):
        resp = client.get(path)
        assert resp.status_code == 302
        assert _location(resp) == "/login"


def test_login_redirects_to_google_with_session_state(client):
    resp = client.get("/login")

    assert resp.status_code == 302
    target = urlparse(resp.headers["Location"])
    assert target.netloc == "accounts.google.com"
    with client.session_transaction() as sess:
        assert parse_qs(target.query)["state"] == [sess["oauth_state"]]


def test_callback_with_wrong_state_is_refused(client):
    client.get("/login")

    resp = client.get("/auth/google/callback?state=forged&code=x")

    assert _location(resp) == "/login"
    assert "error" in parse_qs(urlparse(resp.headers["Location"]).query)
    with client.session_transaction() as sess:
        assert "user_id" not in sess


def test_new_user_is_sent_to_binding_and_gated(client, login):
    resp = login()
    assert _location(resp) == "/bind-student"

    gated = client.get("/attendance")
    assert gated.status_code == 302
    assert _location(gated) == "/bind-student"

    page = client.get("/bind-student")
    assert page.status_code == 200
    assert page.get_json()["binding"]["bound"] is False


def test_bind_flow(client, login):
    login()

    preview = client.post(
        "/bind-student", json={"_action": "validate", "studentId": "123456", "confirmName": "王小明"}
    )
    assert preview.get_json()["step"] == "confirm"
    assert preview.get_json()["student"]["department"] == "資訊工程系"

    bad = client.post("/bind-student", json={"studentId": "123456", "confirmName": "李四"})
    assert bad.status_code == 400
    assert bad.get_json()["error"] == "學號與姓名不匹配"

    ok = _bind(client)
    assert ok.status_code == 200
    assert ok.get_json()["binding"]["student_id"] == "123456"

    assert _location(client.get("/bind-student")) == "/dashboard"
    assert _bind(client).status_code == 409


def test_bind_rejects_non_string_fields(client, login):
    login()

    numeric_id = client.post("/bind-student", json={"studentId": 123456, "confirmName": "王小明"})
    assert numeric_id.status_code == 400
    assert numeric_id.get_json()["error"] == "學號必須是 6 位數字"

    numeric_name = client.post("/bind-student", json={"studentId": "123456", "confirmName": 12345})
    assert numeric_name.status_code == 400
    assert numeric_name.get_json()["error"] == "姓名格式錯誤"

    preview = client.post("/bind-student", json={"_action": "validate", "studentId": 12345, "confirmName": "王小明"})
    assert preview.status_code == 400
    assert preview.get_json()["step"] == "input"

    assert client.get("/bind-student").get_json()["binding"]["bound"] is False


def test_checkin_json_and_duplicate(client, login):
    login()
    _bind(client)

    resp = client.post("/attendance", json=CHECKIN, headers={"X-Forwarded-For": "203.0.113.7", "User-Agent": "pytest"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["record"]["status"] == "present"
    assert body["record"]["ip_address"] == "203.0.113.7"
    assert body["record"]["device_info"] == "pytest"
    assert body["record"]["notes"] == "GPS點名 - 準確度: 50公尺"

    again = client.post("/attendance", json={"latitude": 24.0, "longitude": 120.0, "accuracy": 5})
    assert again.status_code == 400
    assert again.get_json()["error"] == "今日已完成點名，無法重複點名"

    page = client.get("/attendance").get_json()
    assert page["has_checked_in_today"] is True
    assert page["stats"]["total_records"] == 1

    assert client.get("/api/attendance/stats").get_json()["today_records"] == 1
    assert len(client.get("/attendance/history").get_json()["records"]) == 1

    dashboard = client.get("/dashboard").get_json()
    assert dashboard["binding"]["bound"] is True
    assert dashboard["has_checked_in_today"] is True


def test_checkin_rejects_bad_location(client, login):
    login()
    _bind(client)

    resp = client.post("/attendance", data={"latitude": "abc", "longitude": "121.5"})

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "無效的地理位置資料，請重新定位"


def test_checkin_accepts_numeric_notes(client, login):
    login()
    _bind(client)

    resp = client.post("/attendance", json={**CHECKIN, "notes": 123})

    assert resp.status_code == 201
    assert resp.get_json()["record"]["notes"] == "123"


def test_admin_routes_need_admin_role(app, client, login):
    login()
    assert client.get("/admin/overview").status_code == 403

    container = app.extensions["campus_attendance"]
    with container.database.transaction() as conn:
        conn.execute(text("UPDATE users SET role = 'admin'"))
    with client.session_transaction() as sess:
        sess["role"] = "admin"

    overview = client.get("/admin/overview").get_json()
    assert overview["users"]["total_users"] == 1
    assert overview["students"]["total_students"] == 5

    _bind(client)
    record_id = client.post("/attendance", json=CHECKIN).get_json()["record"]["id"]

    assert client.post(f"/admin/attendance/{record_id}/status", json={"status": "late"}).status_code == 200
    assert client.get("/api/attendance/stats").get_json()["late_count"] == 1
    assert client.post(f"/admin/attendance/{record_id}/status", json={"status": "bogus"}).status_code == 400

    with client.session_transaction() as sess:
        user_id = sess["user_id"]
    assert client.post(f"/admin/attendance/{record_id}/delete", json={"user_id": user_id}).status_code == 200
    assert client.get("/api/attendance/stats").get_json()["total_records"] == 0


def test_storage_failure_renders_generic_error(app, client, login, monkeypatch):
    login()
    container = app.extensions["campus_attendance"]

    def broken(*args, **kwargs):
        raise StorageFailure("attendance stats failed")

    monkeypatch.setattr(container.attendance_service, "stats", broken)

    resp = client.get("/api/attendance/stats")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "error": "系統錯誤，請稍後再試"}


def test_logout_clears_session(client, login):
    login()
    assert _location(client.get("/logout")) == "/login"
    assert _location(client.get("/dashboard")) == "/login"
