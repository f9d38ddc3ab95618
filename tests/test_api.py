"""
Tests for the HTTP layer.

Tests:
- end-to-end check-in scenarios
- error envelope (code / kind) per failure
- role checks and confirmation for destructive operations
- Idempotency-Key replay
"""
from conftest import auth_headers

BASE = "/api/v1/attendance"


def _create(client, headers, **overrides):
    body = {"event_name": "Sunday Service", "points": 50, "valid_for_seconds": 2 * 60 * 60}
    body.update(overrides)
    return client.post(f"{BASE}/sessions", json=body, headers=headers)


def _redeem(client, session, attendee, code=None):
    return client.post(
        f"{BASE}/redeem",
        json={"code": code if code is not None else session["code"], "session_id": session["id"]},
        headers=auth_headers(attendee),
    )


class TestScenarios:
    def test_sunday_service_flow(self, client, organizer_headers):
        resp = _create(client, organizer_headers)
        assert resp.status_code == 201
        session = resp.json()
        assert session["effective_status"] == "active"
        assert session["seconds_remaining"] == 7200

        active = client.get(f"{BASE}/active", headers=auth_headers("attendee-a")).json()
        assert active["session"]["id"] == session["id"]
        assert "code" not in active["session"]

        first = _redeem(client, session, "attendee-a")
        assert first.status_code == 200
        assert first.json()["points"] == 50
        assert first.json()["credited"] is True

        again = _redeem(client, session, "attendee-a")
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_REDEEMED"
        assert again.json()["kind"] == "already_checked_in"

        assert client.post(f"{BASE}/sessions/{session['id']}/pause", headers=organizer_headers).status_code == 200
        paused = _redeem(client, session, "attendee-b")
        assert paused.json()["code"] == "SESSION_NOT_ACTIVE"

        assert client.post(f"{BASE}/sessions/{session['id']}/resume", headers=organizer_headers).status_code == 200
        assert _redeem(client, session, "attendee-b").status_code == 200

        stats = client.get(f"{BASE}/sessions/{session['id']}/stats", headers=organizer_headers).json()
        assert stats == {"session_id": session["id"], "redemptions": 2, "points_awarded": 100, "pending_credits": 0}

    def test_short_session_expires(self, client, organizer_headers, clock):
        session = _create(client, organizer_headers, valid_for_seconds=1).json()
        clock.advance(seconds=2)

        resp = _redeem(client, session, "attendee-a")

        assert resp.status_code == 410
        assert resp.json()["code"] == "SESSION_EXPIRED"
        assert resp.json()["kind"] == "get_new_code"
        assert client.get(f"{BASE}/active", headers=auth_headers("attendee-a")).json() == {"session": None}

    def test_create_requires_explicit_close(self, client, organizer_headers):
        first = _create(client, organizer_headers).json()

        blocked = _create(client, organizer_headers, event_name="Evening")
        assert blocked.status_code == 409
        assert blocked.json()["code"] == "ACTIVE_SESSION_EXISTS"
        assert blocked.json()["details"]["session_id"] == first["id"]

        closed = client.post(f"{BASE}/sessions/{first['id']}/close", headers=organizer_headers)
        assert closed.json()["status"] == "finished"
        assert _create(client, organizer_headers, event_name="Evening").status_code == 201


class TestErrors:
    def test_wrong_code(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        resp = _redeem(client, session, "attendee-a", code="WRONG1")
        assert resp.status_code == 400
        assert resp.json()["kind"] == "wrong_code"

    def test_unknown_session(self, client):
        resp = client.post(f"{BASE}/redeem", json={"code": "ABCDEF", "session_id": "missing"},
                           headers=auth_headers("attendee-a"))
        assert resp.status_code == 404
        assert resp.json()["code"] == "SESSION_NOT_FOUND"

    def test_invalid_create(self, client, organizer_headers):
        resp = _create(client, organizer_headers, event_name="", points=0)
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_INPUT"
        assert set(resp.json()["details"]) == {"event_name", "points"}

    def test_invalid_transition(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        resp = client.post(f"{BASE}/sessions/{session['id']}/resume", headers=organizer_headers)
        assert resp.status_code == 409
        assert resp.json()["code"] == "INVALID_TRANSITION"


class TestAccess:
    def test_missing_token(self, client):
        assert client.get(f"{BASE}/active").status_code == 401

    def test_member_cannot_manage_sessions(self, client):
        assert _create(client, auth_headers("attendee-a")).status_code == 403

    def test_clear_history_needs_admin_and_confirmation(self, client, organizer_headers, admin_headers):
        _create(client, organizer_headers)

        assert client.delete(f"{BASE}/sessions?confirm=true", headers=organizer_headers).status_code == 403
        assert client.delete(f"{BASE}/sessions", headers=admin_headers).status_code == 400

        resp = client.delete(f"{BASE}/sessions?confirm=true", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"sessions_deleted": 1, "redemptions_deleted": 0}
        assert client.get(f"{BASE}/sessions", headers=organizer_headers).json() == []


class TestOrganizerConsole:
    def test_qr_payload(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        qr = client.get(f"{BASE}/sessions/{session['id']}/qr", headers=organizer_headers).json()
        assert qr == {"code": session["code"], "session_id": session["id"], "points": 50}

    def test_qr_png(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        resp = client.get(f"{BASE}/sessions/{session['id']}/qr.png", headers=organizer_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content.startswith(b"\x89PNG")

    def test_history_and_redemptions(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        _redeem(client, session, "attendee-a")

        history = client.get(f"{BASE}/sessions", headers=organizer_headers).json()
        assert [s["id"] for s in history] == [session["id"]]

        rows = client.get(f"{BASE}/sessions/{session['id']}/redemptions", headers=organizer_headers).json()
        assert [r["attendee_id"] for r in rows] == ["attendee-a"]

    def test_reconcile_endpoint(self, client, admin_headers):
        resp = client.post(f"{BASE}/credits/reconcile", headers=admin_headers)
        assert resp.json() == {"attempted": 0, "credited": 0, "failed": 0}


class TestIdempotency:
    def test_retried_redeem_replays_response(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        headers = {**auth_headers("attendee-a"), "Idempotency-Key": "scan-123"}
        body = {"code": session["code"], "session_id": session["id"]}

        first = client.post(f"{BASE}/redeem", json=body, headers=headers)
        retry = client.post(f"{BASE}/redeem", json=body, headers=headers)

        assert first.status_code == retry.status_code == 200
        assert retry.json() == first.json()
        assert retry.headers.get("Idempotent-Replay") == "true"

    def test_same_key_with_different_body_is_not_replayed(self, client, organizer_headers):
        session = _create(client, organizer_headers).json()
        headers = {**auth_headers("attendee-a"), "Idempotency-Key": "scan-456"}
        wrong = "ZZZZZZ" if session["code"] != "ZZZZZZ" else "YYYYYY"

        rejected = client.post(f"{BASE}/redeem", json={"code": wrong, "session_id": session["id"]}, headers=headers)
        accepted = client.post(f"{BASE}/redeem", json={"code": session["code"], "session_id": session["id"]},
                               headers=headers)

        assert rejected.status_code == 400
        assert rejected.json()["code"] == "CODE_MISMATCH"
        assert accepted.status_code == 200
        assert accepted.json()["credited"] is True
        assert "Idempotent-Replay" not in accepted.headers


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/api/v1/health").json() == {"status": "ok", "database": "ok"}
