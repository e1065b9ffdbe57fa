"""Tests for authentication endpoints: OTP login, refresh rotation, logout, sessions."""

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from learnpath.core.devices import MAX_IP_LENGTH, MAX_USER_AGENT_LENGTH
from learnpath.models import AuditLog, OtpRecord, RateLimit, RefreshToken, User

LONG_EMAIL = "a" * 250 + "@example.com"


async def _login(client, mailer, email="learner@example.com", user_agent="pytest"):
    """Request and verify a code; the refresh cookie lands in the client jar."""
    resp = await client.post("/api/auth/otp/request", json={"email": email})
    assert resp.status_code == 200, resp.text
    resp = await client.post(
        "/api/auth/otp/verify",
        json={"email": email, "otp": mailer.sent[email.lower()]},
        headers={"User-Agent": user_agent},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def _bearer(data) -> dict[str, str]:
    return {"Authorization": f"Bearer {data['accessToken']}"}


# ---------------------------------------------------------------------------
# Health / root / envelope
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "LearnPath API" in response.json()["message"]


@pytest.mark.asyncio
async def test_unknown_route(client):
    response = await client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found", "code": "NOT_FOUND"}


@pytest.mark.asyncio
async def test_unhandled_error_envelope(client, mock_db):
    """Storage failures surface as a 500 envelope, not a traceback."""
    mock_db.execute.side_effect = RuntimeError("connection reset")

    response = await client.post("/api/auth/otp/request", json={"email": "a@example.com"})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "INTERNAL_ERROR"


@pytest.mark.asyncio
async def test_unhandled_error_hidden_in_production(client, mock_db, monkeypatch):
    from learnpath.config import settings

    monkeypatch.setattr(settings, "APP_ENV", "production")
    mock_db.execute.side_effect = RuntimeError("connection reset")

    response = await client.post("/api/auth/otp/request", json={"email": "a@example.com"})

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


@pytest.mark.asyncio
async def test_malformed_json(client):
    response = await client.post(
        "/api/auth/otp/request",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


# ---------------------------------------------------------------------------
# POST /otp/request validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"email": ""}, {"email": "   "}])
async def test_request_missing_email(client, mock_db, body):
    response = await client.post("/api/auth/otp/request", json=body)
    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_EMAIL"
    mock_db.execute.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email",
    ["plainaddress", "a@b", "a b@example.com", "@example.com", "a@b.c\nd", LONG_EMAIL],
)
async def test_request_invalid_email(client, mock_db, email):
    response = await client.post("/api/auth/otp/request", json={"email": email})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "INVALID_EMAIL"
    mock_db.execute.assert_not_called()


# ---------------------------------------------------------------------------
# POST /otp/verify validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{}, {"email": "a@example.com"}, {"otp": "123456"}, {"email": "", "otp": "123456"}],
)
async def test_verify_missing_fields(client, body):
    response = await client.post("/api/auth/otp/verify", json=body)
    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_FIELDS"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "otp",
    ["12345", "1234567", "12345a", "12 456", "123456\n", "\u0661\u0662\u0663\u0664\u0665\u0666"],
)
async def test_verify_bad_format(client, mock_db, otp):
    response = await client.post(
        "/api/auth/otp/verify", json={"email": "a@example.com", "otp": otp}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_OTP_FORMAT"
    mock_db.execute.assert_not_called()
    mock_db.scalar.assert_not_called()


@pytest.mark.asyncio
async def test_verify_oversized_email(client, mock_db):
    response = await client.post(
        "/api/auth/otp/verify", json={"email": LONG_EMAIL, "otp": "123456"}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_EMAIL"
    mock_db.execute.assert_not_called()
    mock_db.scalar.assert_not_called()


# ---------------------------------------------------------------------------
# Bearer gate
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_session_without_token(client):
    response = await client.get("/api/auth/session")
    assert response.status_code == 401
    assert response.json()["code"] == "NO_TOKEN"


@pytest.mark.asyncio
async def test_session_with_non_bearer_header(client):
    response = await client.get("/api/auth/session", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401
    assert response.json()["code"] == "NO_TOKEN"


@pytest.mark.asyncio
async def test_session_with_garbage_token(client):
    response = await client.get(
        "/api/auth/session", headers={"Authorization": "Bearer not.a.jwt"}
    )
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_optional_auth(auth_headers):
    from learnpath.api.deps import optional_auth

    user_id = uuid.uuid4()
    header = auth_headers(user_id)["Authorization"]

    current = await optional_auth(header)
    assert current.user_id == user_id
    assert current.email == "learner@example.com"
    assert await optional_auth(None) is None
    assert await optional_auth("Bearer not.a.jwt") is None


@pytest.mark.asyncio
async def test_session_user_deleted(client, mock_db, auth_headers):
    mock_db.get.return_value = None
    response = await client.get("/api/auth/session", headers=auth_headers(uuid.uuid4()))
    assert response.status_code == 401
    assert response.json()["code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_session_returns_user(client, mock_db, auth_headers):
    from datetime import datetime, timezone

    user = MagicMock(spec=User)
    user.id = uuid.uuid4()
    user.email = "learner@example.com"
    user.name = None
    user.created_at = datetime.now(timezone.utc)
    mock_db.get.return_value = user
    mock_db.scalar.return_value = 2

    response = await client.get("/api/auth/session", headers=auth_headers(user.id))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == str(user.id)
    assert data["hasCompletedOnboarding"] is True


# ---------------------------------------------------------------------------
# Refresh / logout without cookies
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_refresh_without_cookie(client):
    response = await client.post("/api/auth/token/refresh")
    assert response.status_code == 401
    assert response.json()["code"] == "NO_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_logout_without_cookie(client, mock_db):
    response = await client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    mock_db.execute.assert_not_called()


# ---------------------------------------------------------------------------
# Full flows against SQLite
# ---------------------------------------------------------------------------


class TestLoginFlow:

    @pytest.mark.asyncio
    async def test_request_response_shape(self, db_client, mailer):
        response = await db_client.post(
            "/api/auth/otp/request", json={"email": "New@Example.com"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "OTP sent to your email"
        assert body["data"]["email"] == "new@example.com"
        assert body["data"]["remainingRequests"] == 4
        assert "expiresAt" in body["data"]
        assert "resendAvailableAt" in body["data"]
        assert "new@example.com" in mailer.sent

    @pytest.mark.asyncio
    async def test_new_user_signup(self, db_client, mailer):
        await db_client.post("/api/auth/otp/request", json={"email": "new@example.com"})
        response = await db_client.post(
            "/api/auth/otp/verify",
            json={"email": "new@example.com", "otp": mailer.sent["new@example.com"]},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isNewUser"] is True
        assert data["user"]["email"] == "new@example.com"
        assert data["accessToken"]

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("refreshToken=")
        assert "HttpOnly" in cookie
        assert "Path=/api/auth" in cookie
        assert "samesite=strict" in cookie.lower()
        assert "Max-Age=604800" in cookie

    @pytest.mark.asyncio
    async def test_returning_user(self, db_client, mailer, no_cooldown):
        await _login(db_client, mailer)
        data = await _login(db_client, mailer)
        assert data["isNewUser"] is False

    @pytest.mark.asyncio
    async def test_cooldown(self, db_client, mailer):
        await db_client.post("/api/auth/otp/request", json={"email": "a@example.com"})
        response = await db_client.post("/api/auth/otp/request", json={"email": "a@example.com"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "COOLDOWN_ACTIVE"
        assert 0 < body["data"]["waitSeconds"] <= 60
        assert body["data"]["resendAvailableAt"]

    @pytest.mark.asyncio
    async def test_email_rate_limit(self, db_client, mailer, no_cooldown):
        for _ in range(5):
            response = await db_client.post(
                "/api/auth/otp/request", json={"email": "a@example.com"}
            )
            assert response.status_code == 200

        response = await db_client.post("/api/auth/otp/request", json={"email": "a@example.com"})

        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "RATE_LIMIT_EXCEEDED"
        assert body["data"]["waitSeconds"] > 0
        assert int(response.headers["Retry-After"]) == body["data"]["waitSeconds"]

    @pytest.mark.asyncio
    async def test_ip_rate_limit(self, db_client, mailer, monkeypatch):
        from learnpath.config import settings

        monkeypatch.setattr(settings, "IP_REQUEST_MAX", 2)
        for n in range(2):
            await db_client.post("/api/auth/otp/request", json={"email": f"u{n}@example.com"})

        response = await db_client.post("/api/auth/otp/request", json={"email": "u9@example.com"})
        assert response.status_code == 429
        assert "u9@example.com" not in mailer.sent

    @pytest.mark.asyncio
    async def test_wrong_code(self, db_client, mailer):
        await db_client.post("/api/auth/otp/request", json={"email": "a@example.com"})
        wrong = "000000" if mailer.sent["a@example.com"] != "000000" else "111111"

        response = await db_client.post(
            "/api/auth/otp/verify", json={"email": "a@example.com", "otp": wrong}
        )

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "INVALID_OTP"
        assert body["data"]["attemptsRemaining"] == 2
        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_unknown_email_same_as_wrong_code(self, db_client):
        response = await db_client.post(
            "/api/auth/otp/verify", json={"email": "ghost@example.com", "otp": "123456"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired verification code"

    @pytest.mark.asyncio
    async def test_oversized_client_headers_fit_columns(self, db_client, db_session, mailer):
        headers = {"X-Forwarded-For": "9" * 300, "User-Agent": "Mozilla/5.0 " + "x" * 1000}
        response = await db_client.post(
            "/api/auth/otp/request", json={"email": "a@example.com"}, headers=headers
        )
        assert response.status_code == 200
        response = await db_client.post(
            "/api/auth/otp/verify",
            json={"email": "a@example.com", "otp": mailer.sent["a@example.com"]},
            headers=headers,
        )
        assert response.status_code == 200

        record = await db_session.scalar(select(OtpRecord))
        assert len(record.ip_address) == MAX_IP_LENGTH
        assert len(record.user_agent) == MAX_USER_AGENT_LENGTH

        identifiers = (await db_session.scalars(select(RateLimit.identifier))).all()
        assert "9" * MAX_IP_LENGTH in identifiers
        assert all(len(i) <= 255 for i in identifiers)

        token = await db_session.scalar(select(RefreshToken))
        assert len(token.ip_address) == MAX_IP_LENGTH
        assert len(token.device_name) <= 255

        for entry in (await db_session.scalars(select(AuditLog))).all():
            assert entry.ip_address is None or len(entry.ip_address) <= MAX_IP_LENGTH
            assert entry.user_agent is None or len(entry.user_agent) <= MAX_USER_AGENT_LENGTH


class TestRefreshFlow:

    @pytest.mark.asyncio
    async def test_rotation(self, db_client, mailer):
        await _login(db_client, mailer)
        first_cookie = db_client.cookies["refreshToken"]

        response = await db_client.post("/api/auth/token/refresh")

        assert response.status_code == 200
        assert response.json()["data"]["accessToken"]
        assert db_client.cookies["refreshToken"] != first_cookie

    @pytest.mark.asyncio
    async def test_replayed_cookie_kills_family(self, db_client, mailer):
        await _login(db_client, mailer)
        stolen = db_client.cookies["refreshToken"]
        await db_client.post("/api/auth/token/refresh")
        current = db_client.cookies["refreshToken"]

        db_client.cookies.clear()
        db_client.cookies.set("refreshToken", stolen)
        response = await db_client.post("/api/auth/token/refresh")

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_REFRESH_TOKEN"
        assert 'refreshToken=""' in response.headers["set-cookie"]

        db_client.cookies.clear()
        db_client.cookies.set("refreshToken", current)
        response = await db_client.post("/api/auth/token/refresh")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_cookie(self, db_client):
        db_client.cookies.set("refreshToken", "forged")
        response = await db_client.post("/api/auth/token/refresh")
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_REFRESH_TOKEN"

    @pytest.mark.asyncio
    async def test_logout_revokes(self, db_client, mailer):
        await _login(db_client, mailer)
        token = db_client.cookies["refreshToken"]

        response = await db_client.post("/api/auth/logout")
        assert response.status_code == 200
        assert 'refreshToken=""' in response.headers["set-cookie"]

        db_client.cookies.clear()
        db_client.cookies.set("refreshToken", token)
        response = await db_client.post("/api/auth/token/refresh")
        assert response.status_code == 401


class TestSessions:

    @pytest.mark.asyncio
    async def test_current_session(self, db_client, mailer):
        data = await _login(db_client, mailer)

        response = await db_client.get("/api/auth/session", headers=_bearer(data))

        assert response.status_code == 200
        session = response.json()["data"]
        assert session["user"]["email"] == "learner@example.com"
        assert session["hasCompletedOnboarding"] is False

    @pytest.mark.asyncio
    async def test_lists_one_entry_per_login(self, db_client, mailer, no_cooldown):
        await _login(db_client, mailer, user_agent="first-device")
        data = await _login(db_client, mailer, user_agent="second-device")
        await db_client.post("/api/auth/token/refresh")

        response = await db_client.get("/api/auth/sessions", headers=_bearer(data))

        assert response.status_code == 200
        sessions = response.json()["data"]["sessions"]
        assert len(sessions) == 2
        assert [s["isCurrent"] for s in sessions] == [True, False]
        assert {"id", "familyId", "deviceName", "ipAddress", "createdAt", "lastUsedAt"} <= set(
            sessions[0]
        )

    @pytest.mark.asyncio
    async def test_revoke_one_session(self, db_client, mailer, no_cooldown):
        await _login(db_client, mailer)
        data = await _login(db_client, mailer)
        sessions = (
            await db_client.get("/api/auth/sessions", headers=_bearer(data))
        ).json()["data"]["sessions"]
        other = next(s for s in sessions if not s["isCurrent"])

        response = await db_client.delete(
            f"/api/auth/sessions/{other['familyId']}", headers=_bearer(data)
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Session revoked successfully"

        remaining = (
            await db_client.get("/api/auth/sessions", headers=_bearer(data))
        ).json()["data"]["sessions"]
        assert len(remaining) == 1
        assert remaining[0]["isCurrent"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("family_id", ["not-a-uuid", str(uuid.uuid4())])
    async def test_revoke_missing_session(self, db_client, mailer, family_id):
        data = await _login(db_client, mailer)
        response = await db_client.delete(
            f"/api/auth/sessions/{family_id}", headers=_bearer(data)
        )
        assert response.status_code == 404
        assert response.json()["code"] == "SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_cannot_revoke_another_users_session(self, db_client, mailer):
        victim = await _login(db_client, mailer, email="victim@example.com")
        attacker = await _login(db_client, mailer, email="attacker@example.com")
        [victim_session] = (
            await db_client.get("/api/auth/sessions", headers=_bearer(victim))
        ).json()["data"]["sessions"]

        response = await db_client.delete(
            f"/api/auth/sessions/{victim_session['familyId']}", headers=_bearer(attacker)
        )
        assert response.status_code == 404

        still_there = (
            await db_client.get("/api/auth/sessions", headers=_bearer(victim))
        ).json()["data"]["sessions"]
        assert len(still_there) == 1

    @pytest.mark.asyncio
    async def test_revoke_all_keep_current(self, db_client, mailer, no_cooldown):
        for _ in range(2):
            await _login(db_client, mailer)
        data = await _login(db_client, mailer)

        response = await db_client.delete(
            "/api/auth/sessions", params={"keepCurrent": "true"}, headers=_bearer(data)
        )

        assert response.status_code == 200
        assert response.json()["data"]["revokedCount"] == 2
        assert (await db_client.post("/api/auth/token/refresh")).status_code == 200

    @pytest.mark.asyncio
    async def test_revoke_all(self, db_client, mailer, no_cooldown):
        await _login(db_client, mailer)
        data = await _login(db_client, mailer)

        response = await db_client.delete("/api/auth/sessions", headers=_bearer(data))

        assert response.status_code == 200
        assert response.json()["data"]["revokedCount"] == 2
        assert 'refreshToken=""' in response.headers["set-cookie"]

        again = await db_client.delete("/api/auth/sessions", headers=_bearer(data))
        assert again.json()["data"]["revokedCount"] == 0
