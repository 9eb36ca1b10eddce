from __future__ import annotations

from fastapi.testclient import TestClient

from backend.app.main import LOCAL_DEVELOPMENT_ORIGINS, _resolve_allowed_origins, app
from backend.app.security import (
    generate_password_hash,
    generate_totp_code,
    verify_password,
)


def test_password_hash_round_trip():
    stored = generate_password_hash("S3cret-pass", iterations=1000)

    assert verify_password("S3cret-pass", stored)
    assert not verify_password("wrong-pass", stored)


def test_login_requires_valid_totp(security_settings):
    with TestClient(app) as client:
        missing = client.post(
            "/auth/token",
            json={
                "username": security_settings["username"],
                "password": security_settings["password"],
            },
        )
        wrong = client.post(
            "/auth/token",
            json={
                "username": security_settings["username"],
                "password": security_settings["password"],
                "otp_code": "abcdef",
            },
        )

    assert missing.status_code == 401
    assert wrong.status_code == 401


def test_bad_password_is_rejected(security_settings):
    with TestClient(app) as client:
        response = client.post(
            "/auth/token",
            json={
                "username": security_settings["username"],
                "password": "not-the-password",
                "otp_code": generate_totp_code(security_settings["otp_secret"]),
            },
        )

    assert response.status_code == 401


def test_tampered_token_is_rejected(client):
    token = client.headers["Authorization"].split(" ", 1)[1]
    client.headers["Authorization"] = f"Bearer {token[:-2]}xx"

    assert client.get("/resellers").status_code == 401


def test_allowed_origins_accept_space_and_comma_separated_values(monkeypatch):
    monkeypatch.setenv(
        "BACKEND_ALLOWED_ORIGINS",
        "https://admin.example.com, https://ops.example.com/ https://admin.example.com",
    )

    origins = _resolve_allowed_origins()

    assert "https://admin.example.com" in origins
    assert "https://ops.example.com" in origins
    assert LOCAL_DEVELOPMENT_ORIGINS <= set(origins)
    assert len(origins) == len(set(origins))


def test_local_dev_origin_gets_cors_headers():
    client = TestClient(app)

    response = client.options(
        "/resellers",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == "http://localhost:5173"
