"""Admin authentication: PBKDF2 password hashes, optional TOTP and signed bearer tokens."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
import secrets
import struct
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

ADMIN_USERNAME_ENV = "ADMIN_USERNAME"
ADMIN_PASSWORD_HASH_ENV = "ADMIN_PASSWORD_HASH"
ADMIN_JWT_SECRET_ENV = "ADMIN_JWT_SECRET"
ADMIN_TOTP_SECRET_ENV = "ADMIN_TOTP_SECRET"
ACCESS_TOKEN_EXPIRE_MINUTES_ENV = "ACCESS_TOKEN_EXPIRE_MINUTES"

PBKDF2_DEFAULT_ITERATIONS = 390_000
DEFAULT_TOKEN_LIFETIME = timedelta(minutes=30)
TOTP_PERIOD = 30
TOTP_DIGITS = 6
TOTP_DRIFT_STEPS = (-1, 0, 1)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class SecurityConfigurationError(RuntimeError):
    """Raised when mandatory security settings are missing or invalid."""


@dataclass
class AdminIdentity:
    """The authenticated administrator; its username is recorded on reviews and runs."""

    username: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise SecurityConfigurationError(f"Environment variable '{name}' is required")
    return value


def _decode_base32(secret: str) -> bytes:
    normalized = secret.strip().upper()
    normalized += "=" * (-len(normalized) % 8)
    return base64.b32decode(normalized, casefold=True)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


# Password hashes


def generate_password_hash(password: str, *, iterations: int = PBKDF2_DEFAULT_ITERATIONS) -> str:
    """Return ``iterations$salt$digest`` suitable for ``ADMIN_PASSWORD_HASH``."""

    if not password:
        raise ValueError("password must not be empty")
    salt = secrets.token_bytes(16)
    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return "$".join(
        (
            str(iterations),
            base64.urlsafe_b64encode(salt).decode("ascii"),
            base64.urlsafe_b64encode(derived).decode("ascii"),
        )
    )


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        iterations_raw, salt_b64, digest_b64 = stored_hash.split("$")
        iterations = int(iterations_raw)
        salt = base64.urlsafe_b64decode(salt_b64)
        digest = base64.urlsafe_b64decode(digest_b64)
    except (ValueError, binascii.Error) as exc:
        raise SecurityConfigurationError("Stored admin password hash is invalid") from exc
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(candidate, digest)


# Time-based one-time codes


@lru_cache(maxsize=1)
def _load_totp_secret() -> Optional[bytes]:
    secret = os.getenv(ADMIN_TOTP_SECRET_ENV)
    if not secret:
        return None
    try:
        return _decode_base32(secret)
    except (ValueError, binascii.Error) as exc:
        raise SecurityConfigurationError("Invalid TOTP secret configured for admin user") from exc


def _totp_code(secret: bytes, counter: int) -> str:
    digest = hmac.new(secret, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code = struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF
    return str(code % (10**TOTP_DIGITS)).zfill(TOTP_DIGITS)


def _verify_totp(secret: bytes, code: str) -> bool:
    if not code or not code.isdigit():
        return False
    counter = int(time.time() // TOTP_PERIOD)
    expected = code.zfill(TOTP_DIGITS)
    return any(
        hmac.compare_digest(_totp_code(secret, counter + step), expected)
        for step in TOTP_DRIFT_STEPS
    )


def generate_totp_code(secret: str, timestamp: Optional[int] = None) -> str:
    """Current code for ``secret``; used by provisioning scripts and tests."""

    try:
        secret_bytes = _decode_base32(secret)
    except (ValueError, binascii.Error) as exc:
        raise SecurityConfigurationError("Invalid TOTP secret") from exc
    return _totp_code(secret_bytes, int((timestamp or time.time()) // TOTP_PERIOD))


# Bearer tokens


@lru_cache(maxsize=1)
def _load_jwt_key() -> bytes:
    raw_secret = _required_env(ADMIN_JWT_SECRET_ENV)
    try:
        return base64.urlsafe_b64decode(raw_secret)
    except (ValueError, binascii.Error):
        return raw_secret.encode("utf-8")


def _token_lifetime() -> timedelta:
    raw = os.getenv(ACCESS_TOKEN_EXPIRE_MINUTES_ENV)
    if not raw:
        return DEFAULT_TOKEN_LIFETIME
    try:
        minutes = int(raw)
    except ValueError as exc:
        raise SecurityConfigurationError(f"{ACCESS_TOKEN_EXPIRE_MINUTES_ENV} must be an integer") from exc
    if minutes <= 0:
        raise SecurityConfigurationError(f"{ACCESS_TOKEN_EXPIRE_MINUTES_ENV} must be positive")
    return timedelta(minutes=minutes)


def _sign(signing_input: bytes, key: bytes) -> bytes:
    return hmac.new(key, signing_input, hashlib.sha256).digest()


def _encode_token(claims: dict[str, Any], key: bytes) -> str:
    segments = [
        _b64url_encode(json.dumps(part, separators=(",", ":")).encode("utf-8"))
        for part in ({"typ": "JWT", "alg": "HS256"}, claims)
    ]
    signing_input = ".".join(segments).encode("ascii")
    return f"{segments[0]}.{segments[1]}.{_b64url_encode(_sign(signing_input, key))}"


def _decode_token(token: str, key: bytes) -> dict[str, Any]:
    try:
        header_b64, claims_b64, signature_b64 = token.split(".")
        signature = _b64url_decode(signature_b64)
    except (ValueError, binascii.Error) as exc:
        raise _unauthorized("Invalid token") from exc

    if not hmac.compare_digest(signature, _sign(f"{header_b64}.{claims_b64}".encode("ascii"), key)):
        raise _unauthorized("Invalid token")

    claims = json.loads(_b64url_decode(claims_b64).decode("utf-8"))
    expires_at = claims.get("exp")
    if expires_at is None:
        raise _unauthorized("Invalid token")
    if datetime.now(timezone.utc) >= datetime.fromtimestamp(int(expires_at), tz=timezone.utc):
        raise _unauthorized("Token expired")
    return claims


def _same_user(candidate: str, expected: str) -> bool:
    return candidate.strip().lower() == expected.strip().lower()


def authenticate_admin(username: str, password: str, otp_code: Optional[str]) -> AdminIdentity:
    expected_username = _required_env(ADMIN_USERNAME_ENV)
    expected_hash = _required_env(ADMIN_PASSWORD_HASH_ENV)
    if not _same_user(username, expected_username) or not verify_password(password, expected_hash):
        raise _unauthorized("Invalid credentials")

    totp_secret = _load_totp_secret()
    if totp_secret is not None:
        if not otp_code:
            raise _unauthorized("Two-factor code required")
        if not _verify_totp(totp_secret, otp_code):
            raise _unauthorized("Invalid two-factor code")

    return AdminIdentity(username=expected_username)


def create_access_token(identity: AdminIdentity) -> str:
    expiry = datetime.now(timezone.utc) + _token_lifetime()
    return _encode_token({"sub": identity.username, "exp": int(expiry.timestamp())}, _load_jwt_key())


def get_current_admin(token: str = Depends(oauth2_scheme)) -> AdminIdentity:
    claims = _decode_token(token, _load_jwt_key())
    subject = claims.get("sub")
    expected_username = _required_env(ADMIN_USERNAME_ENV)
    if not isinstance(subject, str) or not _same_user(subject, expected_username):
        raise _unauthorized("Invalid token")
    return AdminIdentity(username=expected_username)


def require_admin(identity: AdminIdentity = Depends(get_current_admin)) -> AdminIdentity:
    """FastAPI dependency that ensures the request is authenticated as an admin."""

    return identity
