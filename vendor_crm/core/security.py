"""
Password hashing and signed access tokens for vendor logins.

Tokens are compact HS256 JWTs carrying the username, role and user id;
the tenant is resolved from the user id on every request so a token
never outlives a change of client profile ownership.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from .config import get_app_env

_HASH_ALGO = "pbkdf2_sha256"
_DEFAULT_ROUNDS = 120000
_JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(ValueError):
    """Access token is malformed, forged or expired."""


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _json_segment(part: dict) -> str:
    return _b64url_encode(json.dumps(part, separators=(",", ":")).encode("utf-8"))


def _hash_rounds() -> int:
    try:
        return max(1000, int(os.getenv("CRM_PASSWORD_HASH_ROUNDS", str(_DEFAULT_ROUNDS))))
    except ValueError:
        return _DEFAULT_ROUNDS


def _split_hash(encoded: str) -> tuple[str, int, str, str] | None:
    try:
        algo, rounds_raw, salt, digest_hex = encoded.split("$", 3)
        return algo, int(rounds_raw), salt, digest_hex
    except (AttributeError, ValueError):
        return None


def _pbkdf2(password: str, salt: str, rounds: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds).hex()


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    salt = secrets.token_hex(16)
    rounds = _hash_rounds()
    return f"{_HASH_ALGO}${rounds}${salt}${_pbkdf2(password, salt, rounds)}"


def verify_password(password: str, encoded: str) -> bool:
    parts = _split_hash(encoded)
    if parts is None or parts[0] != _HASH_ALGO:
        return False
    _, rounds, salt, expected_hex = parts
    return secrets.compare_digest(_pbkdf2(password, salt, rounds), expected_hex)


def needs_rehash(encoded: str) -> bool:
    """True when ``encoded`` was produced with fewer rounds than currently configured."""
    parts = _split_hash(encoded)
    if parts is None or parts[0] != _HASH_ALGO:
        return True
    return parts[1] < _hash_rounds()


def _jwt_secret() -> str:
    secret = (os.getenv("CRM_JWT_SECRET") or "").strip()
    if secret:
        return secret
    if get_app_env() == "prod":
        return ""
    return "dev-jwt-secret-change-me"


def _jwt_exp_minutes() -> int:
    try:
        return max(1, int(os.getenv("CRM_JWT_EXP_MIN", "720")))
    except ValueError:
        return 720


def _sign(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(*, sub: str, role: str, user_id: str) -> str:
    secret = _jwt_secret()
    if not secret:
        raise RuntimeError("CRM_JWT_SECRET is required when auth is enabled")
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": sub,
        "role": role,
        "user_id": user_id,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=_jwt_exp_minutes())).timestamp()),
    }
    signing_input = f"{_json_segment(_JWT_HEADER)}.{_json_segment(claims)}"
    return f"{signing_input}.{_b64url_encode(_sign(signing_input, secret))}"


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify ``token`` and return its claims.

    Raises
    ------
    TokenError
        If the secret is missing, or the token is malformed, badly signed
        or expired.
    """
    secret = _jwt_secret()
    if not secret:
        raise TokenError("JWT secret not configured")
    try:
        header_b64, claims_b64, signature_b64 = token.split(".")
    except ValueError:
        raise TokenError("Malformed token") from None
    try:
        signature = _b64url_decode(signature_b64)
        claims = json.loads(_b64url_decode(claims_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        raise TokenError("Malformed token") from None
    if not secrets.compare_digest(_sign(f"{header_b64}.{claims_b64}", secret), signature):
        raise TokenError("Invalid signature")
    if not isinstance(claims, dict):
        raise TokenError("Invalid payload")
    exp = int(claims.get("exp") or 0)
    if exp <= 0:
        raise TokenError("Missing exp")
    if int(datetime.now(timezone.utc).timestamp()) >= exp:
        raise TokenError("Token expired")
    return claims
