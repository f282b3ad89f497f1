"""
Bearer-token auth helpers for the vendor dashboard API.

With ``CRM_AUTH_DISABLED`` on (local development) every caller is an
admin and picks its tenant with the ``X-Client-Profile`` header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Header, HTTPException

from .config import auth_disabled
from .security import TokenError, decode_access_token

ADMIN_ROLE = "ADMIN"


@dataclass
class UserContext:
    role: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    # Only honoured while auth is disabled
    client_profile_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role.upper() == ADMIN_ROLE


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def _context_from_claims(claims: dict[str, Any]) -> UserContext:
    role = str(claims.get("role") or "").strip().upper()
    username = str(claims.get("sub") or "").strip()
    user_id = str(claims.get("user_id") or "").strip()
    if not role or not username or not user_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return UserContext(role=role, user_id=user_id, username=username)


def get_current_user(
    authorization: Optional[str] = Header(None),
    x_client_profile: Optional[str] = Header(None, alias="X-Client-Profile"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> UserContext:
    if auth_disabled():
        return UserContext(role=ADMIN_ROLE, username=x_user_name, client_profile_id=x_client_profile)
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = decode_access_token(token)
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    return _context_from_claims(claims)


def get_optional_user(
    authorization: Optional[str] = Header(None),
    x_client_profile: Optional[str] = Header(None, alias="X-Client-Profile"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> Optional[UserContext]:
    """Like ``get_current_user`` but anonymous callers get None instead of 401."""
    if not auth_disabled() and not authorization:
        return None
    return get_current_user(
        authorization=authorization,
        x_client_profile=x_client_profile,
        x_user_name=x_user_name,
    )
