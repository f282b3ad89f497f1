"""
In-memory request throttling (per-process token buckets).

Buckets are keyed by caller and route group. The evaluate endpoint sits
on the delivery intake path and gets its own, more generous policy
(``RATE_LIMIT_EVALUATE_RPS`` / ``RATE_LIMIT_EVALUATE_BURST``).
"""

from __future__ import annotations

import hashlib
import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request

from .config import get_app_env

EVALUATE_PATH = "/api/v1/auto-approval/evaluate"


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    val = raw.strip().lower()
    if val in {"1", "true", "yes"}:
        return True
    if val in {"0", "false", "no"}:
        return False
    return None


def _env_number(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def rate_limit_enabled() -> bool:
    explicit = _env_bool("RATE_LIMIT_ENABLED")
    if explicit is not None:
        return explicit
    return get_app_env() == "prod"


@dataclass(frozen=True)
class RateLimitPolicy:
    rps: float
    burst: int

    @classmethod
    def from_env(cls, prefix: str, *, rps: float, burst: int) -> "RateLimitPolicy":
        return cls(
            rps=max(_env_number(f"{prefix}_RPS", rps), 0.1),
            burst=max(int(_env_number(f"{prefix}_BURST", burst)), 1),
        )


def policy_for(path: str) -> RateLimitPolicy:
    default = RateLimitPolicy.from_env("RATE_LIMIT", rps=5, burst=20)
    if path.rstrip("/") == EVALUATE_PATH:
        return RateLimitPolicy.from_env("RATE_LIMIT_EVALUATE", rps=default.rps * 4, burst=default.burst * 4)
    return default


def _path_group(path: str) -> str:
    parts = [p for p in path.split("/") if p]
    if len(parts) >= 3 and parts[:2] == ["api", "v1"]:
        return f"/api/v1/{parts[2]}"
    return f"/{parts[0]}" if parts else "/"


def _bucket_group(path: str) -> str:
    if path.rstrip("/") == EVALUATE_PATH:
        return EVALUATE_PATH
    return _path_group(path)


def caller_key(request: Request, authorization: Optional[str], client_profile: Optional[str]) -> str:
    """Identify the caller: bearer token first, then dev tenant header, then peer address."""
    if authorization:
        return "tok:" + hashlib.sha256(authorization.encode("utf-8")).hexdigest()[:16]
    if client_profile:
        return f"tenant:{client_profile}"
    return "ip:" + (request.client.host if request.client else "unknown")


@dataclass
class Bucket:
    tokens: float
    last_ts: float


class TokenBucketLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, Bucket] = {}

    def allow(self, key: str, *, rps: float, burst: int) -> tuple[bool, float]:
        """Take one token for ``key``; return (allowed, seconds until the next token)."""
        now = time.monotonic()
        with self._lock:
            bucket = self._buckets.setdefault(key, Bucket(tokens=float(burst), last_ts=now))
            bucket.tokens = min(float(burst), bucket.tokens + max(0.0, now - bucket.last_ts) * rps)
            bucket.last_ts = now
            if bucket.tokens < 1.0:
                return False, max((1.0 - bucket.tokens) / rps, 0.1)
            bucket.tokens -= 1.0
            return True, 0.0

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


_limiter = TokenBucketLimiter()


def rate_limit_dependency(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_client_profile: Optional[str] = Header(None, alias="X-Client-Profile"),
) -> None:
    if not rate_limit_enabled():
        return
    path = request.url.path
    policy = policy_for(path)
    key = f"{caller_key(request, authorization, x_client_profile)}:{_bucket_group(path)}"
    allowed, retry_after = _limiter.allow(key, rps=policy.rps, burst=policy.burst)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too Many Requests",
            headers={"Retry-After": str(max(1, int(retry_after)))},
        )
