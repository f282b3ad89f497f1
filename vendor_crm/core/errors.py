"""
Shared error types and error-logging helpers.

Services raise the ``AutoApprovalError`` family; API routers translate
them into ``HTTPException`` with the carried status code. Anything else
(database, driver) is an infrastructure fault and propagates unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Optional


class AutoApprovalError(Exception):
    """Base exception for business-rule failures in the auto-approval core."""

    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ForbiddenError(AutoApprovalError):
    """No active subscription, or the tier quota is exhausted."""

    status_code = 403


class BadRequestError(AutoApprovalError):
    """Rule input misses a requirement of its rule type."""

    status_code = 400


class NotFoundError(AutoApprovalError):
    """Rule does not exist or belongs to another tenant."""

    status_code = 404


def _format_extra(extra: dict | None) -> str:
    if not extra:
        return ""
    parts: list[str] = []
    for key, value in extra.items():
        if value is None:
            continue
        parts.append(f"{key}={value}")
    return f" {' '.join(parts)}" if parts else ""


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """
    Log an exception with context. Uses logger.exception for stack traces.
    """
    suffix = _format_extra(extra)
    if exc is not None:
        logger.error(f"{msg}{suffix}: {exc}", exc_info=exc)
        return
    logger.exception(f"{msg}{suffix}")
