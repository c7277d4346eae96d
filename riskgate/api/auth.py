"""
Lightweight API auth helpers.

Tokens are optional: an unset token leaves its endpoints open (demo
mode). Production settings refuse to start without them. A token is
accepted from X-API-Key or an "Authorization: Bearer" header.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from ..config import settings


def _extract_token(authorization: str | None, x_api_key: str | None) -> str | None:
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def _check(expected: Optional[str], authorization: str | None, x_api_key: str | None) -> None:
    if not expected:
        return
    token = _extract_token(authorization, x_api_key)
    if token is None or not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def require_api_token(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> None:
    """Guard for assessment and ledger endpoints."""
    _check(settings.api_token, authorization, x_api_key)


def require_admin_token(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> None:
    """Guard for policy reload."""
    _check(settings.admin_token, authorization, x_api_key)


def require_metrics_token(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> None:
    """Guard for /metrics and /metrics/summary."""
    _check(settings.metrics_token, authorization, x_api_key)
