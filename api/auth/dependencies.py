"""
Auth gate for protected FastAPI routes.

Credential sources, tried in this order (first non-empty wins):
1. `Authorization: Bearer <token>` header
2. query parameter (`settings.auth_query_param`, default "jwt")
3. cookie (`settings.auth_cookie_name`, default "jwt")

Outcomes:
- valid token -> claims stored on `request.state.claims`, request proceeds
- missing/invalid/expired token -> 401, handler never runs
- no JWT_SECRET configured -> 500 (server misconfiguration)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request, status

from core.settings import Settings

from . import security

logger = logging.getLogger(__name__)

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def _token_from_header(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    parts = raw.split(" ", 1)
    if len(parts) != 2:
        return ""
    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer":
        return ""
    return token


def extract_token(request: Request, *, query_param: str = "jwt", cookie_name: str = "jwt") -> str:
    token = _token_from_header(request.headers.get("authorization"))
    if token:
        return token
    token = (request.query_params.get(query_param) or "").strip()
    if token:
        return token
    return (request.cookies.get(cookie_name) or "").strip()


def _unauthorized(request: Request, detail: str) -> HTTPException:
    logger.info("Rejected request: %s", detail, extra={"path": request.url.path})
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=_UNAUTHORIZED_HEADERS,
    )


async def require_access_token(request: Request) -> dict[str, Any]:
    settings: Settings = request.app.state.settings
    token = extract_token(
        request,
        query_param=settings.auth_query_param,
        cookie_name=settings.auth_cookie_name,
    )

    try:
        claims = security.decode_access_token(
            token,
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            leeway_s=settings.jwt_leeway_s,
        )
    except security.MissingSecretError as exc:
        logger.error("Authentication is misconfigured: %s", exc, extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured.",
        ) from exc
    except security.AuthSecurityError as exc:
        detail = "Missing access token." if not token else str(exc)
        raise _unauthorized(request, detail) from exc

    request.state.claims = claims
    return claims
