"""
Auth security helpers (JWT encode/decode).
"""

from __future__ import annotations

import time
from typing import Any

import jwt


class AuthSecurityError(RuntimeError):
    pass


class MissingSecretError(AuthSecurityError):
    """No signing secret is configured; this is a server fault, not a client one."""


def now_epoch_s() -> int:
    return int(time.time())


def _require_secret(secret: str) -> str:
    secret = (secret or "").strip()
    if not secret:
        raise MissingSecretError("JWT_SECRET is not configured.")
    return secret


def build_access_token(
    *,
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    expires_in_s: int = 15 * 60,
    not_before: int | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    issued_at = now_epoch_s()
    payload: dict[str, Any] = {
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + expires_in_s,
    }
    if not_before is not None:
        payload["nbf"] = not_before
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, _require_secret(secret), algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithm: str = "HS256",
    leeway_s: int = 0,
) -> dict[str, Any]:
    """
    Verify signature, `exp` (required) and `nbf` (when present).

    Raises MissingSecretError before looking at the token when no secret is set.
    """
    key = _require_secret(secret)
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Access token is empty.")

    try:
        return jwt.decode(
            raw,
            key,
            algorithms=[algorithm],
            leeway=leeway_s,
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthSecurityError("Access token is expired.") from exc
    except jwt.ImmatureSignatureError as exc:
        raise AuthSecurityError("Access token is not yet valid.") from exc
    except jwt.InvalidSignatureError as exc:
        raise AuthSecurityError("Access token signature is invalid.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid access token.") from exc
