from __future__ import annotations

import secrets
from typing import Any, Dict

from jose import JWTError, jwt

from songorders.config import settings

# Resource server only: validates access JWTs issued by the identity service
# and the shared service-to-service bearer. No password or refresh logic here.


def _strip_bearer(auth: str) -> str:
    s = (auth or "").strip()
    if not s:
        return ""
    if s.lower().startswith("bearer "):
        return s[7:].strip()
    return s


def _service_claims() -> Dict[str, Any]:
    # Minimal claims object for internal calls (not a user)
    return {
        "sub": "internal-service",
        "token_type": "service",
        "scopes": ["internal"],
        "is_service": True,
    }


def decode_access_jwt(token: str) -> Dict[str, Any]:
    """
    Accepts either:
      - a user access JWT, OR
      - the service-to-service bearer secret.

    The caller may pass the raw token or the full 'Bearer ...' header value.
    """
    raw = _strip_bearer(token)

    svc_raw = _strip_bearer(settings.SVC_TO_SVC_BEARER)
    if raw and svc_raw and secrets.compare_digest(raw, svc_raw):
        return _service_claims()

    if not settings.JWT_SECRET:
        raise ValueError("jwt_not_configured")

    try:
        return jwt.decode(
            raw,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as e:
        raise ValueError(f"invalid_token: {e}") from e


def is_service(claims: Dict[str, Any]) -> bool:
    return bool(claims.get("is_service") or claims.get("token_type") == "service")
