"""JWT auth middleware and current actor lookup."""

from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional

import httpx
from jose import jwt
from jose.exceptions import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.text_case import normalize_title_case

logger = logging.getLogger("flowkit.auth")

UNKNOWN_USER = "unknown_user"
UNKNOWN_ACTOR: Dict[str, Any] = {"id": None, "user_name": UNKNOWN_USER, "full_name": UNKNOWN_USER}

_JWKS_CACHE: Dict[str, Any] = {"keys": None, "fetched_at": 0.0, "ttl": 600.0}
_LOCAL_ORIGIN_RE = re.compile(r"^http://(localhost|127\.0\.0\.1):\d+$")


def auth_disabled() -> bool:
    return os.getenv("FLOWKIT_DISABLE_AUTH", "").strip().lower() in ("1", "true", "yes")


def _attach_local_cors(request: Request, response: JSONResponse) -> JSONResponse:
    origin = request.headers.get("origin")
    if origin and _LOCAL_ORIGIN_RE.match(origin):
        response.headers.setdefault("Access-Control-Allow-Origin", origin)
        response.headers.setdefault("Access-Control-Allow-Credentials", "true")
        response.headers.setdefault("Access-Control-Allow-Headers", "*")
        response.headers.setdefault("Access-Control-Allow-Methods", "*")
        response.headers.setdefault("Vary", "Origin")
    return response


def _fetch_jwks(jwks_url: str, force: bool = False) -> dict:
    now = time.time()
    if not force and _JWKS_CACHE["keys"] and now - _JWKS_CACHE["fetched_at"] < _JWKS_CACHE["ttl"]:
        return _JWKS_CACHE["keys"]
    resp = httpx.get(jwks_url, timeout=10.0)
    resp.raise_for_status()
    data = resp.json()
    _JWKS_CACHE["keys"] = data
    _JWKS_CACHE["fetched_at"] = now
    return data


def _get_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def _find_key(jwks: dict, kid: str | None) -> dict | None:
    for jwk in jwks.get("keys", []):
        if jwk.get("kid") == kid:
            return jwk
    return None


def verify_jwt(token: str, jwks_url: str, issuer: str, audience: Optional[str]) -> dict:
    headers = jwt.get_unverified_header(token)
    kid = headers.get("kid")
    key = _find_key(_fetch_jwks(jwks_url), kid)
    if key is None:
        key = _find_key(_fetch_jwks(jwks_url, force=True), kid)
    if key is None:
        raise JWTError("Unknown kid")

    options = {"verify_aud": audience is not None}
    return jwt.decode(token, key, algorithms=[headers.get("alg", "RS256")], issuer=issuer, audience=audience, options=options)


def _unauthorized(request: Request, code: str, message: str, detail: dict | None = None) -> JSONResponse:
    return _attach_local_cors(
        request,
        JSONResponse(
            {
                "ok": False,
                "errors": [{"code": code, "message": message, "path": "Authorization", "detail": detail}],
                "warnings": [],
            },
            status_code=401,
        ),
    )


class JwtAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, auth_url: str, audience: Optional[str] = None) -> None:
        super().__init__(app)
        self._issuer = auth_url.rstrip("/")
        self._audience = audience
        self._jwks_url = f"{self._issuer}/.well-known/jwks.json"

    async def dispatch(self, request: Request, call_next):
        if auth_disabled():
            return await call_next(request)
        if request.method == "OPTIONS":
            return await call_next(request)
        if request.url.path in {"/health"}:
            return await call_next(request)

        token = _get_bearer_token(request)
        if not token:
            logger.warning("auth_missing_token path=%s", request.url.path)
            return _unauthorized(request, "AUTH_MISSING_TOKEN", "Missing bearer token")

        try:
            claims = verify_jwt(token, self._jwks_url, self._issuer, self._audience)
        except Exception as exc:
            logger.warning(
                "auth_invalid_token path=%s issuer=%s audience=%s error=%s",
                request.url.path,
                self._issuer,
                self._audience,
                exc,
            )
            return _unauthorized(request, "AUTH_INVALID_TOKEN", "Invalid bearer token", {"error": str(exc)})

        request.state.user = {
            "id": claims.get("sub"),
            "email": claims.get("email"),
            "claims": claims,
        }
        return await call_next(request)


def _full_name(user: dict) -> str:
    claims = user.get("claims") or {}
    parts = [normalize_title_case(claims.get(key)) for key in ("given_name", "family_name")]
    parts = [part for part in parts if part]
    if parts:
        return " ".join(parts)
    return claims.get("name") or user.get("user_name") or str(user.get("id"))


def current_actor(request: Any) -> dict:
    """Return ``{"id", "user_name", "full_name"}`` for the request's user.

    Any failure to identify the user yields a copy of UNKNOWN_ACTOR.
    """
    try:
        user = getattr(request.state, "user", None)
        if not isinstance(user, dict) or not user.get("id"):
            logger.warning("actor_unknown reason=no_user")
            return dict(UNKNOWN_ACTOR)
        claims = user.get("claims") or {}
        user_name = claims.get("preferred_username") or user.get("email") or str(user["id"])
        return {
            "id": user["id"],
            "user_name": user_name,
            "full_name": _full_name({**user, "user_name": user_name}),
        }
    except Exception as exc:
        logger.warning("actor_unknown reason=error error=%s", exc)
        return dict(UNKNOWN_ACTOR)
