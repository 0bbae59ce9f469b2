"""Bearer token authentication against an OIDC provider.

Provides:
- verify_token(): validate an RS256 JWT against the provider's JWKS
- get_current_user(): FastAPI dependency resolving the User (with role)
"""

from __future__ import annotations

import threading
import time
from typing import Any

import jwt
import requests
from fastapi import HTTPException, Request

from staybook.config import OidcSettings, get_settings
from staybook.domain.users import User, parse_role

_JWKS_CACHE_TTL = 600  # seconds

_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: float = 0
_jwks_cache_lock = threading.Lock()


def _unauthorized(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def _get_jwks(jwks_url: str, force_refresh: bool = False) -> dict[str, Any]:
    """JWKS document, served from a TTL cache unless force_refresh."""
    global _jwks_cache, _jwks_cache_time

    with _jwks_cache_lock:
        now = time.time()
        fresh = _jwks_cache is not None and (now - _jwks_cache_time) < _JWKS_CACHE_TTL
        if fresh and not force_refresh:
            return _jwks_cache

        try:
            _jwks_cache = _fetch_jwks(jwks_url)
        except requests.RequestException:
            raise HTTPException(status_code=503, detail="Auth temporarily unavailable")
        _jwks_cache_time = now
        return _jwks_cache


def _find_key(jwks: dict[str, Any], kid: str) -> dict[str, Any] | None:
    return next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)


def _decode(token: str, jwk: dict[str, Any], oidc: OidcSettings) -> dict[str, Any]:
    try:
        public_key = jwt.algorithms.RSAAlgorithm.from_jwk(jwk)
    except (ValueError, TypeError, KeyError, jwt.InvalidKeyError):
        raise _unauthorized()
    return jwt.decode(
        token,
        public_key,
        algorithms=["RS256"],
        issuer=oidc.issuer,
        audience=oidc.audience,
        options={"require": ["exp", "iss", "aud", "sub"]},
    )


def verify_token(token: str) -> str:
    """Verify a JWT and return its subject claim.

    The key is looked up by kid in the cached JWKS; on a missing key or a bad
    signature the JWKS is refetched once to follow key rotation.

    Raises:
        HTTPException: 401 if the token is invalid, 503 if JWKS is unreachable.
    """
    oidc = get_settings().oidc
    if not oidc.configured:
        raise _unauthorized("OIDC not configured")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except jwt.exceptions.DecodeError:
        raise _unauthorized()
    if not kid:
        raise _unauthorized()

    payload: dict[str, Any] | None = None
    for force_refresh in (False, True):
        key_data = _find_key(_get_jwks(oidc.jwks_url, force_refresh=force_refresh), kid)
        if key_data is None:
            continue
        try:
            payload = _decode(token, key_data, oidc)
            break
        except jwt.InvalidSignatureError:
            continue
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise _unauthorized()

    if payload is None:
        raise _unauthorized()

    azp = payload.get("azp")
    if oidc.authorized_parties and azp is not None and azp not in oidc.authorized_parties:
        raise _unauthorized()

    sub = payload.get("sub")
    if not sub:
        raise _unauthorized()
    return sub


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized("Missing authorization header")

    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip() or " " in token.strip():
        raise _unauthorized("Invalid authorization header")
    return token.strip()


def _get_user_from_db(external_subject: str) -> User | None:
    from staybook.infra.db import txn

    with txn() as cur:
        cur.execute(
            "SELECT id, external_subject, email, name, role FROM users WHERE external_subject = %s",
            (external_subject,),
        )
        row = cur.fetchone()
    if row is None:
        return None
    return User(
        id=str(row[0]),
        external_subject=row[1],
        email=row[2],
        name=row[3],
        role=parse_role(row[4]),
    )


def get_current_user(request: Request) -> User:
    """FastAPI dependency: authenticated User.

    Raises:
        HTTPException: 401 if token invalid/missing, 403 if user unknown.
    """
    sub = verify_token(_extract_bearer_token(request))
    user = _get_user_from_db(sub)
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")
    return user
