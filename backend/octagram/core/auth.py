from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import jwt
from fastapi import Header, HTTPException
from jwt import PyJWKClient

from octagram.core.config import settings


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class UserContext:
    """Authenticated Supabase user for one request."""

    user_id: str
    email: str | None
    claims: dict[str, Any] = field(default_factory=dict)
    # 原始 access token：退出登录时转发给 Supabase
    access_token: str = ""


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


@lru_cache(maxsize=4)
def _jwks_client(jwks_url: str) -> PyJWKClient:
    return PyJWKClient(jwks_url)


def _bearer_token(authorization: str) -> str:
    if not authorization.startswith(BEARER_PREFIX):
        raise _unauthorized()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise _unauthorized()
    return token


# 对称签名（HS*）使用项目 JWT Secret，非对称签名从 JWKS 取公钥
def _signing_key(token: str, alg: str) -> Any:
    if alg.startswith("HS"):
        if not settings.supabase_jwt_secret:
            raise HTTPException(status_code=500, detail="SUPABASE_JWT_SECRET not configured.")
        return settings.supabase_jwt_secret
    jwks_url = settings.resolved_supabase_jwks_url
    if not jwks_url:
        raise HTTPException(status_code=500, detail="SUPABASE_JWKS_URL not configured.")
    return _jwks_client(jwks_url).get_signing_key_from_jwt(token).key


def decode_access_token(token: str) -> dict[str, Any]:
    issuer = settings.resolved_supabase_jwt_issuer
    if not issuer:
        raise HTTPException(status_code=500, detail="SUPABASE_JWT_ISSUER not configured.")
    try:
        alg = jwt.get_unverified_header(token).get("alg") or ""
        if not alg or alg.lower() == "none":
            raise _unauthorized()
        return jwt.decode(
            token,
            _signing_key(token, alg),
            algorithms=[alg],
            audience=settings.supabase_jwt_audience,
            issuer=issuer,
        )
    except jwt.PyJWTError as exc:
        logger.debug(f"Rejected access token: {exc}")
        raise _unauthorized() from exc


# FastAPI 依赖：解析 Authorization 头并返回当前用户
def get_current_user(authorization: str = Header(default="")) -> UserContext:
    token = _bearer_token(authorization or "")
    claims = decode_access_token(token)
    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid JWT payload.")
    return UserContext(
        user_id=user_id,
        email=claims.get("email"),
        claims=claims,
        access_token=token,
    )
