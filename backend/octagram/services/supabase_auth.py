from __future__ import annotations

import logging

import httpx

from octagram.core.config import settings


logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 20


class SupabaseAuthError(Exception):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _auth_url(path: str) -> str:
    base = settings.supabase_auth_url
    if not base:
        raise SupabaseAuthError("SUPABASE_URL not configured.", status_code=500)
    return f"{base}{path}"


def _apikey() -> str:
    key = settings.supabase_anon_key or settings.supabase_service_role_key
    if not key:
        raise SupabaseAuthError("SUPABASE_ANON_KEY not configured.", status_code=500)
    return key


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()[:300] or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        for key in ("msg", "message", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {response.status_code}"


def _send(method: str, path: str, headers: dict[str, str], json: dict | None = None) -> httpx.Response:
    url = _auth_url(path)
    try:
        with httpx.Client(timeout=_TIMEOUT_SECONDS) as client:
            return client.request(method, url, headers=headers, json=json)
    except httpx.HTTPError as exc:
        logger.error(f"Supabase auth request failed: {method} {path}: {exc}")
        raise SupabaseAuthError("Auth service unavailable. Please try again.", status_code=502) from exc


# 使用密码授权校验当前用户密码（删除账号前的二次确认）
def verify_password(email: str, password: str) -> bool:
    response = _send(
        "POST",
        "/token?grant_type=password",
        headers={"apikey": _apikey()},
        json={"email": email, "password": password},
    )
    if response.status_code in (400, 401, 422):
        return False
    if response.is_error:
        raise SupabaseAuthError(_error_message(response), status_code=502)
    return True


# 吊销当前会话的 refresh token
def sign_out(access_token: str) -> None:
    response = _send(
        "POST",
        "/logout",
        headers={"apikey": _apikey(), "Authorization": f"Bearer {access_token}"},
    )
    # 401/403/404 表示会话已失效，视为已退出
    if response.is_error and response.status_code not in (401, 403, 404):
        raise SupabaseAuthError(_error_message(response), status_code=502)


# 使用 Service Role Key 删除 Supabase 用户
def delete_user(user_id: str) -> None:
    service_key = settings.supabase_service_role_key
    if not service_key:
        raise SupabaseAuthError(
            "Account deletion is not configured. Please contact support.",
            status_code=503,
        )
    response = _send(
        "DELETE",
        f"/admin/users/{user_id}",
        headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
    )
    if response.is_error:
        message = _error_message(response)
        logger.error(f"Delete account error for {user_id}: {message}")
        raise SupabaseAuthError(message or "Failed to delete account", status_code=500)
