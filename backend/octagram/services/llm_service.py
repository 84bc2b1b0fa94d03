from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel

from octagram.core.config import settings


logger = logging.getLogger(__name__)


class LLMConfig(BaseModel):
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    api_path: str | None = None


@dataclass
class ChatCompletion:
    content: str
    model: str
    token_in: int | None = None
    token_out: int | None = None
    token_total: int | None = None
    latency_ms: int = 0


class LLMServiceError(Exception):
    """Upstream model call failed; ``message`` is safe to show to users."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def default_config() -> LLMConfig:
    return LLMConfig(
        model=settings.llm_model,
        api_key=settings.llm_api_key,
        base_url=settings.llm_base_url,
    )


def is_configured(config: LLMConfig | None = None) -> bool:
    return bool((config or default_config()).api_key)


def _extract_error(payload: str) -> tuple[str, str | None]:
    try:
        data = json.loads(payload)
    except ValueError:
        return payload.strip()[:300], None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            msg = err.get("message") or err.get("detail") or err.get("error")
            code = err.get("code") or err.get("type")
            if msg:
                return str(msg), str(code) if code else None
        msg = data.get("message") or data.get("detail") or data.get("error")
        if msg:
            return str(msg), None
    return payload.strip()[:300], None


def _format_llm_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        body = exc.response.text or ""
        message, code = _extract_error(body) if body else (str(exc), None)
        lowered = message.lower()
        if code == "insufficient_quota" or "insufficient_quota" in lowered:
            return "OpenAI quota exceeded. Check your plan and billing."
        if status in (401, 403):
            return "Model API key is invalid or lacks permission."
        if status == 429 or "rate limit" in lowered:
            return "Model is rate limited. Please try again shortly."
        return f"Model request failed ({status}): {message}"
    if isinstance(exc, httpx.TimeoutException):
        return "Model request timed out. Please try again."
    return "Model request failed. Check the network or service status."


def _normalize_api_path(path: str | None, default_path: str) -> str:
    resolved = (path or default_path).strip() or default_path
    if not resolved.startswith("/"):
        resolved = f"/{resolved}"
    return resolved


def _derive_responses_path(path: str) -> str:
    if "/responses" in path:
        return path
    if "/chat/completions" in path:
        return path.replace("/chat/completions", "/responses")
    if path.startswith("/v1/"):
        return "/v1/responses"
    return "/responses"


def _join_text_chunks(chunks: list[Any]) -> str:
    texts: list[str] = []
    for chunk in chunks:
        if not isinstance(chunk, dict):
            continue
        text = chunk.get("text")
        if isinstance(text, str) and text.strip():
            texts.append(text)
    return "\n".join(texts).strip()


def _extract_chat_content(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") if isinstance(first.get("message"), dict) else {}
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return _join_text_chunks(content)
    return ""


def _extract_responses_content(data: dict[str, Any]) -> str:
    output_text = data.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    output = data.get("output")
    if isinstance(output, list):
        texts: list[str] = []
        for item in output:
            if not isinstance(item, dict):
                continue
            content = item.get("content")
            if isinstance(content, list):
                joined = _join_text_chunks(content)
                if joined:
                    texts.append(joined)
        if texts:
            return "\n".join(texts).strip()

    # Some providers may still return chat-completions compatible body.
    return _extract_chat_content(data)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # NaN / Infinity 可通过 response.json() 解析出来
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


# 读取 token 用量；兼容 chat (prompt/completion) 与 responses (input/output) 两种字段
def _extract_usage(data: dict[str, Any]) -> tuple[int | None, int | None, int | None]:
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return None, None, None
    token_in = _as_int(usage.get("prompt_tokens", usage.get("input_tokens")))
    token_out = _as_int(usage.get("completion_tokens", usage.get("output_tokens")))
    token_total = _as_int(usage.get("total_tokens"))
    if token_total is None and token_in is not None and token_out is not None:
        token_total = token_in + token_out
    return token_in, token_out, token_total


def _build_messages(system_prompt: str, user_content: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_content},
    ]


def _build_chat_payload(
    model: str, system_prompt: str, user_content: str, temperature: float | None
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": model,
        "messages": _build_messages(system_prompt, user_content),
        "stream": False,
    }
    if temperature is not None:
        payload["temperature"] = temperature
    return payload


def _build_responses_payload(
    model: str, system_prompt: str, user_content: str, temperature: float | None
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": model,
        "input": _build_messages(system_prompt, user_content),
    }
    if temperature is not None:
        payload["temperature"] = temperature
    return payload


def _should_fallback_to_responses(exc: httpx.HTTPStatusError) -> bool:
    if exc.response.status_code not in (400, 404, 405):
        return False
    message, _ = _extract_error(exc.response.text or "")
    fallback_hints = (
        "unsupported legacy protocol",
        "/v1/chat/completions is not supported",
        "please use /v1/responses",
        "use /v1/responses",
    )
    return any(hint in message.lower() for hint in fallback_hints)


def _post_json(client: httpx.Client, url: str, headers: dict[str, str], payload: dict) -> dict:
    response = client.post(url, headers=headers, json=payload)
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError as exc:
        raise LLMServiceError("Model returned an unexpected response body.") from exc
    if not isinstance(data, dict):
        raise LLMServiceError("Model returned an unexpected response body.")
    return data


def _request_completion(
    client: httpx.Client,
    config: LLMConfig,
    system_prompt: str,
    user_content: str,
    temperature: float | None,
) -> tuple[str, dict[str, Any]]:
    base_url = (config.base_url or settings.llm_base_url).rstrip("/")
    path = _normalize_api_path(config.api_path, "/chat/completions")
    headers = {"Authorization": f"Bearer {config.api_key}"}
    model = config.model or settings.llm_model

    if "/responses" in path:
        data = _post_json(
            client, f"{base_url}{path}", headers,
            _build_responses_payload(model, system_prompt, user_content, temperature),
        )
        return _extract_responses_content(data), data

    try:
        data = _post_json(
            client, f"{base_url}{path}", headers,
            _build_chat_payload(model, system_prompt, user_content, temperature),
        )
        return _extract_chat_content(data), data
    except httpx.HTTPStatusError as exc:
        if not _should_fallback_to_responses(exc):
            raise
        logger.info(f"Provider rejected chat completions, retrying on responses API: {base_url}")
        data = _post_json(
            client, f"{base_url}{_derive_responses_path(path)}", headers,
            _build_responses_payload(model, system_prompt, user_content, temperature),
        )
        return _extract_responses_content(data), data


# 调用 OpenAI 兼容接口，返回文本内容、token 用量与耗时
def complete_chat(
    system_prompt: str,
    user_content: str,
    temperature: float | None = None,
    config: LLMConfig | None = None,
) -> ChatCompletion:
    config = config or default_config()
    if not config.api_key:
        raise LLMServiceError("OpenAI API key not configured")
    model = config.model or settings.llm_model

    started = time.monotonic()
    try:
        with httpx.Client(timeout=settings.llm_timeout_seconds) as client:
            content, data = _request_completion(
                client, config, system_prompt, user_content, temperature
            )
    except httpx.HTTPError as exc:
        message = _format_llm_error(exc)
        logger.error(f"LLM request failed: {message}")
        status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
        raise LLMServiceError(message, status_code=status) from exc
    latency_ms = int((time.monotonic() - started) * 1000)

    token_in, token_out, token_total = _extract_usage(data)
    return ChatCompletion(
        content=content,
        model=model,
        token_in=token_in,
        token_out=token_out,
        token_total=token_total,
        latency_ms=latency_ms,
    )
