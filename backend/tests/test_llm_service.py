import json

import httpx
import pytest
import respx

from octagram.services.llm_service import (
    LLMConfig,
    LLMServiceError,
    _extract_usage,
    complete_chat,
)

from conftest import LLM_URL

RESPONSES_URL = "https://llm.test/v1/responses"


class TestExtractUsage:
    def test_chat_fields(self):
        data = {"usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}}
        assert _extract_usage(data) == (3, 4, 7)

    def test_responses_fields_without_total(self):
        data = {"usage": {"input_tokens": 10, "output_tokens": 5}}
        assert _extract_usage(data) == (10, 5, 15)

    def test_missing_usage(self):
        assert _extract_usage({}) == (None, None, None)
        assert _extract_usage({"usage": "n/a"}) == (None, None, None)

    def test_non_finite_counts_are_ignored(self):
        data = {"usage": {"prompt_tokens": 4, "completion_tokens": float("inf"), "total_tokens": float("nan")}}
        assert _extract_usage(data) == (4, None, None)

    @respx.mock
    def test_nan_usage_from_provider_is_not_charged(self):
        respx.post(LLM_URL).mock(
            return_value=httpx.Response(
                200,
                content=b'{"choices": [{"message": {"content": "ok"}}], "usage": {"total_tokens": NaN}}',
                headers={"Content-Type": "application/json"},
            )
        )
        completion = complete_chat("system", "user")
        assert completion.content == "ok"
        assert completion.token_total is None


class TestCompleteChat:
    @respx.mock
    def test_sends_bearer_and_reads_content(self):
        route = respx.post(LLM_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "choices": [{"message": {"content": [{"type": "text", "text": "Hi there"}]}}],
                    "usage": {"prompt_tokens": 2, "completion_tokens": 3, "total_tokens": 5},
                },
            )
        )

        completion = complete_chat("system", "user", temperature=0.2)

        assert completion.content == "Hi there"
        assert completion.model == "gpt-4o-mini"
        assert completion.token_total == 5
        assert completion.latency_ms >= 0
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert json.loads(request.content)["temperature"] == 0.2

    @respx.mock
    def test_falls_back_to_responses_api(self):
        respx.post(LLM_URL).mock(
            return_value=httpx.Response(
                400, json={"error": {"message": "Please use /v1/responses instead"}}
            )
        )
        fallback = respx.post(RESPONSES_URL).mock(
            return_value=httpx.Response(
                200,
                json={"output_text": "From responses", "usage": {"input_tokens": 4, "output_tokens": 6}},
            )
        )

        completion = complete_chat("system", "user")

        assert completion.content == "From responses"
        assert completion.token_total == 10
        assert "input" in json.loads(fallback.calls.last.request.content)

    def test_requires_api_key(self):
        with pytest.raises(LLMServiceError, match="not configured"):
            complete_chat("system", "user", config=LLMConfig(api_key=None, model="m"))

    @pytest.mark.parametrize(
        "response, message",
        [
            (httpx.Response(401, json={"error": {"message": "bad key"}}), "Model API key is invalid or lacks permission."),
            (httpx.Response(429, json={"error": {"message": "slow down"}}), "Model is rate limited. Please try again shortly."),
            (httpx.Response(500, text="upstream exploded"), "Model request failed (500): upstream exploded"),
        ],
    )
    @respx.mock
    def test_error_messages(self, response, message):
        respx.post(LLM_URL).mock(return_value=response)
        with pytest.raises(LLMServiceError) as excinfo:
            complete_chat("system", "user")
        assert excinfo.value.message == message
        assert excinfo.value.status_code == response.status_code

    @respx.mock
    def test_timeout(self):
        respx.post(LLM_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(LLMServiceError) as excinfo:
            complete_chat("system", "user")
        assert excinfo.value.message == "Model request timed out. Please try again."
        assert excinfo.value.status_code is None

    @respx.mock
    def test_non_json_body(self):
        respx.post(LLM_URL).mock(return_value=httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(LLMServiceError, match="unexpected response body"):
            complete_chat("system", "user")
