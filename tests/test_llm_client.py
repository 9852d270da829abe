import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from contract_analysis.config import DEFAULT_MODEL_NAME, DEFAULT_NEBIUS_BASE_URL, ModelConfig
from contract_analysis.errors import MissingCredentialsError, ModelRequestError
from contract_analysis.llm_client import SYSTEM_PROMPT, LLMClient

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


class StubCompletions:
    def __init__(self, content=None, error=None):
        self._content = content
        self._error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions, **config):
    stub = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMClient(ModelConfig(api_key="test-key", **config), client=stub)


def test_missing_api_key_raises():
    with pytest.raises(MissingCredentialsError):
        LLMClient(ModelConfig(api_key=None))


def test_from_env_prefers_nebius():
    config = ModelConfig.from_env({"NEBIUS_API_KEY": "nb", "OPENAI_API_KEY": "oa"})
    assert config.api_key == "nb"
    assert config.base_url == DEFAULT_NEBIUS_BASE_URL


def test_from_env_openai_and_overrides():
    env = {"OPENAI_API_KEY": "oa", "CONTRACT_ANALYSIS_MODEL": "gpt-4o"}
    config = ModelConfig.from_env(env, max_tokens=1000, model_name=None)
    assert config.api_key == "oa"
    assert config.base_url is None
    assert config.model_name == "gpt-4o"
    assert config.max_tokens == 1000


def test_from_env_without_keys():
    config = ModelConfig.from_env({})
    assert config.api_key is None
    assert config.model_name == DEFAULT_MODEL_NAME


def test_get_model_response_sends_system_and_user_turns():
    completions = StubCompletions(content='  {"property": {}}\n')
    llm = _client(completions, json_mode=True, max_tokens=123)
    text = asyncio.run(llm.get_model_response("analyze me"))
    assert text == '{"property": {}}'
    call = completions.calls[0]
    assert call["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "analyze me"},
    ]
    assert call["max_tokens"] == 123
    assert call["response_format"] == {"type": "json_object"}


def test_parts_content_mode():
    completions = StubCompletions(content="{}")
    llm = _client(completions, message_content_mode="parts")
    asyncio.run(llm.get_model_response("hello"))
    user = completions.calls[0]["messages"][1]
    assert user["content"] == [{"type": "text", "text": "hello"}]
    assert "response_format" not in completions.calls[0]


def test_empty_completion_is_a_request_error():
    llm = _client(StubCompletions(content=None))
    with pytest.raises(ModelRequestError) as excinfo:
        asyncio.run(llm.get_model_response("hello"))
    assert excinfo.value.reason == "empty_response"


@pytest.mark.parametrize(
    "error, reason, status_code",
    [
        (openai.APITimeoutError(request=_REQUEST), "timeout", None),
        (
            openai.RateLimitError("slow down", response=httpx.Response(429, request=_REQUEST), body=None),
            "rate_limited",
            429,
        ),
        (
            openai.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None),
            "unauthorized",
            401,
        ),
        (openai.APIConnectionError(request=_REQUEST), "connection", None),
        (
            openai.InternalServerError("boom", response=httpx.Response(500, request=_REQUEST), body=None),
            "api_error",
            500,
        ),
    ],
)
def test_sdk_errors_are_translated(error, reason, status_code):
    llm = _client(StubCompletions(error=error))
    with pytest.raises(ModelRequestError) as excinfo:
        asyncio.run(llm.get_model_response("hello"))
    assert excinfo.value.reason == reason
    assert excinfo.value.status_code == status_code
