import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from trajectplan.core.config import LLMSettings
from trajectplan.core.exceptions import APIClientError, APITimeoutError, CompletionError, ConfigurationError
from trajectplan.core.llm_client import (
    BaseLLMClient,
    GeminiClient,
    OpenAIChatClient,
    create_completion_client,
)
from trajectplan.schemas.field_schema import FieldSchema, FieldSpec, FieldType

SCHEMA = FieldSchema(
    name="extract_employee_fields",
    properties=[FieldSpec(name="current_job"), FieldSpec(name="contract_hours", type=FieldType.INTEGER)],
    required=["current_job"],
)


@pytest.fixture
def chat_client():
    return OpenAIChatClient(api_key="test-key", model="gpt-4o", max_retries=1)


def _tool_response(arguments: str):
    return {
        "choices": [{
            "message": {
                "content": None,
                "tool_calls": [{"type": "function", "function": {"name": SCHEMA.name, "arguments": arguments}}],
            }
        }]
    }


def test_payload_sends_one_user_message_per_chunk(chat_client):
    payload = chat_client.build_payload("Systeemprompt", ["deel 1", "  ", "deel 2"], SCHEMA)

    assert [m["role"] for m in payload["messages"]] == ["system", "user", "user"]
    assert payload["messages"][2]["content"] == "deel 2"
    assert payload["tools"] == [SCHEMA.to_tool()]
    assert payload["tool_choice"] == {"type": "function", "function": {"name": SCHEMA.name}}


def test_payload_without_schema_has_no_tools(chat_client):
    payload = chat_client.build_payload("Systeemprompt", "hele tekst")
    assert "tools" not in payload
    assert payload["messages"][1] == {"role": "user", "content": "hele tekst"}


@pytest.mark.asyncio
async def test_complete_parses_tool_arguments(chat_client):
    arguments = json.dumps({"current_job": "Chauffeur", "contract_hours": 32})
    with patch.object(chat_client.client, "call_api", new_callable=AsyncMock) as mock_call:
        mock_call.return_value = _tool_response(arguments)

        result = await chat_client.complete("prompt", ["tekst"], SCHEMA)

    assert result == {"current_job": "Chauffeur", "contract_hours": 32}


@pytest.mark.asyncio
async def test_complete_returns_plain_text_without_schema(chat_client):
    with patch.object(chat_client.client, "call_api", new_callable=AsyncMock) as mock_call:
        mock_call.return_value = {"choices": [{"message": {"content": "  Werknemer is gemotiveerd.  "}}]}

        assert await chat_client.complete("prompt", "tekst") == "Werknemer is gemotiveerd."


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    {"choices": []},
    {"choices": [{"message": {"content": "geen tool call"}}]},
    _tool_response("{niet geldig"),
    _tool_response("[1, 2]"),
])
async def test_complete_rejects_malformed_structured_response(chat_client, response):
    with patch.object(chat_client.client, "call_api", new_callable=AsyncMock) as mock_call:
        mock_call.return_value = response

        with pytest.raises(CompletionError):
            await chat_client.complete("prompt", "tekst", SCHEMA)


@pytest.mark.asyncio
async def test_base_client_retries_server_errors_then_succeeds():
    client = BaseLLMClient(api_key="k", base_url="https://llm.test/v1/chat", max_retries=3, retry_delay=0)
    request = httpx.Request("POST", client.base_url)
    failing = httpx.Response(503, request=request, text="busy")
    ok = httpx.Response(200, request=request, json={"ok": True})

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = [failing, ok]

        assert await client.call_api({"model": "m"}) == {"ok": True}
        assert mock_post.call_count == 2


@pytest.mark.asyncio
async def test_base_client_does_not_retry_client_errors():
    client = BaseLLMClient(api_key="k", base_url="https://llm.test/v1/chat", max_retries=3, retry_delay=0)
    request = httpx.Request("POST", client.base_url)

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = httpx.Response(401, request=request, text="unauthorized")

        with pytest.raises(APIClientError):
            await client.call_api({"model": "m"})
        assert mock_post.call_count == 1


@pytest.mark.asyncio
async def test_base_client_raises_timeout_after_retries():
    client = BaseLLMClient(api_key="k", base_url="https://llm.test/v1/chat", max_retries=2, retry_delay=0)

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(APITimeoutError):
            await client.call_api({"model": "m"})
        assert mock_post.call_count == 2


@pytest.mark.asyncio
async def test_gemini_client_parses_json_response():
    with patch("trajectplan.core.llm_client.genai.Client") as mock_client_cls:
        mock_generate = AsyncMock(return_value=MagicMock(text='```json\n{"current_job": "Chauffeur"}\n```'))
        mock_client_cls.return_value.aio.models.generate_content = mock_generate

        client = GeminiClient(api_key="test-key", max_retries=1)
        result = await client.complete("prompt", ["deel 1", "deel 2"], SCHEMA)

    assert result == {"current_job": "Chauffeur"}
    kwargs = mock_generate.call_args.kwargs
    assert kwargs["contents"] == ["deel 1", "deel 2"]
    assert kwargs["config"].response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_gemini_client_wraps_provider_errors():
    with patch("trajectplan.core.llm_client.genai.Client") as mock_client_cls:
        mock_client_cls.return_value.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota"))

        client = GeminiClient(api_key="test-key", max_retries=1)
        with pytest.raises(APIClientError):
            await client.complete("prompt", "tekst", SCHEMA)


def test_factory_builds_configured_provider():
    llm = LLMSettings(LLM_PROVIDER="openrouter", OPENROUTER_API_KEY="or-key")
    client = create_completion_client(llm)

    assert isinstance(client, OpenAIChatClient)
    assert client.client.base_url == llm.openrouter_api_url


def test_factory_requires_api_key():
    with pytest.raises(ConfigurationError):
        create_completion_client(LLMSettings(LLM_PROVIDER="gemini", GEMINI_API_KEY=""))


def test_factory_rejects_unknown_provider():
    with pytest.raises(ConfigurationError):
        create_completion_client(LLMSettings(LLM_PROVIDER="watson"))
