"""Completion clients used by the autofill pipeline.

All clients implement ``CompletionClient.complete``: a system prompt plus a
corpus (one string or a list of chunks) goes in; a dict of structured fields
comes back when a schema is supplied, plain text otherwise.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
from google import genai
from google.genai import types
from httpx import HTTPStatusError, TimeoutException

from trajectplan.core.config import LLMSettings
from trajectplan.core.exceptions import (
    APIClientError,
    APITimeoutError,
    CompletionError,
    ConfigurationError,
)
from trajectplan.schemas.field_schema import FieldSchema
from trajectplan.utils.json_parser import parse_json_object
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)

Corpus = Union[str, Sequence[str]]
CompletionResult = Union[Dict[str, Any], str]


def corpus_parts(corpus: Corpus) -> List[str]:
    """Normalize a corpus into a list of non-empty text parts."""
    if isinstance(corpus, str):
        return [corpus] if corpus.strip() else []
    return [part for part in corpus if part and part.strip()]


class BaseLLMClient:
    """HTTP transport for chat-completion style APIs.

    Retries 5xx, 429, timeouts and connection errors with exponential backoff.
    Other 4xx responses fail immediately.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2
    ):
        """Initialize the transport.

        Args:
            api_key: Bearer token
            base_url: Endpoint URL
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.logger = LOGGER

    async def call_api(
        self,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """POST a JSON payload and return the parsed JSON response.

        Raises:
            APIClientError: Non-retryable status, or retries exhausted
            APITimeoutError: Every attempt timed out
        """
        request_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **(headers or {}),
        }
        last_error: Optional[Exception] = None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = await client.post(self.base_url, headers=request_headers, json=payload)
                    response.raise_for_status()
                    return response.json()
                except HTTPStatusError as e:
                    status_code = e.response.status_code
                    body = e.response.text[:500]
                    if 400 <= status_code < 500 and status_code != 429:
                        self.logger.error(
                            f"Completion API rejected the request with {status_code}",
                            extra={"url": self.base_url, "error_body": body},
                        )
                        raise APIClientError(f"API Client Error {status_code}: {body}", original_error=e)
                    last_error = e
                except (TimeoutException, httpx.TransportError, ValueError) as e:
                    # ValueError: a 200 response whose body is not JSON
                    last_error = e

                self.logger.warning(
                    f"Completion API attempt {attempt}/{self.max_retries} failed: {last_error!r}",
                    extra={"url": self.base_url},
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        if isinstance(last_error, TimeoutException):
            raise APITimeoutError(
                f"API Timeout after {self.max_retries} attempts", original_error=last_error
            )
        raise APIClientError(
            f"Failed to call API {self.base_url} after {self.max_retries} attempts",
            original_error=last_error,
        )


class CompletionClient(ABC):
    """Black-box text/structured generation capability."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        corpus: Corpus,
        schema: Optional[FieldSchema] = None,
    ) -> CompletionResult:
        """Generate from a system prompt and a corpus.

        Args:
            prompt: System instructions
            corpus: Source text, either whole or as ordered chunks
            schema: Output fields; when given a dict is returned

        Returns:
            Dict of raw field values when a schema is supplied, else plain text

        Raises:
            APIClientError: Provider error or exhausted retries
            APITimeoutError: Provider timed out
            CompletionError: Missing or malformed structured response
        """


class OpenAIChatClient(CompletionClient):
    """Client for OpenAI-compatible chat completions (OpenAI, OpenRouter).

    Structured output is requested through a forced function call.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1/chat/completions",
        temperature: float = 0.1,
        max_output_tokens: int = 2000,
        timeout: int = 90,
        max_retries: int = 3,
        retry_delay: int = 2,
    ):
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )
        LOGGER.info(f"Initialized chat completion client with model {self.model}")

    def build_payload(
        self, prompt: str, corpus: Corpus, schema: Optional[FieldSchema] = None
    ) -> Dict[str, Any]:
        """Build the chat completions request body; each corpus chunk is its own user message."""
        messages: List[Dict[str, str]] = [{"role": "system", "content": prompt}]
        messages.extend({"role": "user", "content": part} for part in corpus_parts(corpus))

        payload: Dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
            "messages": messages,
        }
        if schema is not None:
            payload["tools"] = [schema.to_tool()]
            payload["tool_choice"] = {"type": "function", "function": {"name": schema.name}}
        return payload

    async def complete(
        self,
        prompt: str,
        corpus: Corpus,
        schema: Optional[FieldSchema] = None,
    ) -> CompletionResult:
        response = await self.client.call_api(payload=self.build_payload(prompt, corpus, schema))

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error(f"Unexpected chat completion response format: {str(response)[:500]}")
            raise CompletionError("Invalid response format from completion provider")
        message = choices[0].get("message") or {}

        if schema is None:
            content = (message.get("content") or "").strip()
            if not content:
                raise CompletionError("No content returned from completion provider")
            return content

        tool_calls = message.get("tool_calls") or []
        arguments = tool_calls[0].get("function", {}).get("arguments") if tool_calls else None
        if not arguments:
            raise CompletionError(f"No function arguments returned for '{schema.name}'")

        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise CompletionError(f"Malformed function arguments for '{schema.name}'", original_error=e)
        if not isinstance(parsed, dict):
            raise CompletionError(f"Function arguments for '{schema.name}' are not an object")
        return parsed


class GeminiClient(CompletionClient):
    """Wrapper for Google Gemini API client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.1,
        max_output_tokens: int = 2000,
        timeout: int = 90,
        max_retries: int = 3,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name to use
            temperature: Sampling temperature
            max_output_tokens: Output token limit
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
        """
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.max_retries = max_retries

        try:
            self.client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=timeout * 1000),
            )
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e)

    async def complete(
        self,
        prompt: str,
        corpus: Corpus,
        schema: Optional[FieldSchema] = None,
    ) -> CompletionResult:
        config = types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            system_instruction=prompt,
        )
        if schema is not None:
            config.response_mime_type = "application/json"
            config.response_schema = schema.to_json_schema()

        text = await self._generate(corpus_parts(corpus), config)

        if schema is None:
            if not text.strip():
                raise CompletionError("Empty response from Gemini")
            return text.strip()

        parsed = parse_json_object(text)
        if parsed is None:
            raise CompletionError(f"Malformed structured response for '{schema.name}' from Gemini")
        return parsed

    async def _generate(self, contents: List[str], config: types.GenerateContentConfig) -> str:
        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config
                )
                return response.text or ""

            except Exception as e:
                LOGGER.warning(
                    f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                else:
                    LOGGER.error(f"Gemini generation failed after retries: {e}", exc_info=True)
                    raise APIClientError(f"Gemini generation failed: {e}", original_error=e)

        raise APIClientError("Gemini generation failed")


def create_completion_client(llm: LLMSettings) -> CompletionClient:
    """Build the completion client for the configured provider.

    Raises:
        ConfigurationError: Unknown provider or missing API key
    """
    provider = llm.provider.lower()

    if provider == "openai":
        if not llm.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        return OpenAIChatClient(
            api_key=llm.openai_api_key,
            model=llm.openai_model,
            base_url=llm.openai_api_url,
            temperature=llm.temperature,
            max_output_tokens=llm.max_output_tokens,
            timeout=llm.timeout_seconds,
            max_retries=llm.max_retries,
            retry_delay=llm.retry_delay,
        )

    if provider == "openrouter":
        if not llm.openrouter_api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")
        return OpenAIChatClient(
            api_key=llm.openrouter_api_key,
            model=llm.openrouter_model,
            base_url=llm.openrouter_api_url,
            temperature=llm.temperature,
            max_output_tokens=llm.max_output_tokens,
            timeout=llm.timeout_seconds,
            max_retries=llm.max_retries,
            retry_delay=llm.retry_delay,
        )

    if provider == "gemini":
        if not llm.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        return GeminiClient(
            api_key=llm.gemini_api_key,
            model=llm.gemini_model,
            temperature=llm.temperature,
            max_output_tokens=llm.max_output_tokens,
            timeout=llm.timeout_seconds,
            max_retries=llm.max_retries,
        )

    raise ConfigurationError(f"Unsupported LLM provider: {llm.provider}")
