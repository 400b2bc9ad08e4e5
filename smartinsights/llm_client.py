from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any

from anthropic import AsyncAnthropic
from openai import AsyncAzureOpenAI, AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from smartinsights.errors import EmptyResponseError, LLMCircuitOpenError, TransportError, WorkbenchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120
AZURE_API_VERSION = "2024-02-15-preview"


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and not isinstance(exc, LLMCircuitOpenError)


class LLMClient(ABC):
    """Transport to a remote model. Returns the raw response text."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: str,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> str:
        raise NotImplementedError

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, str]],
        system_instruction: str,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> str:
        raise NotImplementedError


class _BaseLLMAdapter(LLMClient):
    provider = "llm"

    def __init__(
        self,
        model: str,
        max_attempts: int = 1,
        failure_threshold: int = 5,
        cooldown_seconds: int = 60,
    ) -> None:
        self.model = model
        self.max_attempts = max(1, max_attempts)
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._failure_count = 0
        self._open_until_epoch = 0.0

    def _check_circuit(self) -> None:
        now = time.time()
        if now < self._open_until_epoch:
            raise LLMCircuitOpenError("LLM circuit breaker is open. Try again later.")

    def _mark_success(self) -> None:
        self._failure_count = 0
        self._open_until_epoch = 0.0

    def _mark_failure(self) -> None:
        self._failure_count += 1
        if self._failure_count >= self.failure_threshold:
            self._open_until_epoch = time.time() + self.cooldown_seconds
            logger.warning("%s circuit opened for %ss after %s failures", self.provider, self.cooldown_seconds, self._failure_count)

    @abstractmethod
    async def _complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        timeout: int,
        json_object: bool,
    ) -> str | None:
        raise NotImplementedError

    async def _call_once(self, system_prompt: str, messages: list[dict[str, str]], timeout: int, json_object: bool) -> str:
        self._check_circuit()
        try:
            content = await self._complete(system_prompt, messages, timeout, json_object)
        except WorkbenchError:
            raise
        except Exception as exc:
            logger.error("%s request to %s failed: %s", self.provider, self.model, exc)
            raise TransportError(f"{self.provider} request failed: {exc}") from exc
        if not content or not content.strip():
            raise EmptyResponseError("LLM returned empty content.")
        return content

    async def _request(self, system_prompt: str, messages: list[dict[str, str]], timeout: int, json_object: bool) -> str:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=8),
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    content = await self._call_once(system_prompt, messages, timeout, json_object)
        except LLMCircuitOpenError:
            raise
        except TransportError:
            self._mark_failure()
            raise
        self._mark_success()
        return content

    async def generate(
        self,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: str,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> str:
        schema_text = json.dumps(schema, ensure_ascii=True)
        wrapped_system_prompt = (
            f"{system_instruction}\n"
            "Return a single JSON document with no markdown.\n"
            f"Strict JSON Schema:\n{schema_text}"
        )
        messages = [{"role": "user", "content": prompt}]
        return await self._request(wrapped_system_prompt, messages, timeout, json_object=schema.get("type") == "object")

    async def chat(
        self,
        messages: list[dict[str, str]],
        system_instruction: str,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> str:
        return await self._request(system_instruction, messages, timeout, json_object=False)


class _OpenAIChatAdapter(_BaseLLMAdapter):
    client: AsyncOpenAI

    async def _complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        timeout: int,
        json_object: bool,
    ) -> str | None:
        extra: dict[str, Any] = {}
        if json_object:
            # json_object mode only accepts top-level objects
            extra["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=0,
            messages=[{"role": "system", "content": system_prompt}, *messages],
            timeout=timeout,
            **extra,
        )
        return response.choices[0].message.content


class AzureOpenAIClient(_OpenAIChatAdapter):
    provider = "azure"

    def __init__(self, endpoint: str, api_key: str, deployment: str, max_attempts: int = 1) -> None:
        super().__init__(model=deployment, max_attempts=max_attempts)
        self.client = AsyncAzureOpenAI(api_key=api_key, azure_endpoint=endpoint, api_version=AZURE_API_VERSION)


class OpenAIClient(_OpenAIChatAdapter):
    provider = "openai"

    def __init__(self, api_key: str, model: str, max_attempts: int = 1) -> None:
        super().__init__(model=model, max_attempts=max_attempts)
        self.client = AsyncOpenAI(api_key=api_key)


class AnthropicClient(_BaseLLMAdapter):
    provider = "anthropic"

    def __init__(self, api_key: str, model: str, max_tokens: int = 8192, max_attempts: int = 1) -> None:
        super().__init__(model=model, max_attempts=max_attempts)
        self.max_tokens = max_tokens
        self.client = AsyncAnthropic(api_key=api_key)

    async def _complete(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        timeout: int,
        json_object: bool,
    ) -> str | None:
        del json_object
        msg = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=messages,
            timeout=timeout,
        )
        return "".join(block.text for block in msg.content if getattr(block, "type", "") == "text")


def create_llm_client_from_env(max_attempts: int = 1) -> LLMClient:
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()

    azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT", "").strip()
    azure_key = os.getenv("AZURE_OPENAI_API_KEY", "").strip()
    azure_deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT", "").strip()

    openai_key = os.getenv("OPENAI_API_KEY", "").strip()
    openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()

    anthropic_key = os.getenv("ANTHROPIC_API_KEY", "").strip()
    anthropic_model = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514").strip()

    if provider == "azure":
        if azure_endpoint and azure_key and azure_deployment:
            return AzureOpenAIClient(azure_endpoint, azure_key, azure_deployment, max_attempts=max_attempts)
        if openai_key:
            return OpenAIClient(api_key=openai_key, model=openai_model, max_attempts=max_attempts)
        raise RuntimeError("Azure configuration missing and OpenAI fallback is not configured.")

    if provider == "openai":
        if openai_key:
            return OpenAIClient(api_key=openai_key, model=openai_model, max_attempts=max_attempts)
        if azure_endpoint and azure_key and azure_deployment:
            return AzureOpenAIClient(azure_endpoint, azure_key, azure_deployment, max_attempts=max_attempts)
        raise RuntimeError("OpenAI configuration missing and Azure fallback is not configured.")

    if provider == "anthropic":
        if anthropic_key:
            return AnthropicClient(api_key=anthropic_key, model=anthropic_model, max_attempts=max_attempts)
        raise RuntimeError("ANTHROPIC_API_KEY is not set.")

    raise RuntimeError("Unsupported AI_PROVIDER. Use 'openai', 'azure' or 'anthropic'.")
