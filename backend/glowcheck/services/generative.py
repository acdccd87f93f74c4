"""Generative assessment client with retries and provider fallback.

Each provider normalizes its own request/response shape to a plain completion
string. The client walks the configured provider order, running every provider
under the shared retry policy and moving on to the next one only once the
current provider is exhausted.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from glowcheck.config import GlowCheckConfig
from glowcheck.errors import (
    PermanentServiceError,
    ServiceError,
    TransientServiceError,
    classify_status,
)
from glowcheck.services.assessment_request import AssessmentPrompt
from glowcheck.services.retry import RetryPolicy

logger = logging.getLogger("glowcheck")


class AssessmentProvider:
    name = "provider"

    def is_configured(self) -> bool:
        return True

    async def complete(self, prompt: AssessmentPrompt) -> str:
        raise NotImplementedError


def _require_text(text: Any, service: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise PermanentServiceError("No completion in response", service=service)
    return text


class HttpProvider(AssessmentProvider):
    def __init__(
        self,
        *,
        timeout_s: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._client = client

    async def _post_json(
        self, url: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.post(
                    url, json=body, headers=headers, timeout=self._timeout_s
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        url, json=body, headers=headers, timeout=self._timeout_s
                    )
        except httpx.TimeoutException as exc:
            raise TransientServiceError(
                f"{self.name} timed out after {self._timeout_s}s", service=self.name
            ) from exc
        except httpx.TransportError as exc:
            raise TransientServiceError(
                f"{self.name} request failed: {exc.__class__.__name__}", service=self.name
            ) from exc

        if response.status_code >= 400:
            raise classify_status(
                response.status_code, service=self.name, detail=response.text
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise PermanentServiceError(
                f"{self.name} response was not JSON", service=self.name
            ) from exc
        if not isinstance(data, dict):
            raise PermanentServiceError(
                f"{self.name} response was not a JSON object", service=self.name
            )
        return data


class PrimaryTextProvider(HttpProvider):
    """Text LLM endpoint: ``{messages}`` in, ``{completion}`` out."""

    name = "primary"

    def __init__(self, url: Optional[str], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._url = url

    def is_configured(self) -> bool:
        return bool(self._url)

    async def complete(self, prompt: AssessmentPrompt) -> str:
        data = await self._post_json(self._url, {"messages": prompt.to_messages()})
        return _require_text(data.get("completion"), self.name)


class OpenAIChatProvider(HttpProvider):
    """Chat-completions endpoint: ``{model, messages, max_tokens, temperature}``."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        url: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 2000,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._url = url
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def is_configured(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def to_chat_messages(prompt: AssessmentPrompt) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt.text}]
        if prompt.image is not None:
            content.append(
                {"type": "image_url", "image_url": {"url": prompt.image.data_url}}
            )
        return [{"role": "user", "content": content}]

    async def complete(self, prompt: AssessmentPrompt) -> str:
        body = {
            "model": self._model,
            "messages": self.to_chat_messages(prompt),
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        data = await self._post_json(
            self._url, body, headers={"Authorization": f"Bearer {self._api_key}"}
        )
        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise PermanentServiceError(
                "openai response has no message choice", service=self.name
            )
        return _require_text(message.get("content"), self.name)


class GeminiProvider(AssessmentProvider):
    """Google GenAI SDK: prompt text plus the front photo as an inline part."""

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = "gemini-2.0-flash",
        max_tokens: int = 2000,
        temperature: float = 0.7,
        timeout_s: float = 60.0,
        client: Optional[Any] = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout_s = timeout_s
        self._client = client

    def is_configured(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def complete(self, prompt: AssessmentPrompt) -> str:
        contents: List[Any] = []
        if prompt.image is not None:
            contents.append(
                genai_types.Part.from_bytes(
                    data=prompt.image.raw_bytes(), mime_type=prompt.image.mime_type
                )
            )
        contents.append(prompt.text)
        config = genai_types.GenerateContentConfig(
            temperature=self._temperature,
            max_output_tokens=self._max_tokens,
        )
        try:
            response = await asyncio.wait_for(
                self._get_client().aio.models.generate_content(
                    model=self._model, contents=contents, config=config
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise TransientServiceError(
                f"gemini timed out after {self._timeout_s}s", service=self.name
            ) from exc
        except genai_errors.APIError as exc:
            raise classify_status(
                int(getattr(exc, "code", 500) or 500),
                service=self.name,
                detail=str(getattr(exc, "message", "") or ""),
            ) from exc
        except Exception as exc:
            raise PermanentServiceError(
                f"gemini request failed: {exc.__class__.__name__}", service=self.name
            ) from exc
        return _require_text(getattr(response, "text", None), self.name)


def build_providers(
    config: GlowCheckConfig, *, client: Optional[httpx.AsyncClient] = None
) -> List[AssessmentProvider]:
    """Instantiate providers in the configured order."""
    factories = {
        "primary": lambda: PrimaryTextProvider(
            config.primary_llm_url,
            timeout_s=config.assessment_timeout_s,
            client=client,
        ),
        "openai": lambda: OpenAIChatProvider(
            config.openai_api_key,
            url=config.openai_url,
            model=config.openai_model,
            max_tokens=config.assessment_max_tokens,
            temperature=config.assessment_temperature,
            timeout_s=config.assessment_timeout_s,
            client=client,
        ),
        "gemini": lambda: GeminiProvider(
            config.gemini_api_key,
            model=config.gemini_model,
            max_tokens=config.assessment_max_tokens,
            temperature=config.assessment_temperature,
            timeout_s=config.assessment_timeout_s,
        ),
    }
    return [factories[name]() for name in config.assessment_providers]


class GenerativeAssessmentClient:
    def __init__(
        self,
        providers: Sequence[AssessmentProvider],
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._providers = list(providers)
        self._retry = retry_policy or RetryPolicy()

    @property
    def provider_names(self) -> List[str]:
        return [provider.name for provider in self._providers]

    async def request(self, prompt: AssessmentPrompt) -> str:
        """Return raw completion text from the first provider that succeeds.

        Raises the last provider's ServiceError once every configured
        provider is exhausted.
        """
        last_error: Optional[ServiceError] = None
        for provider in self._providers:
            if not provider.is_configured():
                logger.warning("Assessment provider %s is not configured, skipping", provider.name)
                continue
            try:
                text = await self._retry.run(
                    partial(provider.complete, prompt),
                    label=f"assessment[{provider.name}]",
                )
            except ServiceError as exc:
                last_error = exc
                logger.warning(
                    "Assessment provider %s exhausted: %s", provider.name, exc
                )
                continue
            logger.info("Assessment completed by provider %s", provider.name)
            return text

        if last_error is not None:
            raise last_error
        raise PermanentServiceError(
            "No assessment provider is configured", service="assessment"
        )
